import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import RedirectResponse

from app.config import settings
from app.database import engine
from app.middleware import add_cors_middleware, add_exception_handlers
from app.models.all_models import Base
from app.routes import auth, dashboard, drives, reports, students

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables ready")
    yield


app = FastAPI(title="School Vaccination Portal",
              description="Students, vaccination drives and coverage reports for a school health office",
              version="1.0.0",
              lifespan=lifespan)
add_cors_middleware(app)
add_exception_handlers(app)


@app.get("/", include_in_schema=False)
async def root():
    """
    Root endpoint that redirects to the API documentation
    """
    return RedirectResponse(url="/docs")

@app.get("/health", tags=["health"])
async def health():
    return {"status": "Server is running"}

app.include_router(auth.router)
app.include_router(students.router)
app.include_router(drives.router)
app.include_router(reports.router)
app.include_router(dashboard.router)
