from datetime import date, datetime, timedelta
from pytz import timezone

from app.config import settings


def local_now() -> datetime:
    return datetime.now(timezone(settings.TIMEZONE))


def local_today() -> date:
    """Today's date in the school's timezone"""
    return local_now().date()


def days_from(start: date, days: int) -> date:
    return start + timedelta(days=days)
