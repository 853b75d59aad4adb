import logging
import random
from datetime import timedelta

from app.crud import drive as drive_crud
from app.crud.user import create_user
from app.database import SessionLocal, engine
from app.models.all_models import Base, DriveStatus, Gender, Student, User, UserRole, Vaccination, VaccinationStatus
from app.services.vaccination_engine import VaccinationEngine
from app.utils.dates import local_today

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
)
logger = logging.getLogger(__name__)

FIRST_NAMES_MALE = ["Aarav", "Vihaan", "Arjun", "Kabir", "Rohan", "John", "Michael", "David", "Samuel", "Ishaan"]
FIRST_NAMES_FEMALE = ["Ananya", "Diya", "Saanvi", "Meera", "Emma", "Sophia", "Olivia", "Priya", "Kavya", "Grace"]
LAST_NAMES = ["Sharma", "Patel", "Iyer", "Nair", "Smith", "Johnson", "Brown", "Reddy", "Khan", "Das"]

CLASSES = ["5", "6", "7", "8", "9", "10"]
SECTIONS = ["A", "B"]


def generate_student(class_name: str, section: str, roll: int) -> Student:
    gender = random.choice([Gender.MALE, Gender.FEMALE, Gender.OTHER])
    first_names = FIRST_NAMES_FEMALE if gender == Gender.FEMALE else FIRST_NAMES_MALE
    return Student(
        name=f"{random.choice(first_names)} {random.choice(LAST_NAMES)}",
        class_name=class_name,
        section=section,
        roll_number=f"{class_name}{section}{roll:02d}",
        age=int(class_name) + 5,
        gender=gender,
    )


def seed_history(session, students):
    """Past drives are historical records, so they bypass the scheduling rules"""
    today = local_today()
    history = [
        ("MMR Drive", today - timedelta(days=120), "MMR", 40, ["7", "8"]),
        ("Tdap Booster Drive", today - timedelta(days=60), "Tdap", 30, ["9", "10"]),
    ]
    for name, drive_date, vaccine, doses, classes in history:
        drive = drive_crud.create_drive(
            session, name=name, date=drive_date, vaccine_name=vaccine,
            total_doses=doses, target_classes=classes,
        )
        eligible = [s for s in students if s.class_name in classes]
        for student in random.sample(eligible, min(len(eligible), doses, len(eligible) * 2 // 3)):
            student.vaccinations.append(Vaccination(
                drive_id=drive.id, vaccine_name=vaccine, date=drive_date, status=VaccinationStatus.COMPLETED,
            ))
            drive.used_doses += 1
        drive.status = DriveStatus.COMPLETED
    session.commit()


def seed_database():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()

    try:
        if not session.query(User).filter(User.username == "admin").first():
            create_user(session, username="admin", email="admin@school.edu", password="admin123",
                        full_name="School Health Coordinator", role=UserRole.ADMIN)
            logger.info("Created admin user (admin / admin123)")

        if session.query(Student).count():
            logger.info("Students already present, skipping sample data")
            return

        students = []
        for class_name in CLASSES:
            for section in SECTIONS:
                for roll in range(1, 9):
                    students.append(generate_student(class_name, section, roll))
        session.add_all(students)
        session.commit()
        logger.info(f"Created {len(students)} students")

        seed_history(session, students)

        engine_ = VaccinationEngine(session)
        today = engine_.today()
        engine_.schedule_drive("Hepatitis B Drive", today + timedelta(days=20), "Hepatitis B", 50, ["5", "6"])
        engine_.schedule_drive("HPV Drive", today + timedelta(days=28), "HPV", 25, ["9", "10"])
        engine_.schedule_drive("Polio Booster Drive", today + timedelta(days=45), "Polio", 60, ["5", "6", "7"])
        logger.info("Scheduled upcoming drives")

    except Exception as e:
        session.rollback()
        logger.error(f"Error during seeding: {str(e)}")
        raise
    finally:
        session.close()


if __name__ == "__main__":
    seed_database()
