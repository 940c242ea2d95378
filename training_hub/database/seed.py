"""
Database Setup Script
Creates all tables and seeds roles, default policy, rate tables and courses

Usage:
    python -m training_hub.database.seed
"""

import sys
from datetime import date

from training_hub.config.settings import settings
from training_hub.config.database import Base, SessionLocal, engine
from training_hub.models.course import Course, TrainingLocation, CostLevel
from training_hub.models.per_diem import DestinationBand, GradeBand, PolicyConfig
from training_hub.models.user import User, UserRoleAssignment, AppRole
from training_hub.utils.security import get_password_hash

DEFAULT_POLICY = {
    "travel_day_rate": {
        "value": {"percentage": settings.DEFAULT_TRAVEL_DAY_PERCENTAGE},
        "description": "Share of the daily rate paid for each travel day",
    },
    "override_approval_threshold": {
        "value": {"percentage": settings.DEFAULT_OVERRIDE_APPROVAL_THRESHOLD},
        "description": "Overrides deviating more than this from the original need approval",
    },
}

# (username, full name, employee number, grade, roles, entity)
SEED_USERS = [
    ("admin", "System Administrator", "EMP001", 20, [AppRole.ADMIN], "HQ"),
    ("chro", "Chief HR Officer", "EMP002", 18, [AppRole.CHRO], "HQ"),
    ("learning", "L&D Lead", "EMP003", 14, [AppRole.L_AND_D], "HQ"),
    ("hrbp", "HR Business Partner", "EMP004", 12, [AppRole.HRBP], "HQ"),
    ("manager", "Department Manager", "EMP005", 11, [AppRole.MANAGER], "HQ"),
    ("employee", "Sample Employee", "EMP006", 6, [], "HQ"),
]

SEED_GRADE_BANDS = [
    ("Junior", 1, 7, 1.0),
    ("Senior", 8, 12, 1.15),
    ("Executive", 13, 25, 1.3),
]

SEED_DESTINATION_BANDS = [
    ("Germany", "A", "EUR", 120.0, False),
    ("United Kingdom", "A", "GBP", 110.0, False),
    ("United Arab Emirates", "B", "AED", 400.0, True),
]

SEED_COURSES = [
    ("LEAD-101", "Leadership Essentials", "Internal Academy", TrainingLocation.LOCAL, CostLevel.LOW),
    ("DATA-201", "Applied Data Analysis", "Data School", TrainingLocation.LOCAL, CostLevel.HIGH),
    ("EXEC-301", "Executive Programme", "Business School Berlin", TrainingLocation.ABROAD, CostLevel.HIGH),
]


def create_tables():
    """Create all database tables"""
    print("Creating database tables...")
    import training_hub.models  # noqa: F401
    Base.metadata.create_all(bind=engine)
    print("✓ Database tables created successfully")


def create_policy_defaults(db):
    print("\nCreating per diem policy defaults...")
    created = 0
    for key, entry in DEFAULT_POLICY.items():
        if db.query(PolicyConfig).filter(PolicyConfig.config_key == key).first():
            continue
        db.add(PolicyConfig(config_key=key, config_value=entry["value"], description=entry["description"]))
        created += 1
    db.commit()
    print(f"✓ {created} policy rows created")


def create_initial_users(db):
    """Create the sample organisation: one user per role, employee reports to manager"""
    print("\nCreating initial users...")
    if db.query(User).first():
        print("✓ Users already exist, skipping...")
        return

    users = {}
    for username, full_name, number, grade, roles, entity in SEED_USERS:
        user = User(
            email=f"{username}@traininghub.com",
            username=username,
            full_name=full_name,
            employee_number=number,
            hashed_password=get_password_hash(f"{username}123"),
            grade=grade,
            department="Human Resources" if roles and roles[0] != AppRole.MANAGER else "Operations",
            entity_id=entity,
            is_active=True
        )
        for role in set(roles) | {AppRole.EMPLOYEE}:
            user.role_assignments.append(UserRoleAssignment(role=role))
        db.add(user)
        users[username] = user

    db.flush()
    users["employee"].manager_id = users["manager"].id
    users["manager"].manager_id = users["chro"].id
    db.commit()
    print(f"✓ Initial users created successfully ({len(users)} users)")


def create_rate_tables(db):
    print("\nCreating per diem rate tables...")
    if db.query(GradeBand).first() or db.query(DestinationBand).first():
        print("✓ Rate tables already exist, skipping...")
        return

    for name, grade_from, grade_to, multiplier in SEED_GRADE_BANDS:
        db.add(GradeBand(band_name=name, grade_from=grade_from, grade_to=grade_to, multiplier=multiplier))

    for country, band, currency, rate, is_domestic in SEED_DESTINATION_BANDS:
        db.add(DestinationBand(
            country=country,
            band=band,
            currency=currency,
            training_daily_rate=rate,
            is_domestic=is_domestic,
            valid_from=date(date.today().year, 1, 1)
        ))
    db.commit()
    print("✓ Grade and destination bands created")


def create_courses(db):
    print("\nCreating course catalogue...")
    if db.query(Course).first():
        print("✓ Courses already exist, skipping...")
        return

    for code, title, provider, location, cost in SEED_COURSES:
        db.add(Course(code=code, title=title, provider_name=provider, training_location=location, cost_level=cost))
    db.commit()
    print(f"✓ {len(SEED_COURSES)} courses created")


def main():
    """Main setup function"""
    print("=" * 70)
    print(f"{settings.APP_NAME.upper()} - DATABASE SETUP")
    print("=" * 70)

    db = SessionLocal()
    try:
        create_tables()
        create_policy_defaults(db)
        create_initial_users(db)
        create_rate_tables(db)
        create_courses(db)
        print("\nLogin with <username>/<username>123, e.g. employee/employee123")
    except Exception as e:
        db.rollback()
        print(f"\n✗ Database setup failed: {str(e)}")
        import traceback
        traceback.print_exc()
        sys.exit(1)
    finally:
        db.close()


if __name__ == "__main__":
    main()
