from database import SessionLocal, engine, Base
from config.settings import settings
from models import Unit  # noqa: F401 - registers every model on Base.metadata
from services.accounts import ensure_super_admin
from utils.ids import generate_code
import logging

logger = logging.getLogger(__name__)

DEFAULT_UNITS = ["Pcs", "Dzn", "Meter", "Thaan", "Kg", "Gram", "Set", "Roll", "Sheet", "Bundle"]

def seed_default_units():
    """Seed the default units of measure."""
    db = SessionLocal()
    try:
        # Check if units already exist
        if db.query(Unit).first():
            logger.info("Units already exist")
            return

        for name in DEFAULT_UNITS:
            db.add(Unit(id=generate_code(db, Unit, "UNT"), name=name))
            db.flush()

        db.commit()
        logger.info(f"Successfully seeded {len(DEFAULT_UNITS)} units")

    except Exception as e:
        logger.error(f"Error seeding units: {e}")
        db.rollback()
    finally:
        db.close()

def create_superadmin():
    """Create the configured super admin if it doesn't exist."""
    if not settings.SUPER_ADMIN_EMAIL or not settings.SUPER_ADMIN_PASSWORD:
        logger.info("SUPER_ADMIN_EMAIL/SUPER_ADMIN_PASSWORD not set, the first signup becomes super admin")
        return None

    db = SessionLocal()
    try:
        user, created = ensure_super_admin(db, settings.SUPER_ADMIN_EMAIL, settings.SUPER_ADMIN_PASSWORD)
        if created:
            logger.info(f"Super admin {user.email} created successfully")
        else:
            logger.info("Super admin already exists")
        return user

    except Exception as e:
        logger.error(f"Error creating super admin: {e}")
        db.rollback()
        return None
    finally:
        db.close()


def init_database():
    """Initialize database with tables and seed data."""
    if engine is None:
        logger.warning("DATABASE_URL is not set, skipping database initialization")
        return

    try:
        # Create tables
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables created")

        seed_default_units()

        create_superadmin()

    except Exception as e:
        logger.error(f"Error initializing database: {e}")

if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    init_database()
