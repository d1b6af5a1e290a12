"""
Script to create all database tables if they don't exist.
Useful for a fresh local database; deployed databases are managed by Alembic.

Usage:
    python create_all_tables.py

This will:
1. Import all models from the codebase
2. Check which tables exist in the database
3. Create only the missing tables
"""
import sys
from pathlib import Path
from dotenv import load_dotenv
import logging

# Add project root to path
ROOT_DIR = Path(__file__).resolve().parent
sys.path.insert(0, str(ROOT_DIR))

# Load environment variables
load_dotenv()

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)
logger = logging.getLogger(__name__)

from database import Base, engine
from sqlalchemy import inspect
from sqlalchemy.exc import OperationalError

EXPECTED_TABLES = {
    'locations': 'Location_module.Location_model.Location',
    'box_changes': 'Location_module.Box_change_model.BoxChange',
}


def import_all_models():
    """Import all models to register them with SQLAlchemy Base.metadata"""
    from Location_module.Location_model import Location
    from Location_module.Box_change_model import BoxChange

    registered = set(Base.metadata.tables.keys())
    missing = set(EXPECTED_TABLES) - registered
    if missing:
        logger.error(f"Models not registered in Base.metadata: {', '.join(sorted(missing))}")
        return False

    logger.info(f"{len(registered)} table(s) registered in Base.metadata")
    return True


def get_existing_tables():
    """Get list of existing tables in the database"""
    try:
        return inspect(engine).get_table_names()
    except OperationalError as e:
        logger.error(f"Cannot connect to database: {e}")
        logger.error("Please check your DATABASE_URL environment variable")
        return None


def create_missing_tables(existing_tables):
    """Create missing tables using Base.metadata.create_all()"""
    missing_tables = set(Base.metadata.tables.keys()) - set(existing_tables)
    if not missing_tables:
        logger.info("All tables already exist in the database!")
        return []

    logger.info(f"Found {len(missing_tables)} missing table(s): {', '.join(sorted(missing_tables))}")
    with engine.begin() as conn:
        Base.metadata.create_all(bind=conn, checkfirst=True)

    created = set(inspect(engine).get_table_names()) - set(existing_tables)
    logger.info(f"Created {len(created)} table(s): {', '.join(sorted(created))}")
    return sorted(created)


def main():
    if not import_all_models():
        return 1

    existing_tables = get_existing_tables()
    if existing_tables is None:
        return 1

    try:
        create_missing_tables(existing_tables)
    except OperationalError as e:
        logger.error(f"Database operation error: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
