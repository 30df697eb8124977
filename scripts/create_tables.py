"""Create the branding tables directly (local development without alembic)"""
import logging

from app.db.base_class import Base
from app.db.session import engine
# Import all models so they are registered with Base.metadata
import app.models  # noqa: F401

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def create_tables():
    logger.info("Creating branding tables on %s ...", engine.url.render_as_string(hide_password=True))
    Base.metadata.create_all(bind=engine)
    logger.info("Tables created: %s", ", ".join(sorted(Base.metadata.tables)))


if __name__ == "__main__":
    create_tables()
