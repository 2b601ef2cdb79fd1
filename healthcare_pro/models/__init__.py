# healthcare_pro/models/__init__.py
from healthcare_pro.db.session import Base, engine

# Import model modules so SQLAlchemy registers all mappers.
from . import user  # noqa: F401
from . import symptom_report  # noqa: F401
from . import prescription  # noqa: F401
from . import mood_entry  # noqa: F401
from . import health_report  # noqa: F401


def init_db() -> None:
    """Create tables if they don't exist."""
    Base.metadata.create_all(bind=engine)
