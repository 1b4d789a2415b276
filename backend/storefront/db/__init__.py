import importlib
import logging
import os

from sqlalchemy import create_engine, event
from sqlalchemy.orm import declarative_base, sessionmaker

from storefront.config import settings

log = logging.getLogger("db")

DATABASE_URL = settings.DATABASE_URL
_is_sqlite = DATABASE_URL.startswith("sqlite")

engine = create_engine(
    DATABASE_URL,
    future=True,
    echo=settings.SQL_ECHO,
    connect_args={"check_same_thread": False} if _is_sqlite else {},
)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()

# every module that declares tables; add new model modules here
MODEL_MODULES = [
    "storefront.models.product",
    "storefront.models.gold_price",
    "storefront.models.address",
    "storefront.models.cart_item",
    "storefront.models.order",
    "storefront.models.payment",
]


if _is_sqlite:

    @event.listens_for(engine, "connect")
    def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
        # SQLite ignores ON DELETE RESTRICT/CASCADE unless asked per connection
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def init_db(reset: bool = None):
    """
    Initialize DB schema.

    Behavior:
      - If reset is True, or RESET_DB env var is set to 1/true/yes, drop & recreate tables.
      - Otherwise, leave existing tables in place and create missing ones.

    Every model module is imported first so Base.metadata is populated.
    """
    for mod in MODEL_MODULES:
        importlib.import_module(mod)

    if reset is None:
        reset = os.environ.get("RESET_DB", "false").lower() in ("1", "true", "yes")

    if reset:
        log.info("Resetting database schema")
        Base.metadata.drop_all(bind=engine)

    Base.metadata.create_all(bind=engine)
    log.info("Database initialized (%s)", engine.url.render_as_string(hide_password=True))


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
