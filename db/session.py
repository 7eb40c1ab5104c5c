import logging
from contextlib import contextmanager

from sqlalchemy import exc as sa_exc
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, create_engine

from core import config
from core.exceptions import StoreUnavailable

logger = logging.getLogger(__name__)

# Connects app to PostgreSQL database (or any SQLAlchemy URL given in DATABASE_URL)


def build_database_url() -> str:
    if config.DATABASE_URL:
        return config.DATABASE_URL

    # If INSTANCE_CONNECTION_NAME is set, DB_HOST is not required for connection string
    required_vars_for_tcp = {
        "DB_HOST": config.DB_HOST,
        "DB_NAME": config.DB_NAME,
        "DB_USER": config.DB_USER,
        "DB_PASSWORD": config.DB_PASSWORD,
    }
    required_vars_for_socket = {
        "DB_NAME": config.DB_NAME,
        "DB_USER": config.DB_USER,
        "DB_PASSWORD": config.DB_PASSWORD,
    }

    if config.INSTANCE_CONNECTION_NAME:
        missing_vars = [name for name, value in required_vars_for_socket.items() if not value]
        if missing_vars:
            raise ValueError(
                f"Missing required environment variables for Cloud SQL (socket): {', '.join(missing_vars)}"
            )
        # Construct PostgreSQL connection URL for Cloud SQL (Unix socket)
        return (
            f"postgresql+psycopg2://{config.DB_USER}:{config.DB_PASSWORD}@/{config.DB_NAME}"
            f"?host=/cloudsql/{config.INSTANCE_CONNECTION_NAME}"
        )

    missing_vars = [name for name, value in required_vars_for_tcp.items() if not value]
    if missing_vars:
        raise ValueError(f"Missing required environment variables for TCP: {', '.join(missing_vars)}")
    # Construct PostgreSQL connection URL for TCP (e.g., local development)
    return (
        f"postgresql+psycopg2://{config.DB_USER}:{config.DB_PASSWORD}"
        f"@{config.DB_HOST}:{config.DB_PORT}/{config.DB_NAME}"
    )


def make_engine(database_url: str):
    if database_url.startswith("sqlite"):
        # Single shared connection so in-memory databases survive across sessions
        return create_engine(
            database_url,
            echo=config.DB_ECHO,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

    return create_engine(
        database_url,
        echo=config.DB_ECHO,
        pool_pre_ping=True,
        pool_timeout=config.DB_POOL_TIMEOUT_SECONDS,
        connect_args={
            "connect_timeout": config.DB_CONNECT_TIMEOUT_SECONDS,
            "options": f"-c statement_timeout={config.DB_STATEMENT_TIMEOUT_MS}",
        },
    )


# The Wire / Link That Lets Us Pass Data from App -> db
engine = make_engine(build_database_url())


# Getter for this Wire, modified for FastAPI dependency injection
def get_session():
    with Session(engine) as session:
        try:
            yield session
        finally:
            session.close()


@contextmanager
def store_errors(session: Session):
    """Translate connectivity/timeout failures into the retryable StoreUnavailable."""
    try:
        yield
    except (sa_exc.OperationalError, sa_exc.TimeoutError, sa_exc.InterfaceError) as e:
        logger.error("Attendance store unavailable: %s", e)
        session.rollback()
        raise StoreUnavailable() from e
