"""
Database engine and session dependency.

Connection is chosen in this order:
1. MySQL through an SSH tunnel (USE_SSH, SSH_* and DB_* settings)
2. DATABASE_URL as given
3. Direct MySQL from DB_HOST / DB_USER / DB_PASSWORD / DB_NAME
4. A local SQLite file
"""
import logging

from sqlmodel import SQLModel, create_engine, Session

from engagement.core.config import settings

logger = logging.getLogger(__name__)

MYSQL_PORT = 3306

# Global tunnel instance
_tunnel = None
_engine = None


def _mysql_url(host: str, port: int) -> str:
    return f"mysql+pymysql://{settings.DB_USER}:{settings.DB_PASSWORD}@{host}:{port}/{settings.DB_NAME}"


def _open_tunnel():
    global _tunnel
    from sshtunnel import SSHTunnelForwarder

    if _tunnel is None:
        _tunnel = SSHTunnelForwarder(
            (settings.SSH_HOST, 22),
            ssh_username=settings.SSH_USER,
            ssh_password=settings.SSH_PASSWORD,
            remote_bind_address=(settings.DB_HOST, MYSQL_PORT),
            set_keepalive=60  # Send keepalive packets every 60 seconds
        )
        _tunnel.start()
        logger.info("SSH tunnel to %s open on local port %s", settings.SSH_HOST, _tunnel.local_bind_port)
    return _tunnel


def get_engine():
    global _engine

    if _engine is not None:
        return _engine

    if settings.USE_SSH:
        tunnel = _open_tunnel()
        _engine = create_engine(_mysql_url("127.0.0.1", tunnel.local_bind_port), pool_pre_ping=True)
        return _engine

    if settings.DATABASE_URL:
        db_url = settings.DATABASE_URL
    elif settings.DB_HOST and settings.DB_NAME:
        db_url = _mysql_url(settings.DB_HOST, MYSQL_PORT)
    else:
        db_url = "sqlite:///./sqlite.db"

    if db_url.startswith("sqlite"):
        # SQLite fix for multithreading
        _engine = create_engine(db_url, connect_args={"check_same_thread": False})
    else:
        _engine = create_engine(db_url, pool_pre_ping=True)
    logger.debug("Database engine created for %s", _engine.url.render_as_string(hide_password=True))
    return _engine


engine = get_engine()


def init_db(bind=None):
    """Create any missing tables. Safe to call on every startup."""
    # Importing the models package registers every table on SQLModel.metadata
    import engagement.models  # noqa: F401

    SQLModel.metadata.create_all(bind or engine)


def close_db():
    """Dispose of pooled connections and stop the SSH tunnel, if one is open."""
    global _tunnel
    engine.dispose()
    if _tunnel is not None:
        _tunnel.stop()
        _tunnel = None
        logger.info("SSH tunnel closed")


def get_db():
    with Session(engine) as session:
        yield session
