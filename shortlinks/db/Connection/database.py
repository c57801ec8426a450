import logging
from typing import Dict

import redis
from redis.connection import ConnectionPool
from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker

from shortlinks.core.config import settings

SQLALCHEMY_DATABASE_URL = settings.SQLALCHEMY_DATABASE_URL
logger = logging.getLogger(__name__)


def _engine_options(url: str) -> dict:
    if url.startswith("sqlite"):
        # sessions are handed to background tasks running on another thread
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True, "pool_size": 10, "max_overflow": 20}


engine = create_engine(SQLALCHEMY_DATABASE_URL, future=True, **_engine_options(SQLALCHEMY_DATABASE_URL))
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, future=True)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# Only the keyword cache talks to Redis; the pool connects lazily
pool = ConnectionPool(
    host=settings.REDIS_HOST,
    port=settings.REDIS_PORT,
    decode_responses=True,
    max_connections=50,
    socket_connect_timeout=2,
    socket_timeout=2,
    socket_keepalive=True,
    retry_on_timeout=True,
)

redis_client = redis.Redis(connection_pool=pool)


def verify_redis_connection() -> bool:
    try:
        redis_client.ping()
        logger.info("Redis connection verified")
        return True
    except redis.exceptions.ConnectionError as e:
        logger.warning(f"Redis connection failed: {e}. Redirects will skip the keyword cache.")
        return False
    except redis.exceptions.RedisError as e:
        logger.error(f"Unexpected Redis error: {e}")
        return False


def verify_database_connection() -> bool:
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        logger.info("Database connection verified")
        return True
    except Exception as e:
        logger.error(f"Database connection failed: {e}")
        return False


def readiness(check_redis: bool = True) -> Dict[str, str]:
    details = {"db": "ok" if verify_database_connection() else "error"}
    if check_redis:
        details["redis"] = "ok" if verify_redis_connection() else "error"
    return details


def close_connections():
    engine.dispose()
    try:
        redis_client.close()
    except redis.exceptions.RedisError:
        logger.debug("Error closing Redis client")
