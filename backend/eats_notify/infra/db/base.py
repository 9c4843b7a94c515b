"""Database base configuration."""
import os
import ssl
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional
from urllib.parse import parse_qs, urlencode, urlparse, urlunparse

from sqlalchemy.exc import DBAPIError, InterfaceError, OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from eats_notify.domain.common.errors import StoreError, TransientStoreError


def normalize_async_pg_url(url: str) -> str:
    """Ensure URL uses asyncpg driver; hosted Postgres often gives postgresql:// (sync)."""
    u = (url or "").strip()
    if u.startswith("postgresql://"):
        return u.replace("postgresql://", "postgresql+asyncpg://", 1)
    return u


def _ssl_context_no_verify() -> ssl.SSLContext:
    """SSL context that skips certificate verification (managed Postgres with self-signed certs)."""
    ctx = ssl.create_default_context()
    ctx.check_hostname = False
    ctx.verify_mode = ssl.CERT_NONE
    return ctx


def async_pg_connect_args(url: str) -> dict:
    """asyncpg connect_args: ssl when the URL has sslmode=require (asyncpg rejects sslmode).
    Set DATABASE_SSL_VERIFY=true for strict certificate verification."""
    parsed = urlparse(url)
    qs = parse_qs(parsed.query, keep_blank_values=True)
    if qs.get("sslmode") != ["require"]:
        return {}
    verify = os.environ.get("DATABASE_SSL_VERIFY", "false").strip().lower()
    if verify in ("true", "1"):
        return {"ssl": True}
    return {"ssl": _ssl_context_no_verify()}


def async_pg_url_without_sslmode(url: str) -> str:
    """Return URL with sslmode removed so asyncpg does not get an unknown kwarg."""
    parsed = urlparse(url)
    qs = parse_qs(parsed.query, keep_blank_values=True)
    qs.pop("sslmode", None)
    return urlunparse(parsed._replace(query=urlencode(qs, doseq=True)))


def create_engine_for(url: str, echo: bool = False, **kwargs) -> AsyncEngine:
    """Async engine with the URL normalised for asyncpg (other drivers pass through)."""
    db_url = normalize_async_pg_url(url)
    if db_url.startswith("postgresql+asyncpg://"):
        kwargs.setdefault("connect_args", async_pg_connect_args(db_url))
        db_url = async_pg_url_without_sslmode(db_url)
    return create_async_engine(db_url, echo=echo, **kwargs)


def create_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


_engine: Optional[AsyncEngine] = None
_sessionmaker: Optional[async_sessionmaker[AsyncSession]] = None


def get_sessionmaker() -> async_sessionmaker[AsyncSession]:
    """Process-wide sessionmaker built lazily from settings."""
    global _engine, _sessionmaker
    if _sessionmaker is None:
        from eats_notify.settings import settings

        _engine = create_engine_for(settings.database_url, echo=settings.database_echo, pool_pre_ping=True)
        _sessionmaker = create_sessionmaker(_engine)
    return _sessionmaker


async def dispose_engine() -> None:
    global _engine, _sessionmaker
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _sessionmaker = None


@asynccontextmanager
async def translate_errors(operation: str) -> AsyncIterator[None]:
    """Map SQLAlchemy failures onto store errors; connection/timeout ones are transient."""
    try:
        yield
    except (OperationalError, InterfaceError) as e:
        raise TransientStoreError(operation, str(e.orig or e), e) from e
    except DBAPIError as e:
        if e.connection_invalidated:
            raise TransientStoreError(operation, str(e.orig or e), e) from e
        raise StoreError(operation, str(e.orig or e), e) from e
    except SQLAlchemyError as e:
        raise StoreError(operation, str(e), e) from e
    except (TimeoutError, ConnectionError) as e:
        raise TransientStoreError(operation, str(e) or type(e).__name__, e) from e


class Base(DeclarativeBase):
    """Base class for all models."""
    pass
