"""
Persistence layer: engine, sessions and table definitions.

Server databases (Postgres) get a QueuePool. SQLite URLs, used by the test
suite, get a StaticPool so an in-memory database is one shared connection
that survives across sessions.

Services open short sessions with get_db_session(); it commits on success
and rolls back on any exception.
"""
import logging
import os
from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy import Boolean, Column, DateTime, Index, Integer, MetaData, String, Table, Text, UniqueConstraint, create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from orangerides.core.config import settings


logger = logging.getLogger("orangerides.database")

metadata = MetaData()

POOL_SIZE = 10
MAX_OVERFLOW = 20
POOL_TIMEOUT = 30
POOL_RECYCLE = 3600  # seconds

_engine: Optional[Engine] = None
_SessionLocal: Optional[sessionmaker] = None


def get_database_url() -> Optional[str]:
    """TEST_DATABASE_URL from the environment wins over settings.DATABASE_URL."""
    return os.getenv("TEST_DATABASE_URL") or settings.DATABASE_URL


def _engine_options(url: str) -> dict:
    if url.startswith("sqlite"):
        return {"poolclass": StaticPool, "connect_args": {"check_same_thread": False}}
    return {
        "poolclass": QueuePool,
        "pool_size": POOL_SIZE,
        "max_overflow": MAX_OVERFLOW,
        "pool_timeout": POOL_TIMEOUT,
        "pool_recycle": POOL_RECYCLE,
        "pool_pre_ping": True,
    }


def init_engine(database_url: Optional[str] = None) -> Engine:
    """(Re)build the engine and session factory for the given or configured URL."""
    global _engine, _SessionLocal

    url = database_url or get_database_url()
    if not url:
        raise ValueError("DATABASE_URL is not configured. Set it in the environment or .env file.")

    _engine = create_engine(url, echo=False, **_engine_options(url))
    _SessionLocal = sessionmaker(bind=_engine, autoflush=False, expire_on_commit=False)
    logger.info("database.engine_ready", extra={"status": _engine.dialect.name})
    return _engine


def get_engine() -> Engine:
    if _engine is None:
        init_engine()
    return _engine


def get_session_factory() -> sessionmaker:
    if _SessionLocal is None:
        init_engine()
    return _SessionLocal


@contextmanager
def get_db_session() -> Generator[Session, None, None]:
    """
    Transactional scope for one unit of work.

        with get_db_session() as session:
            session.execute(...)
    """
    session = get_session_factory()()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def create_all_tables() -> None:
    """Idempotent: existing tables are left alone."""
    metadata.create_all(bind=get_engine())


def truncate_all_tables() -> None:
    """Delete every row while keeping the schema. Test helper."""
    with get_engine().begin() as conn:
        for table in reversed(metadata.sorted_tables):
            conn.execute(table.delete())


def check_connection() -> bool:
    try:
        with get_engine().connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.warning("database.unreachable: %s", e)
        return False


# Ride owners (one per owner account). Listing count is derived, never stored.
ride_owners = Table(
    'ride_owners',
    metadata,
    Column('owner_id', String(128), primary_key=True),
    Column('business_name', String(200), nullable=False),
    Column('business_type', String(100), nullable=True),
    Column('contact_email', String(255), nullable=True),
    Column('current_plan', String(20), nullable=False, default='None'),
    Column('status', String(30), nullable=False, default='Pending Approval', index=True),
    Column('created_at', DateTime(timezone=True), nullable=False),
    Column('updated_at', DateTime(timezone=True), nullable=False),
)

# Vehicle listings, counted against the owner's plan quota at creation time
listings = Table(
    'listings',
    metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('owner_id', String(128), nullable=False, index=True),
    Column('name', String(200), nullable=False),
    Column('vehicle_type', String(30), nullable=False),
    Column('price', Integer, nullable=False, default=0),
    Column('pickup', String(200), nullable=True),
    Column('schedule', String(200), nullable=True),
    Column('capacity', Integer, nullable=True),
    Column('description', Text, nullable=True),
    Column('status', String(20), nullable=False, default='Pending', index=True),
    Column('posted_by', String(20), nullable=False, default='owner'),
    Column('created_at', DateTime(timezone=True), nullable=False),
    Index('idx_listings_owner_created', 'owner_id', 'created_at'),
)

# Subscriptions: at most one row per owner (query-then-upsert, no unique constraint)
subscriptions = Table(
    'subscriptions',
    metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('owner_id', String(128), nullable=False, index=True),
    Column('owner_name', String(200), nullable=True),
    Column('plan', String(50), nullable=False),  # display name
    Column('plan_key', String(20), nullable=False),
    Column('status', String(20), nullable=False, index=True),  # Active, Suspended, Expired
    Column('start_date', DateTime(timezone=True), nullable=False),
    Column('expiry_date', DateTime(timezone=True), nullable=False),
    Column('last_payment_reference', String(200), nullable=True),
    Column('created_at', DateTime(timezone=True), nullable=False),
    Column('updated_at', DateTime(timezone=True), nullable=False),
    Index('idx_subscriptions_status_expiry', 'status', 'expiry_date'),
)

# Every payment reference that has been applied to a subscription. A reference
# is applied at most once, whatever order the provider delivers events in.
applied_payments = Table(
    'applied_payments',
    metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('reference', String(200), nullable=False),
    Column('owner_id', String(128), nullable=False, index=True),
    Column('plan_key', String(20), nullable=False),
    Column('applied_at', DateTime(timezone=True), nullable=False),
    UniqueConstraint('reference', name='uq_applied_payments_reference'),
)

# Admin inbox: append-only apart from the read flag
admin_notifications = Table(
    'admin_notifications',
    metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('message', Text, nullable=False),
    Column('event_type', String(50), nullable=False, index=True),
    Column('owner_name', String(200), nullable=True),
    Column('plan', String(50), nullable=True),
    Column('read', Boolean, nullable=False, default=False, index=True),
    Column('created_at', DateTime(timezone=True), nullable=False),
    Index('idx_admin_notifications_created', 'created_at'),
)

# Audit ledger of provider interactions (webhooks and verify calls)
payment_events = Table(
    'payment_events',
    metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('reference', String(200), nullable=True, index=True),
    Column('event_type', String(100), nullable=False, index=True),
    Column('source', String(20), nullable=False),  # webhook | verify
    Column('payload_hash', String(64), nullable=False),  # SHA256 of raw body
    Column('processed', Boolean, nullable=False, default=False),
    Column('error', Text, nullable=True),
    Column('received_at', DateTime(timezone=True), nullable=False),
    Column('processed_at', DateTime(timezone=True), nullable=True),
    Index('idx_payment_events_received_at', 'received_at'),
)
