# orangerides/conftest.py
import os

# Must be set before orangerides.core.config builds its Settings
os.environ["ENV"] = "test"
os.environ["TEST_DATABASE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ["SKIP_ENV_VALIDATION"] = "1"
os.environ.setdefault("ADMIN_KEY", "test-admin-key")
os.environ.setdefault("PAYSTACK_SECRET_KEY", "sk_test_orangerides")
os.environ.setdefault("PAYSTACK_WEBHOOK_SECRET", "whsec_test_orangerides")

import pytest
from datetime import datetime, timezone

from sqlalchemy import insert


ADMIN_HEADERS = {"X-Admin-Key": os.environ["ADMIN_KEY"]}


@pytest.fixture(scope="session", autouse=True)
def create_tables():
    """Create all tables once per session on the in-memory database."""
    from orangerides.core.database import create_all_tables
    create_all_tables()
    yield


@pytest.fixture(scope="function", autouse=True)
def reset_db():
    """Empty every table before each test."""
    from orangerides.core.database import truncate_all_tables
    truncate_all_tables()
    yield


@pytest.fixture
def catalog():
    from orangerides.features.plans.catalog import build_plan_catalog
    return build_plan_catalog()


@pytest.fixture
def make_owner():
    """Insert an owner row directly (no signup notification)."""
    from orangerides.core.database import get_db_session, ride_owners

    def _make(owner_id="owner_ada", business_name="Ada Rides", plan="None", status="Active", email="ada@example.com"):
        now = datetime.now(timezone.utc)
        with get_db_session() as session:
            session.execute(
                insert(ride_owners).values(
                    owner_id=owner_id,
                    business_name=business_name,
                    business_type="Car",
                    contact_email=email,
                    current_plan=plan,
                    status=status,
                    created_at=now,
                    updated_at=now,
                )
            )
        return owner_id

    return _make


@pytest.fixture
def client():
    from fastapi.testclient import TestClient
    from orangerides.main import app
    with TestClient(app) as c:
        yield c
