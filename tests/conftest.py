"""Root conftest — test environment, in-memory store and cache doubles.

Invariants:
    - Every test gets a fresh in-memory SQLite database (StaticPool, one connection)
    - Redis is replaced by an in-memory double; DownRedis simulates an outage
    - Celery tasks run eagerly, no broker
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("REDIS_URL", "redis://localhost:6399/0")
os.environ.setdefault("CELERY_ALWAYS_EAGER", "true")
os.environ.setdefault("CELERY_BROKER_URL", "memory://")
os.environ.setdefault("CELERY_RESULT_BACKEND", "cache+memory://")

from datetime import datetime, timezone, timedelta
from decimal import Decimal

import pytest
import redis
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from checkout.data.database import Base
from checkout.data.models import (
    CartModel,
    ComplianceRuleModel,
    ProductModel,
    ProductVariantModel,
    StoreModel,
    UserModel,
)
from checkout.services.cache_service import CacheService

from tests.factories import years_ago


class InMemoryRedis:
    """Just enough of the redis-py client surface used by CacheService."""

    def __init__(self):
        self.data = {}
        self.ttls = {}
        self.calls = []

    def ping(self):
        return True

    def get(self, key):
        self.calls.append(("get", key))
        return self.data.get(key)

    def mget(self, keys):
        self.calls.append(("mget", tuple(keys)))
        return [self.data.get(k) for k in keys]

    def setex(self, key, ttl, value):
        self.calls.append(("setex", key))
        self.data[key] = value
        self.ttls[key] = ttl

    def pipeline(self):
        return _Pipeline(self)


class _Pipeline:
    def __init__(self, client):
        self.client = client
        self.ops = []

    def incr(self, key):
        self.ops.append(("incr", key))

    def expire(self, key, ttl):
        self.ops.append(("expire", key, ttl))

    def execute(self):
        results = []
        for op in self.ops:
            if op[0] == "incr":
                value = int(self.client.data.get(op[1], 0)) + 1
                self.client.data[op[1]] = str(value)
                results.append(value)
            else:
                self.client.ttls[op[1]] = op[2]
                results.append(True)
        self.ops = []
        return results


class DownRedis:
    """Every call fails the way an unreachable server does."""

    def __getattr__(self, name):
        def fail(*args, **kwargs):
            raise redis.ConnectionError("connection refused")
        return fail


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def fake_redis():
    return InMemoryRedis()


@pytest.fixture
def cache(fake_redis):
    return CacheService(client=fake_redis)


@pytest.fixture
def down_cache():
    return CacheService(client=DownRedis())


@pytest.fixture
def world(db):
    """
    Store in jurisdiction CA with rule {min_age 21, verify, 800 mg/day},
    a verified 30-year-old user with an active cart at that store,
    product 1 (25.00, 100 mg/unit), product 2 (10.00, 20% potency)
    with variant 1 (12.00, "Half ounce"), product 3 (5.00, 1 mg/unit).
    """
    db.add_all([
        StoreModel(id=1, name="Downtown Dispensary", jurisdiction_code="CA"),
        StoreModel(id=2, name="Nowhere Store", jurisdiction_code=None),
        StoreModel(id=3, name="Unruled Store", jurisdiction_code="ZZ"),
        ComplianceRuleModel(jurisdiction_code="CA", min_age=21, must_verify_age=True, max_daily_dose_mg=Decimal("800")),
        UserModel(id=1, name="Ada", date_of_birth=years_ago(30), age_verified=True),
        ProductModel(id=1, name="Gummies", default_price=Decimal("25.00"), dose_mg_per_unit=Decimal("100")),
        ProductModel(id=2, name="Flower", default_price=Decimal("10.00"), potency_percent=Decimal("20")),
        ProductModel(id=3, name="Microdose Mint", default_price=Decimal("5.00"), dose_mg_per_unit=Decimal("1")),
        ProductVariantModel(id=1, product_id=2, name="Half ounce", price=Decimal("12.00")),
        CartModel(id=1, user_id=1, store_id=1, status="ACTIVE", version=1),
    ])
    db.commit()
    return db


@pytest.fixture
def earlier_day():
    return datetime.now(timezone.utc) - timedelta(days=2)
