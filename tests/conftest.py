"""Pytest fixtures for bookkeeper tests.

Every test gets a fresh SQLite file under ``tmp_path``; the repository clock
ticks one second per call so creation order is always strict.
"""
import itertools
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from bookkeeper.config import AppConfig
from bookkeeper.database import SQLiteRepository
from bookkeeper.models import NewClient, NewCompany, NewTransaction
from bookkeeper.services import BookkeepingService

OWNER = "user-alice"
MEMBER = "user-bob"
OUTSIDER = "user-mallory"

TODAY = date(2024, 3, 15)


@pytest.fixture
def config(tmp_path):
    return AppConfig(
        project_root=tmp_path,
        database_file=tmp_path / "bookkeeper.db",
        default_currency="SAR",
        default_page_size=10,
        max_page_size=100,
        cors_origins=("*",),
        log_level="DEBUG",
    )


@pytest.fixture
def clock():
    ticks = itertools.count()
    start = datetime(2024, 3, 15, 9, 0, tzinfo=timezone.utc)
    return lambda: start + timedelta(seconds=next(ticks))


@pytest.fixture
def repository(config, clock):
    repo = SQLiteRepository(config.database_file, clock=clock)
    repo.initialise_schema()
    yield repo
    repo.close()


@pytest.fixture
def service(config, repository):
    return BookkeepingService(config, repository, today=lambda: TODAY)


@pytest.fixture
def company(service):
    """A company owned by OWNER, seeded with the default categories."""
    return service.create_company(NewCompany(name="Acme Trading", tax_rate=Decimal("15")), OWNER)


@pytest.fixture
def second_company(service):
    """A company owned by OUTSIDER, for cross-tenant tests."""
    return service.create_company(NewCompany(name="Globex"), OUTSIDER)


@pytest.fixture
def categories(service, company):
    """Default categories of ``company`` keyed by name."""
    return {category.name: category for category in service.list_categories(company.id, OWNER)}


@pytest.fixture
def client(service, company):
    return service.create_client(NewClient(company_id=company.id, name="Noor Supplies", email="ap@noor.example"), OWNER)


def make_transaction(company_id, kind, amount, on, description="", **extra):
    return NewTransaction(
        company_id=company_id,
        kind=kind,
        amount=Decimal(str(amount)),
        description=description or f"{kind} {amount}",
        date=on if isinstance(on, date) else date.fromisoformat(on),
        **extra,
    )
