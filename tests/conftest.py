"""
Shared fixtures.

The clock is pinned to 2017-11-15, so the provisioning window is 2015-2020.
Everything runs against in-memory storage unless a test builds its own.
"""

from datetime import date

import pytest
from fastapi.testclient import TestClient

from budgetal.api import StaticSessionResolver, create_app
from budgetal.audit import AuditLogger
from budgetal.config import BudgetSettings
from budgetal.models.budget import User
from budgetal.orchestrator import AnnualBudgetItemFlow, BudgetProvisioningFlow
from budgetal.queries import MonthlyStatisticsQuery
from budgetal.services import (
    InMemoryAuditStorage,
    InMemoryBudgetStorage,
    StaticItemTemplate,
)


TODAY = date(2017, 11, 15)
SESSION_TOKEN = "signed-in-session"
OTHER_SESSION_TOKEN = "other-user-session"
DEFAULT_ITEM_NAMES = ["Car Insurance", "Christmas Gifts", "Vacation"]


@pytest.fixture
def budget_settings():
    return BudgetSettings(
        years_back=2,
        years_ahead=3,
        earliest_year=2015,
        default_item_names=[],
    )


@pytest.fixture
def storage():
    return InMemoryBudgetStorage()


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def audit_logger(audit_storage):
    return AuditLogger(audit_storage)


@pytest.fixture
def template():
    return StaticItemTemplate(DEFAULT_ITEM_NAMES)


@pytest.fixture
def user():
    return User(id=1, email="jane@example.com")


@pytest.fixture
def other_user():
    return User(id=2)


@pytest.fixture
def provisioning_flow(storage, template, audit_logger, budget_settings):
    return BudgetProvisioningFlow(
        storage=storage,
        template=template,
        audit_logger=audit_logger,
        settings=budget_settings,
        clock=lambda: TODAY,
    )


@pytest.fixture
def item_flow(storage, audit_logger):
    return AnnualBudgetItemFlow(storage=storage, audit_logger=audit_logger)


@pytest.fixture
def statistics_query(storage, audit_logger):
    return MonthlyStatisticsQuery(storage=storage, audit_logger=audit_logger)


@pytest.fixture
def client(provisioning_flow, item_flow, statistics_query, audit_logger):
    app = create_app(
        components=(provisioning_flow, item_flow, statistics_query, audit_logger),
        session_resolver=StaticSessionResolver({
            SESSION_TOKEN: 1,
            OTHER_SESSION_TOKEN: 2,
        }),
    )
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def auth_headers():
    return {"X-Budgetal-Session": SESSION_TOKEN}


@pytest.fixture
def other_auth_headers():
    return {"X-Budgetal-Session": OTHER_SESSION_TOKEN}
