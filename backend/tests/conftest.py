"""
Pytest fixtures for the back-office ledger.

Provides a throwaway sqlite database per test, a session for service-level
tests, row factories and an HTTP client with an authenticated admin.
"""

import os
import tempfile
from datetime import datetime
from decimal import Decimal

_DB_DIR = tempfile.mkdtemp(prefix="ledger-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_DB_DIR, 'ledger.db')}"
os.environ.setdefault("SECRET_KEY", "test-secret-key")

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from backoffice.core import database  # noqa: E402
from backoffice.core.security import get_password_hash  # noqa: E402
from backoffice.main import app  # noqa: E402
from backoffice.api.deps import get_current_user  # noqa: E402
from backoffice.models import (  # noqa: E402
    Customer,
    DebrisEntry,
    Employee,
    InventoryEntry,
    PayrollEntry,
    Receipt,
    Supplier,
    User,
)
from backoffice.models.enums import InventoryEntryType, ReceiptType, UserRole  # noqa: E402


@pytest.fixture(autouse=True)
async def schema():
    """Fresh tables for every test."""
    async with database.engine.begin() as conn:
        await conn.run_sync(database.Base.metadata.create_all)
    yield
    async with database.engine.begin() as conn:
        await conn.run_sync(database.Base.metadata.drop_all)
    await database.engine.dispose()


@pytest.fixture
async def db(schema):
    """Session for service-level tests (the test decides when to commit)."""
    async with database.AsyncSessionLocal() as session:
        yield session
        await session.rollback()


class LedgerFactory:
    """Creates committed rows so that requests in other sessions can see them."""

    def __init__(self, session):
        self.session = session

    async def _save(self, obj):
        self.session.add(obj)
        await self.session.commit()
        return obj

    async def customer(self, name="Customer", manual_balance_override=None):
        return await self._save(Customer(name=name, manual_balance_override=manual_balance_override))

    async def supplier(self, name="Supplier", manual_balance_override=None):
        return await self._save(Supplier(name=name, manual_balance_override=manual_balance_override))

    async def receipt(
        self,
        customer=None,
        total="100",
        date=None,
        type=ReceiptType.NORMAL,
        receipt_no=None,
        amount_paid="0",
        is_paid=False,
    ):
        return await self._save(Receipt(
            customer_id=customer.id if customer is not None else None,
            total=Decimal(total),
            date=date or datetime(2024, 1, 1),
            type=type,
            receipt_no=receipt_no,
            amount_paid=Decimal(amount_paid),
            is_paid=is_paid,
        ))

    async def purchase(self, supplier, total="100", date=None, inventory_no=None):
        return await self._save(InventoryEntry(
            supplier_id=supplier.id,
            type=InventoryEntryType.PURCHASE,
            entry_date=date or datetime(2024, 1, 1),
            quantity=Decimal("1"),
            total_cost=Decimal(total),
            inventory_no=inventory_no,
        ))

    async def employee(self, name="Worker"):
        return await self._save(Employee(name=name))

    async def payroll(self, employee, amount="500"):
        return await self._save(PayrollEntry(
            employee_id=employee.id,
            period_start=datetime(2024, 1, 1),
            period_end=datetime(2024, 1, 31),
            amount=Decimal(amount),
        ))

    async def debris(self, customer=None):
        return await self._save(DebrisEntry(
            customer_id=customer.id if customer is not None else None,
            volume=Decimal("3"),
        ))

    async def user(self, email="admin@example.com", role=UserRole.ADMIN, password="admin-password"):
        return await self._save(User(
            email=email,
            password_hash=get_password_hash(password),
            name=email.split("@")[0],
            role=role,
        ))

    async def reload(self, obj):
        """Re-read a row after a request changed it."""
        await self.session.refresh(obj)
        return obj


@pytest.fixture
async def factory(db):
    return LedgerFactory(db)


@pytest.fixture
async def admin_user(factory):
    return await factory.user()


@pytest.fixture
async def anon_client(schema):
    """Client without any authentication override."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
async def client(admin_user):
    """Client acting as the admin user."""
    app.dependency_overrides[get_current_user] = lambda: admin_user
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
