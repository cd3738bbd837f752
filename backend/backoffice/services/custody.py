"""
Back-office ledger - cash box and cash custody
Tracks which employee is holding company cash. The set of employees allowed
to hold cash and the owner among them come from settings.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, FrozenSet, List, Optional, Sequence

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.core.errors import LedgerError
from backoffice.models.cash import CashEntry, CashCustodyEntry
from backoffice.models.enums import CashEntryType, CashCustodyType, PaymentType
from backoffice.models.payment import Payment
from backoffice.models.payroll import Employee
from backoffice.models.user import User
from backoffice.services.allocation import EPSILON, ZERO, to_decimal
from backoffice.services.payment_sanitizer import parse_amount, parse_optional_id

logger = logging.getLogger(__name__)

OWNER_DRAW_CATEGORY = "Owner Draw"
CUSTODY_LIST_LIMIT = 100


def normalize_name(name: Optional[str]) -> str:
    return (name or "").strip().lower()


@dataclass
class CustodyHolder:
    employee: Employee
    amount: Decimal


@dataclass
class CustodyOverview:
    employees: List[Employee] = field(default_factory=list)
    entries: List[CashCustodyEntry] = field(default_factory=list)
    outstanding: List[CustodyHolder] = field(default_factory=list)


@dataclass
class CustodyRecord:
    entry: CashCustodyEntry
    owner_draw: Optional[Payment] = None
    deposit: Optional[CashEntry] = None


# =============================================================================
# custody
# =============================================================================

async def ensure_custody_employees(
    db: AsyncSession, allowed_names: FrozenSet[str]
) -> Dict[str, Employee]:
    """Return normalized name -> Employee, creating any configured name that is missing"""
    if not allowed_names:
        return {}

    existing = (await db.execute(
        select(Employee)
        .where(func.lower(func.trim(Employee.name)).in_(sorted(allowed_names)))
        .order_by(Employee.id.asc())
    )).scalars().all()

    by_name: Dict[str, Employee] = {}
    for employee in existing:
        by_name.setdefault(normalize_name(employee.name), employee)

    for name in sorted(allowed_names):
        if name in by_name:
            continue
        employee = Employee(
            name=" ".join(part.capitalize() for part in name.split()),
            is_active=True,
            notes="Auto-created for cash custody tracking",
        )
        db.add(employee)
        await db.flush()
        by_name[name] = employee
        logger.info(f"[Cash] created custody employee #{employee.id} {employee.name}")

    return by_name


async def custody_overview(db: AsyncSession, allowed_names: FrozenSet[str]) -> CustodyOverview:
    """
    Latest custody entries touching an allowed employee, and what each
    allowed employee is currently holding (received minus handed on).
    """
    employees_by_name = await ensure_custody_employees(db, allowed_names)
    allowed_ids = {e.id for e in employees_by_name.values()}

    latest = (await db.execute(
        select(CashCustodyEntry)
        .order_by(CashCustodyEntry.created_at.desc(), CashCustodyEntry.id.desc())
        .limit(CUSTODY_LIST_LIMIT)
    )).unique().scalars().all()

    movements = (await db.execute(
        select(
            CashCustodyEntry.from_employee_id,
            CashCustodyEntry.to_employee_id,
            CashCustodyEntry.amount,
        )
    )).all()
    held: Dict[int, Decimal] = defaultdict(lambda: ZERO)
    for from_id, to_id, amount in movements:
        held[from_id] -= to_decimal(amount)
        held[to_id] += to_decimal(amount)

    holders = [
        CustodyHolder(employee=employee, amount=held[employee.id])
        for employee in employees_by_name.values()
        if abs(held.get(employee.id, ZERO)) > EPSILON
    ]
    holders.sort(key=lambda h: abs(h.amount), reverse=True)

    return CustodyOverview(
        employees=[employees_by_name[name] for name in sorted(employees_by_name)],
        entries=[
            e for e in latest
            if e.from_employee_id in allowed_ids or e.to_employee_id in allowed_ids
        ],
        outstanding=holders,
    )


async def record_custody(
    db: AsyncSession,
    allowed_names: FrozenSet[str],
    owner_name: str,
    amount: Any,
    from_employee_id: Any,
    to_employee_id: Any,
    description: Optional[str] = None,
    user: Optional[User] = None,
) -> CustodyRecord:
    """
    Book a cash handoff between two custody employees.

    Handing cash to the owner is an owner draw and books an OWNER_DRAW
    payment. Cash coming back from the owner is booked as a DEPOSIT in the
    cash box.
    """
    value = parse_amount(amount)
    from_id = parse_optional_id(from_employee_id, "CUSTODY_NOT_ALLOWED")
    to_id = parse_optional_id(to_employee_id, "CUSTODY_NOT_ALLOWED")
    if from_id is None or to_id is None:
        raise LedgerError("CUSTODY_NOT_ALLOWED", "Both employees must be selected")
    if from_id == to_id:
        raise LedgerError("CUSTODY_SAME_EMPLOYEE")

    employees_by_id = {
        e.id: e for e in (await ensure_custody_employees(db, allowed_names)).values()
    }
    from_employee = employees_by_id.get(from_id)
    to_employee = employees_by_id.get(to_id)
    if from_employee is None or to_employee is None:
        for employee_id in (from_id, to_id):
            if employee_id not in employees_by_id and await db.get(Employee, employee_id) is None:
                raise LedgerError("EMPLOYEE_NOT_FOUND")
        raise LedgerError("CUSTODY_NOT_ALLOWED")

    note = description.strip() if isinstance(description, str) and description.strip() else None
    entry = CashCustodyEntry(
        type=CashCustodyType.HANDOFF,
        amount=value,
        from_employee=from_employee,
        to_employee=to_employee,
        description=note,
        created_by_user_id=user.id if user is not None else None,
    )
    db.add(entry)
    await db.flush()
    record = CustodyRecord(entry=entry)

    if owner_name and normalize_name(to_employee.name) == owner_name:
        record.owner_draw = Payment(
            amount=value,
            type=PaymentType.OWNER_DRAW,
            description=note or f"Owner draw via custody #{entry.id} to {to_employee.name}",
            category=OWNER_DRAW_CATEGORY,
            reference=f"custody-{entry.id}",
        )
        db.add(record.owner_draw)

    if owner_name and normalize_name(from_employee.name) == owner_name:
        record.deposit = CashEntry(
            type=CashEntryType.DEPOSIT,
            amount=value,
            description=note or f"Cash returned by {from_employee.name} (custody #{entry.id})",
            created_by_user_id=user.id if user is not None else None,
        )
        db.add(record.deposit)

    await db.flush()
    logger.info(
        f"[Cash] custody #{entry.id}: {value} from {from_employee.name} to {to_employee.name}"
    )
    return record


# =============================================================================
# cash box
# =============================================================================

async def list_cash_entries(db: AsyncSession, limit: int = CUSTODY_LIST_LIMIT) -> Sequence[CashEntry]:
    result = await db.execute(
        select(CashEntry).order_by(CashEntry.created_at.desc(), CashEntry.id.desc()).limit(limit)
    )
    return result.scalars().all()


async def record_cash_entry(
    db: AsyncSession,
    amount: Any,
    entry_type: Any,
    description: Optional[str] = None,
    user: Optional[User] = None,
) -> CashEntry:
    """Withdrawals and owner draws are stored negative; an owner draw also books a payment"""
    value = parse_amount(amount)
    try:
        kind = CashEntryType(str(entry_type or "").strip().upper())
    except ValueError:
        raise LedgerError("INVALID_TYPE", "Invalid entry type")

    signed = -value if kind in (CashEntryType.WITHDRAW, CashEntryType.OWNER_DRAW) else value
    note = description.strip() if isinstance(description, str) and description.strip() else None

    entry = CashEntry(
        type=kind,
        amount=signed,
        description=note,
        created_by_user_id=user.id if user is not None else None,
    )
    db.add(entry)
    await db.flush()

    if kind == CashEntryType.OWNER_DRAW:
        db.add(Payment(
            amount=value,
            type=PaymentType.OWNER_DRAW,
            description=note or "Owner draw",
            category=OWNER_DRAW_CATEGORY,
            reference=f"cash-entry-{entry.id}",
        ))
        await db.flush()

    logger.info(f"[Cash] entry #{entry.id} {kind.value} {signed}")
    return entry
