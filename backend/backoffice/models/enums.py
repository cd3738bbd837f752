"""
Back-office ledger - shared enums
Values are shared with the frontend and must keep the same meaning there.
"""

import enum


class UserRole(str, enum.Enum):
    """User role"""
    ADMIN = "ADMIN"        # full access, merges and settlements
    MANAGER = "MANAGER"    # payments, invoices, reports
    WORKER = "WORKER"      # operational screens only


# ============================================================================
# Ledger
# ============================================================================

class PaymentType(str, enum.Enum):
    """Payment (cash movement) type"""
    GENERAL_EXPENSE = "GENERAL_EXPENSE"
    SUPPLIER = "SUPPLIER"                    # settles supplier purchases
    RECEIPT = "RECEIPT"                      # settles one receipt
    PAYROLL_SALARY = "PAYROLL_SALARY"
    PAYROLL_PIECEWORK = "PAYROLL_PIECEWORK"
    PAYROLL_RUN = "PAYROLL_RUN"
    CUSTOMER_PAYMENT = "CUSTOMER_PAYMENT"    # waterfalls over customer receipts
    DEBRIS_REMOVAL = "DEBRIS_REMOVAL"
    OWNER_DRAW = "OWNER_DRAW"


PAYROLL_PAYMENT_TYPES = frozenset({PaymentType.PAYROLL_SALARY, PaymentType.PAYROLL_PIECEWORK})

CASH_IN_TYPES = (PaymentType.RECEIPT, PaymentType.CUSTOMER_PAYMENT)
CASH_OUT_TYPES = (
    PaymentType.GENERAL_EXPENSE,
    PaymentType.SUPPLIER,
    PaymentType.PAYROLL_SALARY,
    PaymentType.PAYROLL_PIECEWORK,
    PaymentType.DEBRIS_REMOVAL,
    PaymentType.OWNER_DRAW,
)


class ReceiptType(str, enum.Enum):
    """Receipt tax type"""
    NORMAL = "NORMAL"
    TVA = "TVA"   # subject to VAT on invoicing


class InventoryEntryType(str, enum.Enum):
    """Inventory entry type"""
    PURCHASE = "PURCHASE"       # bought from a supplier (payable)
    PRODUCTION = "PRODUCTION"   # produced in house


class DebrisStatus(str, enum.Enum):
    """Debris removal status"""
    PENDING = "PENDING"
    REMOVED = "REMOVED"


class InvoiceStatus(str, enum.Enum):
    """Invoice status"""
    PENDING = "PENDING"
    PAID = "PAID"
    CANCELLED = "CANCELLED"


# ============================================================================
# Cash
# ============================================================================

class CashEntryType(str, enum.Enum):
    """Cash box entry type"""
    DEPOSIT = "DEPOSIT"
    WITHDRAW = "WITHDRAW"
    OWNER_DRAW = "OWNER_DRAW"


class CashCustodyType(str, enum.Enum):
    """Cash custody movement type"""
    HANDOFF = "HANDOFF"
    RETURN = "RETURN"
