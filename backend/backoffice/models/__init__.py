"""
Back-office ledger - SQLAlchemy models
Every model is imported here so alembic sees the full metadata.
"""

from backoffice.models.user import User
from backoffice.models.audit_log import AuditLog
from backoffice.models.party import Customer, Supplier, CustomerSupplierLink
from backoffice.models.receipt import Receipt, ReceiptPayment
from backoffice.models.inventory import InventoryEntry, InventoryPayment
from backoffice.models.payment import Payment
from backoffice.models.payroll import Employee, PayrollEntry
from backoffice.models.debris import DebrisEntry
from backoffice.models.invoice import Invoice, InvoiceReceipt
from backoffice.models.settlement import PairSettlement, SettlementAllocation
from backoffice.models.cash import CashEntry, CashCustodyEntry

__all__ = [
    "User",
    "AuditLog",
    "Customer",
    "Supplier",
    "CustomerSupplierLink",
    "Receipt",
    "ReceiptPayment",
    "InventoryEntry",
    "InventoryPayment",
    "Payment",
    "Employee",
    "PayrollEntry",
    "DebrisEntry",
    "Invoice",
    "InvoiceReceipt",
    "PairSettlement",
    "SettlementAllocation",
    "CashEntry",
    "CashCustodyEntry",
]
