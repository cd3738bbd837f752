"""
Back-office ledger - domain errors
Error codes raised by the ledger services and their HTTP mapping.
"""

from typing import Any, Optional

from fastapi import status


# code -> (HTTP status, default message)
ERROR_CATALOG: dict[str, tuple[int, str]] = {
    # ==================== payment input ====================
    "INVALID_AMOUNT": (status.HTTP_400_BAD_REQUEST, "amount must be a positive number"),
    "INVALID_TYPE": (status.HTTP_400_BAD_REQUEST, "Invalid payment type"),
    "INVALID_DATE": (status.HTTP_400_BAD_REQUEST, "Invalid payment date"),
    "INVALID_SUPPLIER": (status.HTTP_400_BAD_REQUEST, "Invalid supplierId"),
    "INVALID_CUSTOMER": (status.HTTP_400_BAD_REQUEST, "Invalid customerId"),
    "INVALID_RECEIPT": (status.HTTP_400_BAD_REQUEST, "Invalid receiptId"),
    "INVALID_PAYROLL": (status.HTTP_400_BAD_REQUEST, "Invalid payrollEntryId"),
    "INVALID_DEBRIS": (status.HTTP_400_BAD_REQUEST, "Invalid debrisEntryId"),
    "INVALID_FILTER": (status.HTTP_400_BAD_REQUEST, "Invalid filter value"),
    "SUPPLIER_REQUIRED": (status.HTTP_400_BAD_REQUEST, "supplierId is required for supplier payments"),
    "RECEIPT_REQUIRED": (status.HTTP_400_BAD_REQUEST, "receiptId is required for receipt payments"),
    "PAYROLL_REQUIRED": (status.HTTP_400_BAD_REQUEST, "payrollEntryId is required for payroll payments"),
    "DEBRIS_REQUIRED": (status.HTTP_400_BAD_REQUEST, "debrisEntryId is required for debris removal payments"),
    "CUSTOMER_REQUIRED": (status.HTTP_400_BAD_REQUEST, "customerId is required for customer payments"),
    "PAYROLL_ALREADY_PAID": (status.HTTP_400_BAD_REQUEST, "Payroll entry already linked to a payment"),
    "DEBRIS_ALREADY_PAID": (status.HTTP_400_BAD_REQUEST, "Debris entry already marked as removed"),

    # ==================== not found ====================
    "SUPPLIER_NOT_FOUND": (status.HTTP_404_NOT_FOUND, "Supplier not found"),
    "CUSTOMER_NOT_FOUND": (status.HTTP_404_NOT_FOUND, "Customer not found"),
    "RECEIPT_NOT_FOUND": (status.HTTP_404_NOT_FOUND, "Receipt not found"),
    "PAYROLL_NOT_FOUND": (status.HTTP_404_NOT_FOUND, "Payroll entry not found"),
    "DEBRIS_NOT_FOUND": (status.HTTP_404_NOT_FOUND, "Debris entry not found"),
    "PAYMENT_NOT_FOUND": (status.HTTP_404_NOT_FOUND, "Payment not found"),
    "INVOICE_NOT_FOUND": (status.HTTP_404_NOT_FOUND, "Invoice not found"),
    "EMPLOYEE_NOT_FOUND": (status.HTTP_404_NOT_FOUND, "Employee not found"),

    # ==================== invoices ====================
    "INVOICE_SELECTION_REQUIRED": (status.HTTP_400_BAD_REQUEST, "Provide receiptIds or an amount to invoice"),
    "NO_MATCHING_RECEIPTS": (status.HTTP_400_BAD_REQUEST, "No matching receipts found for this customer"),
    "NO_RECEIPTS_FOR_AMOUNT": (status.HTTP_400_BAD_REQUEST, "No receipts available to meet the requested amount"),
    "MIXED_RECEIPT_TYPES": (
        status.HTTP_400_BAD_REQUEST,
        "Invoices cannot mix NORMAL and TVA receipts. Please create separate invoices per type.",
    ),
    "RECEIPT_ALREADY_INVOICED": (status.HTTP_400_BAD_REQUEST, "One or more receipts have already been invoiced."),
    "INVOICE_ALREADY_PAID": (status.HTTP_400_BAD_REQUEST, "Invoice already marked as paid"),

    # ==================== merge / pairing ====================
    "INVALID_MERGE": (status.HTTP_400_BAD_REQUEST, "One or both IDs do not exist"),
    "SAME_ENTITY": (status.HTTP_400_BAD_REQUEST, "sourceId and targetId must be different"),

    # ==================== cash custody ====================
    "CUSTODY_SAME_EMPLOYEE": (status.HTTP_400_BAD_REQUEST, "From and to employees must be different"),
    "CUSTODY_NOT_ALLOWED": (status.HTTP_400_BAD_REQUEST, "Only configured custody employees can be selected"),
}


class LedgerError(Exception):
    """Business rule violation with a stable error code"""

    def __init__(
        self,
        code: str,
        message: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        status_code, default_message = ERROR_CATALOG.get(
            code, (status.HTTP_400_BAD_REQUEST, code)
        )
        self.code = code
        self.status_code = status_code
        self.message = message or default_message
        self.details = details
        super().__init__(f"{code}: {self.message}")

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}
