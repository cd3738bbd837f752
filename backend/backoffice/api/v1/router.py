"""
Back-office ledger - API v1 router
Collects every v1 endpoint.
"""

from fastapi import APIRouter

from backoffice.api.v1 import (
    auth,
    payments,
    invoices,
    merge,
    reports,
    cash,
)

api_router = APIRouter()

# auth
api_router.include_router(
    auth.router,
    prefix="/auth",
    tags=["auth"]
)

# payments
api_router.include_router(
    payments.router,
    prefix="/payments",
    tags=["payments"]
)

# invoices
api_router.include_router(
    invoices.router,
    prefix="/invoices",
    tags=["invoices"]
)

# merge / pairing / settlement
api_router.include_router(
    merge.router,
    prefix="/merge",
    tags=["merge"]
)

# reports
api_router.include_router(
    reports.router,
    prefix="/reports",
    tags=["reports"]
)

# cash box / custody
api_router.include_router(
    cash.router,
    prefix="/cash",
    tags=["cash"]
)
