"""
Top-level router for version 1 of the API.

Aggregates the domain routers.  The whole tree is mounted under
``/api`` by ``main.create_app``; the payment router carries its own
paths (``/payment-success``, ``/verify-access/{id}`` and so on) and is
included without a prefix.
"""

from fastapi import APIRouter

from .endpoints import (
    addresses,
    assets,
    audit,
    auth,
    blogs,
    categories,
    engagement,
    leaves,
    managers,
    payments,
    potential_customers,
    queries,
    reports,
)

router = APIRouter()

router.include_router(auth.router, prefix="/auth", tags=["auth"])
router.include_router(managers.router, prefix="/manager", tags=["manager"])
router.include_router(reports.router, prefix="/reports", tags=["reports"])
router.include_router(payments.router, tags=["payments"])
router.include_router(queries.router, prefix="/queries", tags=["queries"])
router.include_router(potential_customers.router, prefix="/potential-customers", tags=["potential-customers"])
router.include_router(blogs.router, prefix="/blogs", tags=["blogs"])
router.include_router(leaves.router, prefix="/leaves", tags=["leaves"])
router.include_router(categories.router, prefix="/categories", tags=["categories"])
router.include_router(addresses.router, prefix="/addresses", tags=["addresses"])
router.include_router(engagement.router, prefix="/engagement", tags=["engagement"])
router.include_router(assets.router, prefix="/assets", tags=["assets"])
router.include_router(audit.router, prefix="/audit", tags=["audit"])
