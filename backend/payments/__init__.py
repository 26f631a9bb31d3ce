"""
Module 'payments' (feature-first): point d'entrée public.
Réunit line_items/metadata Stripe, client Stripe et cas d'usage checkout/réconciliation.
"""

from .line_items import to_minor_units, to_line_items, make_metadata
from .metadata import extract_order_id, settlement_outcome, session_summary
from .stripe_client import require_stripe, find_or_create_customer, create_session, get_session, expire_session
from .service import check_totals, create_checkout, verify_payment

__all__ = [
    # line items
    "to_minor_units",
    "to_line_items",
    "make_metadata",
    # metadata
    "extract_order_id",
    "settlement_outcome",
    "session_summary",
    # stripe
    "require_stripe",
    "find_or_create_customer",
    "create_session",
    "get_session",
    "expire_session",
    # services
    "check_totals",
    "create_checkout",
    "verify_payment",
]
