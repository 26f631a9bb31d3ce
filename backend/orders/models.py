# module backend.orders.models
"""Statuts de commande et construction des lignes orders / order_items (snapshots du panier)."""
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from backend.cart.models import Address, CartLineItem, quantize_money


class OrderStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not OrderStatus.PENDING


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    """Transitions monotones: pending -> paid | failed, jamais de retour."""
    return current is OrderStatus.PENDING and target.is_terminal


def money_str(value: Decimal) -> str:
    return f"{quantize_money(value):.2f}"


def build_order_row(
    *,
    user_id: Optional[str],
    customer_email: str,
    total_amount: Decimal,
    currency: str,
    delivery_address: Optional[Address] = None,
) -> Dict[str, Any]:
    return {
        "user_id": user_id,
        "customer_email": customer_email,
        "total_amount": money_str(total_amount),
        "currency": currency,
        "status": OrderStatus.PENDING.value,
        "delivery_address": delivery_address.model_dump(mode="json") if delivery_address else None,
    }


def build_order_item_rows(order_id: str, items: Sequence[CartLineItem]) -> List[Dict[str, Any]]:
    """Une ligne par article, prix/quantité figés depuis le panier (pas de relecture produit)."""
    return [
        {
            "order_id": order_id,
            "product_id": it.id,
            "product_name": it.name,
            "product_image": it.image,
            "farmer_name": it.farmer.name,
            "farmer_location": it.farmer.location,
            "price": money_str(it.price),
            "quantity": it.quantity,
            "unit": it.unit,
            "subtotal": money_str(it.subtotal),
        }
        for it in items
    ]
