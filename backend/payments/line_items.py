"""
Construction pure des line_items et metadata Stripe (pas de Stripe, pas de DB).
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Sequence

from backend.cart.models import CartLineItem

DELIVERY_LINE_NAME = "Delivery Charges"
DELIVERY_LINE_DESCRIPTION = "Home delivery service"

# module backend.payments.line_items
def to_minor_units(amount: Decimal) -> int:
    """Montant -> unités mineures (paise/centimes), arrondi demi-supérieur."""
    return int((Decimal(str(amount)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))

def _product_line(item: CartLineItem, currency: str) -> Dict[str, Any]:
    product_data: Dict[str, Any] = {
        "name": f"{item.name} ({item.farmer.name})" if item.farmer.name else item.name,
        "description": f"Fresh {item.name} from {item.farmer.location}" if item.farmer.location else f"Fresh {item.name}",
        "metadata": {
            "farmer": item.farmer.name,
            "location": item.farmer.location,
            "unit": item.unit,
        },
    }
    # Stripe refuse les images qui ne sont pas des URLs absolues
    if item.image.startswith(("http://", "https://")):
        product_data["images"] = [item.image]
    return {
        "quantity": item.quantity,
        "price_data": {
            "currency": currency,
            "unit_amount": to_minor_units(item.price),
            "product_data": product_data,
        },
    }

def to_line_items(items: Sequence[CartLineItem], delivery_cost: Decimal, currency: str) -> List[Dict[str, Any]]:
    """
    Une ligne Stripe par article du panier, plus une ligne « Delivery Charges »
    si les frais de livraison sont strictement positifs.
    """
    line_items = [_product_line(it, currency) for it in items]
    if delivery_cost > 0:
        line_items.append({
            "quantity": 1,
            "price_data": {
                "currency": currency,
                "unit_amount": to_minor_units(delivery_cost),
                "product_data": {
                    "name": DELIVERY_LINE_NAME,
                    "description": DELIVERY_LINE_DESCRIPTION,
                },
            },
        })
    return line_items

def make_metadata(order_id: str, user_email: str) -> Dict[str, str]:
    """Métadonnées de session: seul lien entre la session Stripe et la commande."""
    return {
        "order_id": str(order_id),
        "user_email": user_email,
    }
