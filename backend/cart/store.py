# module backend.cart.store
"""
Panier client sous forme de conteneur d'état explicite.
- Transitions pures (style reducer): chaque fonction retourne un nouveau Cart.
- Totaux dérivés (jamais stockés): total_items, total_price.
- Persistance locale JSON (dump_cart/load_cart), tolérante aux données corrompues.
- to_checkout_payload: construit le corps attendu par /api/v1/payments/create-checkout.
"""
import json
import logging
from decimal import Decimal
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, ValidationError as PydanticValidationError

from .models import Address, CartLineItem, quantize_money

logger = logging.getLogger(__name__)


class Cart(BaseModel):
    model_config = ConfigDict(frozen=True)

    items: Tuple[CartLineItem, ...] = ()

    @property
    def total_items(self) -> int:
        return sum(it.quantity for it in self.items)

    @property
    def total_price(self) -> Decimal:
        return sum((it.subtotal for it in self.items), Decimal("0.00"))

    @property
    def is_empty(self) -> bool:
        return not self.items


EMPTY_CART = Cart()


def add_item(cart: Cart, item: CartLineItem) -> Cart:
    """Ajoute une ligne; si le produit est déjà présent, cumule la quantité."""
    for idx, existing in enumerate(cart.items):
        if existing.id == item.id:
            merged = existing.model_copy(update={"quantity": existing.quantity + item.quantity})
            return Cart(items=cart.items[:idx] + (merged,) + cart.items[idx + 1:])
    return Cart(items=cart.items + (item,))


def remove_item(cart: Cart, product_id: str) -> Cart:
    return Cart(items=tuple(it for it in cart.items if it.id != product_id))


def update_quantity(cart: Cart, product_id: str, quantity: int) -> Cart:
    """Fixe la quantité d'une ligne; une quantité <= 0 retire la ligne."""
    if quantity <= 0:
        return remove_item(cart, product_id)
    return Cart(items=tuple(
        it.model_copy(update={"quantity": int(quantity)}) if it.id == product_id else it
        for it in cart.items
    ))


def clear_cart(cart: Cart) -> Cart:
    return EMPTY_CART


def cart_reducer(cart: Cart, action: Dict[str, Any]) -> Cart:
    """
    Point d'entrée unique des transitions.
    Actions: {"type": "add", "item": {...}}, {"type": "remove", "id": ...},
             {"type": "update_quantity", "id": ..., "quantity": n}, {"type": "clear"}
    """
    kind = (action or {}).get("type")
    if kind == "add":
        item = action.get("item")
        if not isinstance(item, CartLineItem):
            item = CartLineItem.model_validate(item)
        return add_item(cart, item)
    if kind == "remove":
        return remove_item(cart, str(action.get("id") or ""))
    if kind == "update_quantity":
        return update_quantity(cart, str(action.get("id") or ""), int(action.get("quantity") or 0))
    if kind == "clear":
        return clear_cart(cart)
    raise ValueError(f"Action panier inconnue: {kind!r}")


def to_checkout_payload(
    cart: Cart,
    delivery_cost: Decimal = Decimal("0"),
    delivery_address: Optional[Address] = None,
) -> Dict[str, Any]:
    """Corps JSON de la requête de checkout (clés camelCase attendues par l'API)."""
    delivery = quantize_money(delivery_cost)
    payload: Dict[str, Any] = {
        "items": [it.model_dump(mode="json") for it in cart.items],
        "totalPrice": str(cart.total_price),
        "deliveryCost": str(delivery),
        "finalTotal": str(quantize_money(cart.total_price + delivery)),
    }
    if delivery_address is not None:
        payload["deliveryAddress"] = delivery_address.model_dump(mode="json")
    return payload


def dump_cart(cart: Cart) -> str:
    return json.dumps([it.model_dump(mode="json") for it in cart.items])


def load_cart(raw: Optional[str]) -> Cart:
    """Relit un panier persisté; retourne un panier vide si le contenu est illisible."""
    if not raw:
        return EMPTY_CART
    try:
        data = json.loads(raw)
        return Cart(items=tuple(CartLineItem.model_validate(it) for it in data or []))
    except (ValueError, TypeError, PydanticValidationError):
        logger.warning("cart.load_cart contenu invalide, panier réinitialisé")
        return EMPTY_CART
