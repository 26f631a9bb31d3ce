# module backend.cart.models
"""
Modèles du panier (copiés par valeur dans la requête de checkout).
- Prix en Decimal: pas d'arrondi flottant entre le panier et la commande.
- Modèles immuables: toute transition du panier crée une nouvelle instance.
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

CENTS = Decimal("0.01")


def quantize_money(value) -> Decimal:
    """Arrondit un montant à 2 décimales (demi-supérieur)."""
    return Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP)


class FarmerInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = ""
    location: str = ""
    rating: Optional[float] = None


class CartLineItem(BaseModel):
    """Ligne du panier: produit, prix unitaire, quantité et attribution fermier."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    name: str
    price: Decimal = Field(ge=0)
    quantity: int = Field(ge=1)
    unit: str = ""
    image: str = ""
    farmer: FarmerInfo = FarmerInfo()

    @field_validator("price")
    @classmethod
    def _round_price(cls, v: Decimal) -> Decimal:
        # Prix unitaire arrondi au centime: base commune du panier, des lignes de commande et de Stripe
        return quantize_money(v)

    @property
    def subtotal(self) -> Decimal:
        return quantize_money(self.price * self.quantity)


class Address(BaseModel):
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    pincode: Optional[str] = None
    phone: Optional[str] = None
