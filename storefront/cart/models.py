# module storefront.cart.models
from decimal import Decimal, InvalidOperation
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Bornes: un total au centime doit tenir dans la précision Decimal par défaut (28 chiffres)
MAX_PRICE = Decimal("1000000")
MAX_QUANTITY = 999


class CartItem(BaseModel):
    """
    Ligne de panier telle qu'envoyée par le front (POST /api/cart).
    - price: chaîne ou nombre, converti en Decimal fini, >= 0 et <= MAX_PRICE
    - quantity: entier entre 1 et MAX_QUANTITY
    """
    model_config = ConfigDict(extra="ignore")

    id: str
    name: str
    description: Optional[str] = None
    price: Decimal
    quantity: int = Field(ge=1, le=MAX_QUANTITY)
    img: Optional[str] = None

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, v: Any) -> str:
        if v is None or str(v).strip() == "":
            raise ValueError("id manquant")
        return str(v).strip()

    @field_validator("price", mode="before")
    @classmethod
    def _parse_price(cls, v: Any) -> Decimal:
        if isinstance(v, bool) or v is None:
            raise ValueError("prix invalide")
        try:
            price = Decimal(str(v).strip())
        except (InvalidOperation, ValueError):
            raise ValueError(f"prix invalide: {v!r}")
        if not price.is_finite() or price < 0 or price > MAX_PRICE:
            raise ValueError(f"prix invalide: {v!r}")
        return price

    def to_public(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "price": f"{self.price:.2f}",
            "quantity": self.quantity,
            "img": self.img,
        }


Cart = List[CartItem]
