"""
Calcul des totaux du panier (logique pure: pas de HTTP, pas de prestataire).
Tous les montants sont des Decimal arrondis au centime (ROUND_HALF_UP).
"""
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Any, Dict, Iterable, List

from pydantic import ValidationError

from storefront.errors import CartValidationError, InvalidAmountError
from .models import CartItem

CENT = Decimal("0.01")
MAX_AMOUNT = Decimal("1000000000")

# module storefront.cart.totals
def quantize(amount: Decimal) -> Decimal:
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)

def to_minor_units(amount: Decimal) -> int:
    """Convertit un montant décimal (ex: 119.94) en centimes (11994)."""
    return int(quantize(amount) * 100)

def parse_amount(value: Any) -> Decimal:
    """
    Parse un montant client (str|int|float) en Decimal strictement positif.
    - Soulève InvalidAmountError si vide, non numérique, infini, <= 0 ou > MAX_AMOUNT.
    """
    if value is None or isinstance(value, bool):
        raise InvalidAmountError("Montant manquant")
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise InvalidAmountError(f"Montant invalide: {value!r}")
    if not amount.is_finite() or amount <= 0:
        raise InvalidAmountError("Le montant doit être supérieur à 0")
    if amount > MAX_AMOUNT:
        raise InvalidAmountError(f"Montant trop élevé (maximum {MAX_AMOUNT})")
    return amount

def parse_cart(items: Any) -> List[CartItem]:
    """
    Valide un panier brut [{id, name, price, quantity, ...}, ...].
    - Le corps doit être une liste (éventuellement vide).
    - Soulève CartValidationError au premier article invalide (prix non numérique, quantité < 1...).
    """
    if not isinstance(items, list):
        raise CartValidationError("Le panier doit être une liste d'articles")
    cart: List[CartItem] = []
    for index, raw in enumerate(items):
        try:
            cart.append(CartItem.model_validate(raw))
        except ValidationError as e:
            first = e.errors()[0] if e.errors() else {}
            loc = ".".join(str(p) for p in first.get("loc", ()))
            raise CartValidationError(f"Article {index} invalide ({loc}): {first.get('msg', 'valeur invalide')}")
    return cart


@dataclass
class LineTotal:
    item: CartItem
    subtotal: Decimal


@dataclass
class CheckoutTotals:
    lines: List[LineTotal] = field(default_factory=list)
    total: Decimal = Decimal("0.00")

    @property
    def item_count(self) -> int:
        return sum(line.item.quantity for line in self.lines)

    @property
    def total_minor_units(self) -> int:
        return to_minor_units(self.total)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "items": [
                {**line.item.to_public(), "subtotal": f"{line.subtotal:.2f}"}
                for line in self.lines
            ],
            "item_count": self.item_count,
            "total": f"{self.total:.2f}",
        }


def compute_totals(items: Iterable[CartItem]) -> CheckoutTotals:
    """
    Sous-total par ligne = prix x quantité, total = somme des sous-totaux.
    Un panier vide donne un total de 0.00.
    """
    totals = CheckoutTotals()
    running = Decimal("0")
    for item in items:
        subtotal = quantize(item.price * item.quantity)
        totals.lines.append(LineTotal(item=item, subtotal=subtotal))
        running += subtotal
    totals.total = quantize(running)
    return totals
