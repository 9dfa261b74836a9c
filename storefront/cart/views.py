from typing import Any, Dict

from fastapi import APIRouter, Depends, Request

from storefront.errors import CartValidationError
from .store import CartStore, get_cart_id, get_cart_store
from .totals import compute_totals, parse_cart

router = APIRouter(prefix="/api/cart", tags=["Cart API"])

# module storefront.cart.views
@router.get("")
def read_cart(cart_id: str = Depends(get_cart_id), store: CartStore = Depends(get_cart_store)) -> Dict[str, Any]:
    """Retourne le panier de la session avec les sous-totaux et le total."""
    totals = compute_totals(store.get(cart_id))
    return {"success": True, **totals.to_dict()}

@router.post("")
async def sync_cart(
    request: Request,
    cart_id: str = Depends(get_cart_id),
    store: CartStore = Depends(get_cart_store),
) -> Dict[str, Any]:
    """
    Remplace le panier de la session par le tableau reçu.
    - Entrée JSON: [ {id, name, description?, price, quantity, img?}, ... ]
    - Un tableau vide vide le panier.
    - Erreurs: 400 validation_error (corps non-liste, prix non numérique, quantité < 1)
    """
    try:
        body = await request.json()
    except ValueError:
        raise CartValidationError("Corps JSON invalide")
    items = parse_cart(body)
    store.replace(cart_id, items)
    return {"success": True, "message": f"Cart updated ({len(items)} items)"}
