"""
Stockage en mémoire des paniers, un panier par session navigateur.
L'identifiant du panier vit dans la session Starlette (cookie signé).
"""
import logging
import threading
from typing import Dict, List
from uuid import uuid4

from fastapi import Request

from .models import CartItem

logger = logging.getLogger(__name__)

CART_SESSION_KEY = "cart_id"

# module storefront.cart.store
class CartStore:
    """
    Paniers indexés par cart_id. Chaque synchronisation remplace le panier entier
    (last-writer-wins au sein d'une même session, aucune interférence entre sessions).
    """

    def __init__(self) -> None:
        self._carts: Dict[str, List[CartItem]] = {}
        self._lock = threading.Lock()

    def get(self, cart_id: str) -> List[CartItem]:
        with self._lock:
            return list(self._carts.get(cart_id, []))

    def replace(self, cart_id: str, items: List[CartItem]) -> None:
        with self._lock:
            self._carts[cart_id] = list(items)
        logger.info("cart.replace cart_id=%s items=%s", cart_id, len(items))

    def clear(self, cart_id: str) -> None:
        with self._lock:
            self._carts.pop(cart_id, None)
        logger.info("cart.clear cart_id=%s", cart_id)

    def __len__(self) -> int:
        with self._lock:
            return len(self._carts)


def get_cart_id(request: Request) -> str:
    """Renvoie l'identifiant de panier de la session (créé au premier accès)."""
    cart_id = request.session.get(CART_SESSION_KEY)
    if not cart_id:
        cart_id = uuid4().hex
        request.session[CART_SESSION_KEY] = cart_id
    return cart_id

def get_cart_store(request: Request) -> CartStore:
    return request.app.state.cart_store
