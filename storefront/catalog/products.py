"""
Catalogue statique des produits affichés sur la page d'accueil.
"""
from typing import Any, Dict, List

_SPECS = "500W Motor, 48V Battery, Range: 50 miles, Top Speed: 28 mph"

PRODUCTS: List[Dict[str, Any]] = [
    {"id": "1", "name": "Bronton", "description": _SPECS, "price": "3000.00", "img": "/public/img/bronton.svg"},
    {"id": "2", "name": "E-BMX", "description": _SPECS, "price": "2000.00", "img": "/public/img/e-bmx.svg"},
    {"id": "3", "name": "F-65", "description": _SPECS, "price": "700.00", "img": "/public/img/f65.svg"},
]

def list_products() -> List[Dict[str, Any]]:
    return [dict(p) for p in PRODUCTS]
