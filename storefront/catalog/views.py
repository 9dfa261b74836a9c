from typing import Any, Dict

from fastapi import APIRouter

from .products import list_products

router = APIRouter(prefix="/api/products", tags=["Catalog API"])

@router.get("")
def get_products() -> Dict[str, Any]:
    return {"products": list_products()}
