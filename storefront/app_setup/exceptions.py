"""
Gestionnaires d'exceptions.
- StorefrontError (et sous-classes): {"success": false, "error", "type"} avec le code HTTP de la classe
- Erreurs de validation de corps sur /api/*: même enveloppe, type validation_error
- HTTPException: réponse JSON FastAPI standard {"detail": ...}
"""
import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from storefront.errors import PaymentError, StorefrontError

logger = logging.getLogger(__name__)

def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(StorefrontError)
    async def storefront_error(request: Request, exc: StorefrontError):
        log = logger.warning if isinstance(exc, PaymentError) else logger.info
        log("request.failed path=%s type=%s provider=%s status=%s", request.url.path, exc.error_type, exc.provider, exc.status_code)
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        first = errors[0] if errors else {}
        loc = ".".join(str(p) for p in first.get("loc", ()))
        message = f"{loc}: {first.get('msg', 'invalid value')}" if loc else "Invalid request"
        return JSONResponse(
            status_code=422,
            content={"success": False, "error": message, "type": "validation_error"},
        )

    @app.exception_handler(HTTPException)
    async def http_error(request: Request, exc: HTTPException):
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=getattr(exc, "headers", None))
