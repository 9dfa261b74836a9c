from fastapi import FastAPI

from storefront.config import COOKIE_SECURE

# SDK de paiement chargés par la page checkout
PAYMENT_SCRIPT_SOURCES = [
    "https://www.paypal.com",
    "https://js.stripe.com",
    "https://ap-gateway.mastercard.com",
]
PAYMENT_CONNECT_SOURCES = [
    "https://www.paypal.com",
    "https://www.sandbox.paypal.com",
    "https://api.stripe.com",
    "https://ap-gateway.mastercard.com",
]
PAYMENT_FRAME_SOURCES = [
    "https://www.paypal.com",
    "https://www.sandbox.paypal.com",
    "https://js.stripe.com",
    "https://hooks.stripe.com",
    "https://ap-gateway.mastercard.com",
]
CDN_SOURCES = ["https://cdn.jsdelivr.net", "https://cdnjs.cloudflare.com"]

def register_security_middleware(app: FastAPI) -> None:
    @app.middleware("http")
    async def security_headers(request, call_next):
        response = await call_next(request)

        # En-têtes de sécurité
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
        response.headers.setdefault("Permissions-Policy", "geolocation=(), microphone=(), camera=()")
        if COOKIE_SECURE:
            response.headers.setdefault("Strict-Transport-Security", "max-age=63072000; includeSubDomains; preload")

        # CSP
        csp = (
            "default-src 'self'; "
            "base-uri 'self'; object-src 'none'; frame-ancestors 'none'; "
            "img-src 'self' data: blob: https://www.paypalobjects.com; "
            f"style-src 'self' 'unsafe-inline' {' '.join(CDN_SOURCES)}; "
            f"font-src 'self' data: {' '.join(CDN_SOURCES)}; "
            f"script-src 'self' 'unsafe-inline' {' '.join(PAYMENT_SCRIPT_SOURCES + CDN_SOURCES)}; "
            f"frame-src {' '.join(PAYMENT_FRAME_SOURCES)}; "
            f"connect-src 'self' {' '.join(PAYMENT_CONNECT_SOURCES)}"
        )
        response.headers["Content-Security-Policy"] = csp
        return response
