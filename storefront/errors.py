"""
Erreurs métier de la boutique.

Chaque classe porte un code HTTP et un `error_type` stable que la couche route
renvoie tel quel ({"success": false, "error": ..., "type": ...}).
Les adaptateurs de paiement traduisent les erreurs des SDK/API vers ces classes:
aucun détail interne d'un prestataire ne doit remonter au client.
"""
from typing import Any, Dict, Optional


class StorefrontError(Exception):
    status_code = 400
    error_type = "error"
    default_message = "Requête invalide"

    def __init__(self, message: Optional[str] = None, *, provider: Optional[str] = None):
        self.message = message or self.default_message
        self.provider = provider
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"success": False, "error": self.message, "type": self.error_type}
        if self.provider:
            body["provider"] = self.provider
        return body


class CartValidationError(StorefrontError):
    error_type = "validation_error"
    default_message = "Panier invalide"


class InvalidAmountError(StorefrontError):
    error_type = "invalid_amount"
    default_message = "Montant invalide"


class UnsupportedCurrencyError(StorefrontError):
    error_type = "unsupported_currency"
    default_message = "Devise non supportée"


class InvoiceNotFoundError(StorefrontError):
    status_code = 404
    error_type = "invoice_not_found"
    default_message = "Invoice not found"


class PaymentError(StorefrontError):
    """Erreur remontée par (ou à propos d') un prestataire de paiement."""
    status_code = 502
    error_type = "provider_error"
    default_message = "Le prestataire de paiement a refusé la requête"


class PaymentDeclinedError(PaymentError):
    status_code = 402
    error_type = "payment_declined"
    default_message = "Paiement refusé"


class ProviderUnavailableError(PaymentError):
    """Réseau, timeout, 429 ou 5xx: seule famille d'erreurs rejouée par retry."""
    status_code = 502
    error_type = "provider_unavailable"
    default_message = "Prestataire de paiement indisponible, réessayez plus tard"


class ProviderNotConfiguredError(PaymentError):
    status_code = 503
    error_type = "provider_not_configured"
    default_message = "Moyen de paiement non configuré"
