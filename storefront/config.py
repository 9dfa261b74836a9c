# storefront.config
from pathlib import Path
import os
from dotenv import load_dotenv

# Calculer le chemin du projet puis charger .env de manière explicite
BASE_DIR = Path(__file__).resolve().parent.parent
ENV_PATH = BASE_DIR / ".env"
load_dotenv(dotenv_path=ENV_PATH, override=True)

PUBLIC_DIR = BASE_DIR / "public"
TEMPLATES_DIR = BASE_DIR / "templates"

"""
Configuration centrale de la boutique.

- Charge le fichier .env à la racine du projet (BASE_DIR/.env)
- Expose les chemins utiles (PUBLIC_DIR, TEMPLATES_DIR)
- Normalise et expose les identifiants des prestataires (PayPal, Stripe, Coinremitter, Mastercard)
- Sélectionne les prestataires actifs (PAYMENT_PROVIDERS) et la politique de retry
"""

def _clean_env(v: str) -> str:
    """
    Nettoie une valeur d'environnement:
    - supprime les espaces et guillemets (simples, doubles) et backticks
    - retourne toujours une chaîne (jamais None)
    """
    return (v or "").strip().strip("'").strip('"').strip("`")

def _csv_env(name: str, default: str) -> list[str]:
    return [p.strip() for p in os.getenv(name, default).split(",") if p.strip()]

# Session / sécurité (aucun compte utilisateur: la session ne porte que le panier)
SESSION_SECRET_KEY = _clean_env(os.getenv("SESSION_SECRET_KEY") or "replace_me_with_a_long_random_secret")
COOKIE_SECURE = (os.getenv("COOKIE_SECURE", "false").lower() == "true")

# CORS (dev)
CORS_ORIGINS = _csv_env("CORS_ORIGINS", "*")
ALLOWED_HOSTS = _csv_env("ALLOWED_HOSTS", "localhost,127.0.0.1,testserver")

BASE_URL = _clean_env(os.getenv("BASE_URL") or "http://localhost:8000")

# Prestataires activés, dans l'ordre d'affichage sur la page checkout
PAYMENT_PROVIDERS = [p.lower() for p in _csv_env("PAYMENT_PROVIDERS", "paypal,stripe,mastercard,coinremitter")]
DEFAULT_CURRENCY = _clean_env(os.getenv("DEFAULT_CURRENCY") or "USD").upper()

# Appels distants: timeout et retry borné (erreurs transitoires uniquement)
PAYMENT_HTTP_TIMEOUT = float(os.getenv("PAYMENT_HTTP_TIMEOUT", "10"))
PAYMENT_MAX_RETRIES = int(os.getenv("PAYMENT_MAX_RETRIES", "3"))
PAYMENT_RETRY_BASE_DELAY = float(os.getenv("PAYMENT_RETRY_BASE_DELAY", "0.5"))

# PayPal: REST v2 (sandbox par défaut)
PAYPAL_CLIENT_ID = _clean_env(os.getenv("PAYPAL_CLIENT_ID") or "")
PAYPAL_CLIENT_SECRET = _clean_env(os.getenv("PAYPAL_CLIENT_SECRET") or "")
PAYPAL_API_BASE = _clean_env(os.getenv("PAYPAL_API_BASE") or "https://api-m.sandbox.paypal.com").rstrip("/")

# Stripe: clé publique (front) et secrète (serveur)
STRIPE_PUBLISHABLE_KEY = _clean_env(os.getenv("STRIPE_PUBLISHABLE_KEY") or os.getenv("STRIPE_PUBLIC_KEY") or "")
STRIPE_SECRET_KEY = _clean_env(os.getenv("STRIPE_SECRET_KEY") or "")

# Coinremitter (simulation): identifiants du wallet et adresse publique de dépôt
COINREMITTER_API_KEY = _clean_env(os.getenv("COINREMITTER_API_KEY") or "")
COINREMITTER_PASSWORD = _clean_env(os.getenv("COINREMITTER_PASSWORD") or "")
COINREMITTER_PUBLIC_ADDRESS = _clean_env(os.getenv("COINREMITTER_PUBLIC_ADDRESS") or "")
COINREMITTER_CRYPTOS = [c.upper() for c in _csv_env("COINREMITTER_CRYPTOS", "BTC,ETH,LTC,DOGE,USDT")]
COINREMITTER_INVOICE_TTL_MINUTES = int(os.getenv("COINREMITTER_INVOICE_TTL_MINUTES", "15"))
# Probabilité qu'un client "finisse par payer" dans la simulation
COINREMITTER_PAYMENT_BIAS = float(os.getenv("COINREMITTER_PAYMENT_BIAS", "0.7"))
COINREMITTER_SIMULATION_SEED = os.getenv("COINREMITTER_SIMULATION_SEED") or None

# Mastercard Hosted Checkout (mock)
MASTERCARD_MERCHANT_ID = _clean_env(os.getenv("MASTERCARD_MERCHANT_ID") or "")
MASTERCARD_USERNAME = _clean_env(os.getenv("MASTERCARD_USERNAME") or "")
MASTERCARD_PASSWORD = _clean_env(os.getenv("MASTERCARD_PASSWORD") or "")
