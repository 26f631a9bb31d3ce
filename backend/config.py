# backend.config
from pathlib import Path
import os
from dotenv import load_dotenv

# Calculer le chemin du projet puis charger .env de manière explicite
BASE_DIR = Path(__file__).resolve().parent.parent
ENV_PATH = BASE_DIR / ".env"
load_dotenv(dotenv_path=ENV_PATH, override=False)

"""
Configuration centrale du backend checkout.

- Charge le fichier .env à la racine du projet (BASE_DIR/.env)
- Normalise et expose les secrets/URLs (Supabase, Stripe), CORS
- Fournit les paramètres du checkout (devise, email invité, URLs de redirection)
- Centralise les timeouts des appels externes
"""

def _clean_env(v: str) -> str:
    """
    Nettoie une valeur d'environnement:
    - supprime les espaces et guillemets (simples, doubles) et backticks
    - retourne toujours une chaîne (jamais None)
    """
    return (v or "").strip().strip("'").strip('"').strip("`")

def _float_env(name: str, default: float) -> float:
    try:
        return float(_clean_env(os.getenv(name)) or default)
    except ValueError:
        return default

# Supabase: URL et clé service-role (écritures orders, vérification des tokens)
SUPABASE_URL = _clean_env(os.getenv("SUPABASE_URL") or os.getenv("NEXT_PUBLIC_SUPABASE_URL") or "")
SUPABASE_SERVICE_KEY = _clean_env(os.getenv("SUPABASE_SERVICE_KEY") or os.getenv("SUPABASE_SERVICE_ROLE_KEY") or "")

if SUPABASE_URL and not SUPABASE_URL.startswith("http"):
    SUPABASE_URL = "https://" + SUPABASE_URL
if SUPABASE_URL.endswith("/"):
    SUPABASE_URL = SUPABASE_URL.rstrip("/")

# Stripe: clé secrète et version d'API figée
STRIPE_SECRET_KEY = _clean_env(os.getenv("STRIPE_SECRET_KEY") or "")
STRIPE_API_VERSION = _clean_env(os.getenv("STRIPE_API_VERSION") or "2023-10-16")

# Timeouts (secondes) des appels externes
SUPABASE_TIMEOUT_SECONDS = _float_env("SUPABASE_TIMEOUT_SECONDS", 10.0)
STRIPE_TIMEOUT_SECONDS = _float_env("STRIPE_TIMEOUT_SECONDS", 15.0)

# Checkout
CHECKOUT_CURRENCY = (_clean_env(os.getenv("CHECKOUT_CURRENCY")) or "inr").lower()
GUEST_EMAIL = _clean_env(os.getenv("GUEST_EMAIL")) or "guest@kisanmarketplace.in"
CHECKOUT_ALLOWED_COUNTRIES = [
    c.strip().upper() for c in os.getenv("CHECKOUT_ALLOWED_COUNTRIES", "IN").split(",") if c.strip()
]

# Front séparé: origine par défaut si l'en-tête Origin est absent ou non autorisé
FRONTEND_URL = _clean_env(os.getenv("FRONTEND_URL") or "http://localhost:5173").rstrip("/")
CHECKOUT_SUCCESS_PATH = os.getenv("CHECKOUT_SUCCESS_PATH", "/payment-success?session_id={CHECKOUT_SESSION_ID}")
CHECKOUT_CANCEL_PATH = os.getenv("CHECKOUT_CANCEL_PATH", "/cart?cancelled=true")

# CORS: le front est hébergé ailleurs, permissif par défaut
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
CORS_ALLOW_HEADERS = ["authorization", "x-client-info", "apikey", "content-type"]
