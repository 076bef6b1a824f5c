# techtrain.config
from pathlib import Path
import os
from dotenv import load_dotenv

# Calculer le chemin du projet puis charger .env de manière explicite
BASE_DIR = Path(__file__).resolve().parent.parent
ENV_PATH = BASE_DIR / ".env"
load_dotenv(dotenv_path=ENV_PATH, override=False)

EMAIL_TEMPLATES_DIR = Path(__file__).resolve().parent / "emails" / "templates"

"""
Configuration centrale du backend TechTrain.

- Charge le fichier .env à la racine du projet (BASE_DIR/.env)
- Normalise et expose les secrets/URLs (Supabase, Stripe, Resend, Redis)
- Les fournisseurs non configurés (Stripe, email, Redis) ne bloquent pas le démarrage:
  une variante « désactivée » est choisie par build_services() au lancement.
"""

def _clean_env(v: str) -> str:
    """
    Nettoie une valeur d'environnement:
    - supprime les espaces et guillemets (simples, doubles) et backticks
    - retourne toujours une chaîne (jamais None)
    """
    return (v or "").strip().strip("'").strip('"').strip("`")

def _flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")

# Supabase: URL et clés (anon pour RLS, service pour le webhook)
SUPABASE_URL = _clean_env(os.getenv("SUPABASE_URL") or os.getenv("NEXT_PUBLIC_SUPABASE_URL") or "")
SUPABASE_ANON = _clean_env(os.getenv("SUPABASE_ANON_KEY") or os.getenv("NEXT_PUBLIC_SUPABASE_ANON_KEY") or "")
SUPABASE_SERVICE_KEY = _clean_env(os.getenv("SUPABASE_SERVICE_KEY") or os.getenv("SUPABASE_SERVICE_ROLE_KEY") or "")

if SUPABASE_URL and not SUPABASE_URL.startswith("http"):
    SUPABASE_URL = "https://" + SUPABASE_URL
if SUPABASE_URL.endswith("/"):
    SUPABASE_URL = SUPABASE_URL.rstrip("/")

# Stripe: clés et secret webhook
STRIPE_PUBLIC_KEY = _clean_env(os.getenv("STRIPE_PUBLIC_KEY") or os.getenv("NEXT_PUBLIC_STRIPE_PUBLISHABLE_KEY") or "")
STRIPE_SECRET_KEY = _clean_env(os.getenv("STRIPE_SECRET_KEY") or "")
STRIPE_WEBHOOK_SECRET = _clean_env(os.getenv("STRIPE_WEBHOOK_SECRET") or "")
STRIPE_CURRENCY = "eur"

# Emails transactionnels (API HTTP Resend)
RESEND_API_KEY = _clean_env(os.getenv("RESEND_API_KEY") or "")
EMAIL_FROM = os.getenv("EMAIL_FROM", "TechTrain <info@techtrain.nl>")
EMAIL_REPLY_TO = os.getenv("EMAIL_REPLY_TO", "info@techtrain.nl")

# Rate limiting: pas d'URL => limiteurs désactivés (tout est autorisé, avec warning)
RATE_LIMIT_REDIS_URL = _clean_env(os.getenv("RATE_LIMIT_REDIS_URL") or "")
USE_FAKE_REDIS_FOR_TESTS = _flag("USE_FAKE_REDIS_FOR_TESTS")

# Application
APP_URL = _clean_env(os.getenv("APP_URL") or os.getenv("NEXT_PUBLIC_APP_URL") or "http://localhost:8000").rstrip("/")
APP_VERSION = os.getenv("APP_VERSION", "1.0.0")

# Cookies / sécurité
COOKIE_SECURE = _flag("COOKIE_SECURE")
SESSION_SECRET_KEY = os.getenv("SESSION_SECRET_KEY", "replace_me_with_a_long_random_secret")
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
ALLOWED_HOSTS = [h.strip() for h in os.getenv("ALLOWED_HOSTS", "localhost,127.0.0.1,testserver").split(",") if h.strip()]
# Proxys dont X-Forwarded-For / X-Real-IP sont crus ('*' = tous)
TRUSTED_PROXIES = [p.strip() for p in os.getenv("TRUSTED_PROXIES", "127.0.0.1").split(",") if p.strip()]

# URLs de redirection post-actions auth
RESET_REDIRECT_URL = os.getenv("RESET_REDIRECT_URL", f"{APP_URL}/auth/reset-password")
SIGNUP_REDIRECT_URL = os.getenv("SIGNUP_REDIRECT_URL", f"{APP_URL}/login")
