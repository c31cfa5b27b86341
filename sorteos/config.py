"""
Sorteos - Configuration Management
==================================
Centralized configuration with environment variable support.

Usage:
    from sorteos.config import settings

    db_url = settings.database_url
    anon_key = settings.supabase_anon_key
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


@dataclass
class Settings:
    """Application settings with environment variable overrides."""

    # Hosted database (Supabase Postgres)
    db_url: str | None = None
    db_host: str = "localhost"
    db_port: int = 5432
    db_name: str = "postgres"
    db_user: str = "postgres"
    db_schema: str = "public"
    db_connect_timeout: int = 10

    # "postgres" talks to the hosted database, "memory" keeps rows in-process
    store_backend: str = "postgres"

    # Hosted auth service
    supabase_url: str = "http://localhost:54321"
    auth_timeout_seconds: int = 10

    # Site
    app_base_url: str = "http://localhost:3000"
    site_name: str = "Tu Suerte"
    login_path: str = "/iniciar-sesion"

    # Domain rules
    alert_max_hours_since_start: float = 2.0
    default_countdown_hours: float = 24.0
    default_currency: str = "USD"
    dashboard_entries_limit: int = 20
    dashboard_winners_limit: int = 5
    ticket_number_width: int = 6

    # Page loaders issue their independent fetches on a small pool
    loader_workers: int = 4

    # Identity header forwarded by a trusted gateway (development / internal use)
    trust_user_header: bool = False

    # Reverse proxy / client IP extraction
    trust_proxy_headers: bool = False
    trusted_proxy_ips: set[str] = field(default_factory=set)

    # CORS configuration
    # Set CORS_ALLOW_ORIGINS environment variable to comma-separated list of allowed origins
    cors_allow_origins: set[str] = field(
        default_factory=lambda: {
            "http://localhost",
            "http://localhost:3000",
            "http://localhost:8501",  # Streamlit default
            "http://127.0.0.1",
            "http://127.0.0.1:8501",
        }
    )
    cors_allow_credentials: bool = False
    cors_max_age: int = 600  # 10 minutes

    debug_mode: bool = False

    def __post_init__(self):
        """Load overrides from environment variables."""
        self._load_env_overrides()

    def _load_env_overrides(self):
        """Load configuration from environment variables."""
        # Database
        if db_url := os.environ.get("SORTEOS_DB_URL"):
            self.db_url = db_url
        if host := os.environ.get("DB_HOST"):
            self.db_host = host
        if port := os.environ.get("DB_PORT"):
            self.db_port = int(port)
        if name := os.environ.get("DB_NAME"):
            self.db_name = name
        if user := os.environ.get("DB_USER"):
            self.db_user = user
        if schema := os.environ.get("DB_SCHEMA"):
            self.db_schema = schema
        if backend := os.environ.get("SORTEOS_STORE", "").strip().lower():
            if backend not in ("postgres", "memory"):
                logger.warning("Unknown SORTEOS_STORE %r, keeping %r", backend, self.store_backend)
            else:
                self.store_backend = backend

        # Hosted auth
        if supabase_url := os.environ.get("SUPABASE_URL"):
            self.supabase_url = supabase_url.rstrip("/")
        if auth_timeout := os.environ.get("AUTH_TIMEOUT_SECONDS"):
            self.auth_timeout_seconds = int(auth_timeout)

        # Site
        if base_url := os.environ.get("APP_BASE_URL") or os.environ.get("NEXT_PUBLIC_APP_URL"):
            self.app_base_url = base_url.rstrip("/")
        if site_name := os.environ.get("SITE_NAME"):
            self.site_name = site_name

        # Domain rules
        if max_hours := os.environ.get("ALERT_MAX_HOURS_SINCE_START"):
            self.alert_max_hours_since_start = float(max_hours)
        if countdown := os.environ.get("DEFAULT_COUNTDOWN_HOURS"):
            self.default_countdown_hours = float(countdown)
        if currency := os.environ.get("DEFAULT_CURRENCY"):
            self.default_currency = currency.upper()
        if workers := os.environ.get("LOADER_WORKERS"):
            self.loader_workers = max(1, int(workers))

        if os.environ.get("TRUST_USER_HEADER", "").lower() in ("1", "true", "yes"):
            self.trust_user_header = True

        # Reverse proxy / headers
        if os.environ.get("TRUST_PROXY_HEADERS", "").lower() in ("1", "true", "yes"):
            self.trust_proxy_headers = True
        if trusted := os.environ.get("TRUSTED_PROXY_IPS", "").strip():
            self.trusted_proxy_ips = {ip.strip() for ip in trusted.split(",") if ip.strip()}

        # CORS configuration - security: requires explicit configuration
        if cors_origins := os.environ.get("CORS_ALLOW_ORIGINS", "").strip():
            if cors_origins == "*":
                logger.warning(
                    "CORS_ALLOW_ORIGINS set to '*' - allowing all origins. " "This should only be used in development."
                )
                self.cors_allow_origins = {"*"}
            else:
                self.cors_allow_origins = {origin.strip() for origin in cors_origins.split(",") if origin.strip()}
        if cors_max_age := os.environ.get("CORS_MAX_AGE"):
            self.cors_max_age = int(cors_max_age)

        if os.environ.get("DEBUG", "").lower() in ("1", "true"):
            self.debug_mode = True

    @property
    def db_password(self) -> str:
        """Database password from environment (never stored in config)."""
        return os.environ.get("DB_PASSWORD", "postgres")

    @property
    def database_url(self) -> str:
        """Full connection URL, built from components when SORTEOS_DB_URL is not set."""
        if self.db_url:
            return self.db_url
        return f"postgresql://{self.db_user}:{self.db_password}@{self.db_host}:{self.db_port}/{self.db_name}"

    @property
    def supabase_anon_key(self) -> str | None:
        """Public anon key for the hosted auth API (never stored in config)."""
        return os.environ.get("SUPABASE_ANON_KEY")


# Singleton instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
        if _settings.debug_mode:
            logger.info("Settings loaded with debug mode enabled")
    return _settings


def reload_settings() -> Settings:
    """Force reload settings from environment."""
    global _settings
    _settings = Settings()
    return _settings


# Convenience alias
settings = get_settings()


# Row status vocabularies owned by the hosted schema
RAFFLE_STATUSES = ("draft", "active", "closed", "drawn", "completed")
RAFFLE_ENTRY_MODES = ("subscribers_only", "tickets_only", "hybrid")
ENTRY_SOURCES = ("subscription", "manual_purchase")
PRIZE_CATEGORIES = ("vehicle", "technology", "cash", "travel", "home", "other")

LIVE_EVENT_STATUSES = ("scheduled", "live", "completed", "canceled")

PAYMENT_METHOD_TYPES = ("stripe_card", "stripe_subscription", "manual_transfer", "qr_code")
MANUAL_PAYMENT_TYPES = frozenset({"manual_transfer", "qr_code"})
PAYMENT_SCOPES = ("raffles", "plans")
TRANSACTION_TYPES = ("raffle_ticket", "subscription", "other")
TRANSACTION_STATUSES = ("pending", "approved", "rejected", "processing", "completed", "failed")

PLAN_INTERVALS = ("month", "year")
SUBSCRIPTION_STATUSES = ("active", "canceled", "past_due", "expired")

WINNER_STATUSES = ("pending_contact", "contacted", "prize_delivered", "rejected")

USER_ROLES = ("participant", "staff", "admin")

NOTIFICATION_TYPES = ("info", "success", "warning", "error", "raffle", "prize")

RAFFLE_STATUS_LABELS = {
    "draft": "Borrador",
    "active": "Activo",
    "closed": "Cerrado",
    "drawn": "Sorteado",
    "completed": "Completado",
}

LIVE_EVENT_STATUS_LABELS = {
    "scheduled": "Programado",
    "live": "En Vivo",
    "completed": "Completado",
    "canceled": "Cancelado",
}

TRANSACTION_STATUS_LABELS = {
    "pending": "Pendiente",
    "approved": "Aprobado",
    "rejected": "Rechazado",
    "processing": "Procesando",
    "completed": "Completado",
    "failed": "Fallido",
}

WINNER_STATUS_LABELS = {
    "pending_contact": "Pendiente de contacto",
    "contacted": "Contactado",
    "prize_delivered": "Premio entregado",
    "rejected": "Rechazado",
}

ROLE_LABELS = {
    "participant": "Participante",
    "staff": "Staff",
    "admin": "Administrador",
}

INTERVAL_LABELS = {
    "month": "Mensual",
    "year": "Anual",
}

PAYMENT_METHOD_TYPE_LABELS = {
    "stripe_card": "Tarjeta (Stripe)",
    "stripe_subscription": "Suscripción (Stripe)",
    "manual_transfer": "Transferencia bancaria",
    "qr_code": "Pago con QR",
}

NOTIFICATION_ICONS = {
    "info": "📢",
    "success": "✅",
    "warning": "⚠️",
    "error": "❌",
    "raffle": "🎁",
    "prize": "🏆",
}

STATUS_ICONS = {
    "draft": "📝",
    "active": "🟢",
    "closed": "🔒",
    "drawn": "🎲",
    "completed": "🏁",
    "scheduled": "📅",
    "live": "🔴",
    "canceled": "⛔",
}
