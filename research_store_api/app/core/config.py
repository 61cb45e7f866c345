"""
Application configuration.

The ``Settings`` dataclass reads configuration directly from
environment variables, with defaults for everything that has a sane
one.  ``JWT_SECRET`` and the PayPal credentials have no default; the
application refuses to start while they are missing (see
``Settings.missing_required``).
"""

import os
from dataclasses import dataclass, field
from typing import List


def _split_csv(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass
class Settings:
    """Application settings loaded from environment variables."""

    project_name: str = os.getenv("PROJECT_NAME", "Research Store API")
    api_version: str = os.getenv("API_VERSION", "1.0.0")
    debug: bool = os.getenv("DEBUG", "false").lower() in {"1", "true", "yes"}
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    log_file: str = os.getenv("LOG_FILE", "")

    host: str = os.getenv("HOST", "0.0.0.0")
    port: int = int(os.getenv("PORT", "5500"))

    # Signing secret for access and reset tokens.  Required.
    secret_key: str = os.getenv("JWT_SECRET", "")
    algorithm: str = os.getenv("ALGORITHM", "HS256")
    access_token_expire_minutes: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(60 * 24)))
    reset_token_expire_minutes: int = int(os.getenv("RESET_TOKEN_EXPIRE_MINUTES", "60"))
    password_hash_iterations: int = int(os.getenv("PASSWORD_HASH_ITERATIONS", "100000"))

    # Staff e-mail that is made manager on registration while no manager
    # exists.  When empty the first staff account to register is the manager.
    bootstrap_manager_email: str = os.getenv("BOOTSTRAP_MANAGER_EMAIL", "")

    # Path to the SQLite database.  Relative paths are resolved against
    # the project root by ``core.db``.
    database_url: str = os.getenv("DATABASE_URL", "research_store.db")

    # PayPal REST credentials used to verify captured orders.
    paypal_client_id: str = os.getenv("PAYPAL_CLIENT_ID", "")
    paypal_secret_key: str = os.getenv("PAYPAL_SECRET_KEY", "")
    paypal_mode: str = os.getenv("PAYPAL_MODE", "sandbox")
    gateway_timeout_seconds: float = float(os.getenv("GATEWAY_TIMEOUT_SECONDS", "30"))

    # OAuth client id the Google ID tokens must be issued for.  When
    # empty the audience is not checked.
    google_client_id: str = os.getenv("GOOGLE_CLIENT_ID", "")

    # Upper bound for uploaded profile pictures (50 MB).
    max_upload_bytes: int = int(os.getenv("MAX_UPLOAD_BYTES", str(50 * 1024 * 1024)))

    cors_origins: List[str] = field(
        default_factory=lambda: _split_csv(
            os.getenv(
                "CORS_ORIGINS",
                "http://localhost:3000,http://localhost:3001,https://www.sandbox.paypal.com",
            )
        )
    )

    def missing_required(self) -> List[str]:
        """Return the names of required environment variables that are unset."""
        required = {
            "JWT_SECRET": self.secret_key,
            "PAYPAL_CLIENT_ID": self.paypal_client_id,
            "PAYPAL_SECRET_KEY": self.paypal_secret_key,
        }
        return [name for name, value in required.items() if not value]

    @property
    def paypal_configured(self) -> bool:
        return bool(self.paypal_client_id and self.paypal_secret_key)


# Environment variables must be set before this module is imported.
settings = Settings()
