# backend/herbanet/core/config.py

from __future__ import annotations

from decimal import Decimal
from urllib.parse import urlsplit, urlunsplit, parse_qsl, urlencode

from pydantic_settings import BaseSettings, SettingsConfigDict


def _strip_asyncpg_unsupported_params(url: str) -> str:
    """
    asyncpg does NOT accept sslmode or channel_binding as connect kwargs.
    If these appear in the URL query, SQLAlchemy can end up passing them to
    asyncpg.connect(), causing:
      TypeError: connect() got an unexpected keyword argument 'sslmode'
    """
    parts = urlsplit(url)
    if not parts.query:
        return url

    params = parse_qsl(parts.query, keep_blank_values=True)
    filtered = [(k, v) for (k, v) in params if k not in {"sslmode", "channel_binding"}]
    new_query = urlencode(filtered, doseq=True)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, new_query, parts.fragment))


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # -----------------------------
    # Environment
    # -----------------------------
    # Use: development | staging | production
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # -----------------------------
    # DB
    # -----------------------------
    DATABASE_URL_ASYNC: str = "sqlite+aiosqlite:///./herbanet.db"
    DATABASE_URL_SYNC: str = "sqlite:///./herbanet.db"

    # -----------------------------
    # Network / commissions
    # -----------------------------
    # Commission-eligible depth of the upline chain (hard ceiling).
    MAX_NETWORK_DEPTH: int = 15
    AGENT_CODE_MAX_RETRIES: int = 10
    REFERRAL_BASE_URL: str = "https://herbamart.id/ref"

    # Minimum stock (boxes) before an agent may become STOKIS / DISTRIBUTOR
    STOKIS_MIN_BOX: int = 50
    DISTRIBUTOR_MIN_BOX: int = 200

    # -----------------------------
    # Transfer gateway (commission payouts)
    # -----------------------------
    TRANSFER_API_BASE_URL: str = "https://bigflip.id/api/v2"
    TRANSFER_API_KEY: str = "dev-transfer-key"
    TRANSFER_MIN_FEE: Decimal = Decimal("2500")
    TRANSFER_FEE_RATE: Decimal = Decimal("0.003")
    WITHDRAWAL_STUCK_AFTER_MINUTES: int = 30

    # -----------------------------
    # Messaging gateway (WhatsApp)
    # -----------------------------
    MESSAGING_API_BASE_URL: str = "https://solo.wablas.com/api"
    MESSAGING_API_TOKEN: str = "dev-messaging-token"

    GATEWAY_TIMEOUT_SECONDS: float = 15.0

    @property
    def DATABASE_URL_ASYNC_CLEAN(self) -> str:
        return _strip_asyncpg_unsupported_params(self.DATABASE_URL_ASYNC)

    def model_post_init(self, __context) -> None:  # pydantic v2 hook
        env = (self.ENVIRONMENT or "").strip().lower()

        # Never run staging/production against the dev gateway placeholders.
        if env in {"staging", "production"}:
            if not self.TRANSFER_API_KEY or self.TRANSFER_API_KEY.strip() == "dev-transfer-key":
                raise ValueError("TRANSFER_API_KEY must be set in staging/production.")
            if not self.MESSAGING_API_TOKEN or self.MESSAGING_API_TOKEN.strip() == "dev-messaging-token":
                raise ValueError("MESSAGING_API_TOKEN must be set in staging/production.")

        # Light sanity checks (all envs)
        if not 1 <= self.MAX_NETWORK_DEPTH <= 15:
            raise ValueError(f"MAX_NETWORK_DEPTH={self.MAX_NETWORK_DEPTH!r} must be within 1..15")
        if self.TRANSFER_FEE_RATE < 0 or self.TRANSFER_MIN_FEE < 0:
            raise ValueError("Transfer fee settings must not be negative")
        if self.GATEWAY_TIMEOUT_SECONDS <= 0:
            raise ValueError("GATEWAY_TIMEOUT_SECONDS must be positive")


settings = Settings()
