"""Runtime configuration."""

from functools import lru_cache

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

QR_KEY_LENGTH = 32


class Settings(BaseSettings):
    """Application settings.

    Attributes
    ----------
    app_name : str
        Human-readable application name.
    database_url : str
        SQLAlchemy database URL.
    qr_encryption_key : SecretStr
        AES-256 key used to seal QR payloads. Must be exactly 32 bytes.
    token_ttl_days : int
        Lifetime of a freshly issued scan token.
    anomaly_threshold_hours : float
        Hours an item may stay checked in before it is flagged.
    allow_unverified_scans : bool
        Whether raw identifier scans without a proven credential are accepted.
    bootstrap_enabled : bool
        Whether one-time unauthenticated bootstrap is allowed.
    log_level : str
        Root logging level.
    """

    model_config = SettingsConfigDict(env_prefix="CUSTODY_GATE_", extra="ignore")

    app_name: str = "Custody Gate"
    database_url: str = "sqlite+aiosqlite:///./custody_gate.db"
    qr_encryption_key: SecretStr
    token_ttl_days: int = Field(default=365, ge=1)
    anomaly_threshold_hours: float = Field(default=8.0, gt=0)
    allow_unverified_scans: bool = True
    bootstrap_enabled: bool = True
    log_level: str = "INFO"

    @field_validator("qr_encryption_key")
    @classmethod
    def _check_key_length(cls, value: SecretStr) -> SecretStr:
        """Reject keys that are not exactly 32 bytes.

        Parameters
        ----------
        value : SecretStr
            Configured key.

        Returns
        -------
        SecretStr
            The unchanged key.
        """
        if len(value.get_secret_value().encode("utf-8")) != QR_KEY_LENGTH:
            raise ValueError(f"qr_encryption_key must be exactly {QR_KEY_LENGTH} bytes")
        return value

    @property
    def qr_key_bytes(self) -> bytes:
        """Return the encryption key as raw bytes."""
        return self.qr_encryption_key.get_secret_value().encode("utf-8")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings.

    Returns
    -------
    Settings
        Cached settings instance.
    """
    return Settings()
