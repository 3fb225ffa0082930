from __future__ import annotations

import os
from pathlib import Path
from typing import List, Tuple

from pydantic import BaseModel, ConfigDict

DEFAULT_NOTIFICATION_EMAIL = "kmrkva@alumni.nd.edu"
PROVIDER_MODES = ("chat", "generate")


def _env_str(name: str, default: str = "") -> str:
    return os.getenv(name, default).strip()


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


class Settings(BaseModel):
    """Process-wide configuration, read once at startup and passed to collaborators."""

    model_config = ConfigDict(frozen=True)

    v0_api_key: str = ""
    v0_api_base: str = "https://api.v0.dev"
    provider_mode: str = "chat"
    v0_model: str = "v0-1.5-md"
    llm_timeout_secs: int = 120

    email_user: str = ""
    email_pass: str = ""
    smtp_host: str = "smtp.gmail.com"
    smtp_port: int = 465
    notification_email: str = DEFAULT_NOTIFICATION_EMAIL

    port: int = 3000
    upload_dir: Path = Path("uploads")
    max_upload_bytes: int = 10 * 1024 * 1024
    allow_origins: Tuple[str, ...] = ("*",)

    @classmethod
    def from_env(cls) -> "Settings":
        mode = _env_str("V0_PROVIDER_MODE", "chat").lower()
        if mode not in PROVIDER_MODES:
            mode = "chat"
        origins: List[str] = [o.strip() for o in os.getenv("ALLOW_ORIGINS", "*").split(",") if o.strip()]
        return cls(
            v0_api_key=_env_str("V0_API_KEY"),
            v0_api_base=_env_str("V0_API_BASE", "https://api.v0.dev").rstrip("/"),
            provider_mode=mode,
            v0_model=_env_str("V0_MODEL", "v0-1.5-md"),
            llm_timeout_secs=_env_int("LLM_TIMEOUT_SECS", 120),
            email_user=_env_str("EMAIL_USER"),
            email_pass=_env_str("EMAIL_PASS"),
            smtp_host=_env_str("SMTP_HOST", "smtp.gmail.com"),
            smtp_port=_env_int("SMTP_PORT", 465),
            notification_email=_env_str("NOTIFICATION_EMAIL") or DEFAULT_NOTIFICATION_EMAIL,
            port=_env_int("PORT", 3000),
            upload_dir=Path(_env_str("UPLOAD_DIR", "uploads") or "uploads"),
            max_upload_bytes=_env_int("MAX_UPLOAD_BYTES", 10 * 1024 * 1024),
            allow_origins=tuple(origins) or ("*",),
        )

    @property
    def has_provider_key(self) -> bool:
        return bool(self.v0_api_key)

    @property
    def has_email_credentials(self) -> bool:
        return bool(self.email_user and self.email_pass)
