"""Core configuration for the rule checker."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from aarules.core.encoding import normalize_address
from aarules.core.types import RuleId

# Canonical EntryPoint v0.6 deployment
DEFAULT_ENTRY_POINT = "0x5FF137D4b0FDCD49DcA30c7CF57E578a026d2789"

# Forge's console.log precompile-like address ("console.log" in ASCII)
DEFAULT_DEBUG_CONSOLE = "0x000000000000000000636F6e736F6c652e6c6f67"

# Consecutive slots treated as associated with each address-prefixed hash.
# A fixed bound covering struct/array layouts, not derived from the trace.
ASSOCIATED_SLOT_SPAN = 128


class Settings(BaseSettings):
    """Checker settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="AARULES_",
        case_sensitive=False,
    )

    # ── App ──────────────────────────────────────────────────────────────
    app_env: Literal["development", "staging", "production"] = "development"
    log_level: str = "INFO"

    # ── Entrypoint ───────────────────────────────────────────────────────
    entry_point_address: str = DEFAULT_ENTRY_POINT
    deposit_method_signature: str = "depositTo(address)"

    # ── Rules ────────────────────────────────────────────────────────────
    associated_slot_span: int = Field(default=ASSOCIATED_SLOT_SPAN, ge=1)
    max_precompile_address: int = Field(default=9, ge=0)
    allow_debug_console: bool = True
    debug_console_address: str = DEFAULT_DEBUG_CONSOLE
    disabled_rules: list[RuleId] = Field(default_factory=list)

    # ── JSON-RPC chain state ─────────────────────────────────────────────
    rpc_url: str = "http://localhost:8545"
    rpc_timeout_seconds: float = 30.0

    @field_validator("entry_point_address", "debug_console_address")
    @classmethod
    def _normalize(cls, value: str) -> str:
        return normalize_address(value)


@lru_cache
def get_settings() -> Settings:
    """Return cached settings singleton."""
    return Settings()
