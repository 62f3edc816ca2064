"""
Application configuration loaded from environment variables.

Uses pydantic-settings for type-safe env var parsing with automatic
.env file loading. The RPC node URL is the only required value; the
historical key name `app.core.rpc` maps to the APP_CORE_RPC env var.

To extend: add new fields here and document them in .env.example.
See https://docs.pydantic.dev/latest/concepts/pydantic_settings/
"""

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # ─── Core ──────────────────────────────────────────────────────
    environment: str = "development"
    debug: bool = False

    # ─── MongoDB ───────────────────────────────────────────────────
    # The ingester writes block / tps_tensec / miner into this database.
    mongo_uri: str = "mongodb://localhost:27017"
    mongo_db_name: str = "apex"
    # Atlas / managed clusters: verify TLS against certifi's CA bundle
    mongo_tls: bool = False

    # ─── RPC node ──────────────────────────────────────────────────
    rpc_url: str = Field(validation_alias=AliasChoices("APP_CORE_RPC", "RPC_URL"))
    rpc_timeout_seconds: float = 10.0

    # ─── Witness dashboard ─────────────────────────────────────────
    # slowapi limit string for POST /api/witness/refresh (hits the RPC node)
    refresh_rate_limit: str = "6/minute"
    # Producers seen in recent blocks but missing from `miner` still get tallied
    count_unlisted_producers: bool = True

    # ─── CORS ──────────────────────────────────────────────────────
    # Comma-separated allowed origins for the dashboard front-end.
    cors_origins_str: str = "http://localhost:3000"

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.cors_origins_str.split(",") if o.strip()]

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # Don't fail on unknown env vars
    )


# Module-level singleton — import this everywhere instead of instantiating Settings()
settings = Settings()
