from functools import lru_cache
from typing import Any

from pydantic import AnyUrl, BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from solders.pubkey import Pubkey

DEFAULT_PROGRAM_ID = "FWyTPzm5cfJwRKzfkscxozatSxF6Qu78JQovQUwKPruJ"

NETWORK_RPC_URLS = {
    "mainnet-beta": "https://api.mainnet-beta.solana.com",
    "devnet": "https://api.devnet.solana.com",
}


class FeeTier(BaseModel):
    platform_fee_bps: int = Field(ge=0, le=10_000)
    creation_fee_lamports: int = Field(ge=0)


def _default_fee_tiers() -> dict[str, FeeTier]:
    return {
        "official": FeeTier(platform_fee_bps=250, creation_fee_lamports=10_000_000),
        "lab": FeeTier(platform_fee_bps=300, creation_fee_lamports=10_000_000),
        "private": FeeTier(platform_fee_bps=200, creation_fee_lamports=10_000_000),
    }


class FeeTable(BaseModel):
    """Versioned fee schedule keyed by lower-case layer name."""

    version: str = "v4.7.6"
    tiers: dict[str, FeeTier] = Field(default_factory=_default_fee_tiers)
    affiliate_fee_bps: int = Field(100, ge=0, le=10_000)
    creator_fee_ceiling_bps: int = Field(50, ge=0, le=10_000)
    bps_denominator: int = Field(10_000, gt=0)

    @field_validator("tiers", mode="after")
    @classmethod
    def _require_all_layers(cls, value: dict[str, FeeTier]) -> dict[str, FeeTier]:
        normalized = {key.lower(): tier for key, tier in value.items()}
        missing = {"official", "lab", "private"} - set(normalized)
        if missing:
            raise ValueError(f"fee table is missing layers: {', '.join(sorted(missing))}")
        return normalized


class TimingRules(BaseModel):
    betting_freeze_seconds: int = Field(300, ge=0)
    min_event_buffer_hours: int = Field(12, ge=0)
    recommended_event_buffer_hours: int = Field(24, ge=0)
    event_buffer_warning_hours: int = Field(18, ge=0)
    max_market_duration_days: int = Field(365, gt=0)
    min_resolution_buffer_seconds: int = Field(600, ge=0)
    max_resolution_buffer_seconds: int = Field(604_800, gt=0)
    dispute_window_seconds: int = Field(86_400, ge=0)
    min_measurement_lead_hours: int = Field(1, ge=0)
    recommended_measurement_lead_hours: int = Field(2, ge=0)
    freeze_warning_minutes: int = Field(30, ge=0)

    @model_validator(mode="after")
    def _check_ordering(self) -> "TimingRules":
        if self.recommended_event_buffer_hours < self.min_event_buffer_hours:
            raise ValueError("recommended event buffer must not be below the minimum buffer")
        if self.max_resolution_buffer_seconds < self.min_resolution_buffer_seconds:
            raise ValueError("max resolution buffer must not be below the minimum buffer")
        return self


class BetLimits(BaseModel):
    min_bet_lamports: int = Field(10_000_000, gt=0)
    max_bet_lamports: int = Field(100_000_000_000, gt=0)
    large_bet_warning_lamports: int = Field(50_000_000_000, gt=0)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    debug: bool = Field(False, description="Enable FastAPI debug mode")
    environment: str = Field(
        default="development",
        description="Runtime environment (development|staging|production)",
    )
    solana_network: str = Field(
        default="mainnet-beta",
        description="Solana cluster targeted by reads and simulations (mainnet-beta|devnet)",
    )
    helius_rpc_url: AnyUrl | str | None = Field(
        default=None,
        description="Preferred Helius RPC endpoint, takes priority over every other RPC setting",
    )
    solana_rpc_url: AnyUrl | str | None = Field(
        default=None,
        description="Explicit Solana JSON-RPC endpoint",
    )
    baozi_program_id: str = Field(
        default=DEFAULT_PROGRAM_ID,
        description="Base58 address of the deployed prediction-market program",
    )
    rpc_timeout_seconds: float = Field(
        default=30.0,
        description="Timeout applied to every JSON-RPC request",
        gt=0,
    )
    rpc_commitment: str = Field(
        default="confirmed",
        description="Commitment used for account snapshot reads",
    )
    simulate_by_default: bool = Field(
        default=True,
        description="Dry-run assembled transactions before returning them",
    )
    fee_table: FeeTable = Field(default_factory=FeeTable)
    timing: TimingRules = Field(default_factory=TimingRules)
    bet_limits: BetLimits = Field(default_factory=BetLimits)
    content_rules_path: str | None = Field(
        default=None,
        description="Optional YAML file replacing the built-in content screening tables",
    )
    app_base_url: str = Field(
        default="https://baozi.ooo",
        description="Public web app used when formatting affiliate links",
    )

    @field_validator("solana_network")
    @classmethod
    def _validate_network(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in NETWORK_RPC_URLS:
            raise ValueError(
                f"SOLANA_NETWORK must be one of: {', '.join(sorted(NETWORK_RPC_URLS))}"
            )
        return normalized

    @field_validator("baozi_program_id")
    @classmethod
    def _validate_program_id(cls, value: str) -> str:
        candidate = value.strip()
        try:
            Pubkey.from_string(candidate)
        except ValueError as exc:
            raise ValueError("BAOZI_PROGRAM_ID must be a base58 public key") from exc
        return candidate

    @field_validator("helius_rpc_url", "solana_rpc_url", mode="before")
    @classmethod
    def _blank_as_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @property
    def program_id(self) -> Pubkey:
        return Pubkey.from_string(self.baozi_program_id)

    @property
    def resolved_rpc_url(self) -> str:
        if self.helius_rpc_url:
            return str(self.helius_rpc_url)
        if self.solana_rpc_url:
            return str(self.solana_rpc_url)
        return NETWORK_RPC_URLS[self.solana_network]


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
