from datetime import datetime, timezone
from decimal import Decimal
from typing import Annotated, Any

from dateutil import parser as date_parser
from pydantic import AfterValidator, BaseModel, BeforeValidator, ConfigDict, Field
from solders.pubkey import Pubkey

from baozi.core.units import sol_to_lamports


def _parse_timestamp(value: Any) -> Any:
    if isinstance(value, str):
        try:
            value = date_parser.isoparse(value)
        except ValueError as exc:
            raise ValueError(f"'{value}' is not an ISO-8601 timestamp") from exc
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        value = datetime.fromtimestamp(value, tz=timezone.utc)
    if isinstance(value, datetime) and value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def _check_address(value: str) -> str:
    candidate = value.strip()
    try:
        Pubkey.from_string(candidate)
    except ValueError as exc:
        raise ValueError(f"'{value}' is not a valid base58 public key") from exc
    return candidate


def _check_sol(value: Decimal) -> Decimal:
    if value <= 0:
        raise ValueError("SOL amount must be positive")
    return value


Timestamp = Annotated[datetime, BeforeValidator(_parse_timestamp)]
Address = Annotated[str, AfterValidator(_check_address)]
SolAmount = Annotated[Decimal, AfterValidator(_check_sol)]


class ActionParams(BaseModel):
    """Base for every action's input; unknown keys are rejected."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)


class NoParams(ActionParams):
    pass


def lamports(amount: Decimal) -> int:
    return sol_to_lamports(amount)


class ActionResponse(BaseModel):
    success: bool
    data: Any | None = None
    error: str | None = None
    violations: list[dict[str, Any]] = Field(default_factory=list)

    @classmethod
    def ok(cls, data: Any) -> "ActionResponse":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: str, violations: list[dict[str, Any]] | None = None) -> "ActionResponse":
        return cls(success=False, error=error, violations=violations or [])


class ActionInfo(BaseModel):
    name: str
    description: str
    builds_transaction: bool
    params_schema: dict[str, Any]


class HealthResponse(BaseModel):
    status: str = "ok"
    network: str
    program_id: str
    actions: int


__all__ = [
    "ActionInfo",
    "ActionParams",
    "ActionResponse",
    "Address",
    "HealthResponse",
    "NoParams",
    "SolAmount",
    "Timestamp",
    "lamports",
]
