"""Advisory dry-run of assembled transactions."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from loguru import logger

from baozi.core.errors import TransportError

if TYPE_CHECKING:
    from chain.client import SolanaRpcClient

FIRST_PROGRAM_ERROR = 6000

# Program error names in declaration order, starting at code 6000.
_ERROR_NAMES = (
    "NotExpectedAdmin",
    "NotAdmin",
    "NotAdminOrGuardian",
    "InvalidUsdcMint",
    "InvalidTreasury",
    "InvalidVault",
    "ProtocolPaused",
    "MarketPaused",
    "QuestionTooLong",
    "ClosingTimeInPast",
    "ClosingTimeTooFar",
    "EventStartTimeInPast",
    "EventStartTimeTooFar",
    "InvalidAutoStopBuffer",
    "InvalidResolutionBuffer",
    "MarketNotOpen",
    "MarketNotClosed",
    "MarketNotResolved",
    "BettingClosed",
    "EventStarted",
    "BetTooSmall",
    "SlippageExceeded",
    "FeeOnTransferNotSupported",
    "SnapshotTooEarly",
    "SnapshotAlreadyTaken",
    "SnapshotNotTaken",
    "CloseTooEarly",
    "ResolutionDeadlinePassed",
    "InvalidOutcome",
    "AlreadyResolved",
    "EmergencyResolveTooEarly",
    "WrongCurrency",
    "AlreadyClaimed",
    "NothingToClaim",
    "MathOverflow",
    "TooEarlyToResolve",
    "FeeTooHigh",
    "InsufficientVaultBalance",
    "InvalidPosition",
    "InvalidTokenAccount",
    "BettingFrozen",
    "BetTooLarge",
    "InsufficientMarketBalance",
)

ERROR_CODES: dict[int, str] = {
    FIRST_PROGRAM_ERROR + offset: name for offset, name in enumerate(_ERROR_NAMES)
}


@dataclass(slots=True)
class SimulationResult:
    success: bool
    logs: list[str] = field(default_factory=list)
    units_consumed: int | None = None
    error: str | None = None
    error_code: int | None = None
    error_name: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "logs": list(self.logs),
            "unitsConsumed": self.units_consumed,
            "error": self.error,
            "errorCode": self.error_code,
            "errorName": self.error_name,
        }


def custom_error_code(err: Any) -> int | None:
    """Extract the custom program error code from an RPC ``err`` value."""

    if not isinstance(err, dict):
        return None
    detail = err.get("InstructionError")
    if not isinstance(detail, list) or len(detail) != 2:
        return None
    inner = detail[1]
    if isinstance(inner, dict) and isinstance(inner.get("Custom"), int):
        return inner["Custom"]
    return None


def interpret(value: dict[str, Any]) -> SimulationResult:
    logs = list(value.get("logs") or [])
    units = value.get("unitsConsumed")
    err = value.get("err")
    if err is None:
        return SimulationResult(success=True, logs=logs, units_consumed=units)

    code = custom_error_code(err)
    name = ERROR_CODES.get(code) if code is not None else None
    if name is not None:
        message = f"{name} ({code})"
    elif code is not None:
        message = f"Custom program error {code}"
    else:
        message = str(err)
    return SimulationResult(
        success=False,
        logs=logs,
        units_consumed=units,
        error=message,
        error_code=code,
        error_name=name,
    )


def simulate(rpc: "SolanaRpcClient", serialized_b64: str) -> SimulationResult:
    """Dry-run a transaction; transport failures become an unsuccessful result."""

    try:
        value = rpc.simulate_transaction(serialized_b64)
    except TransportError as exc:
        logger.warning("Simulation unavailable: {}", exc)
        return SimulationResult(success=False, error=str(exc))
    result = interpret(value)
    if result.success:
        logger.debug("Simulation succeeded ({} units)", result.units_consumed)
    else:
        logger.info("Simulation rejected: {}", result.error)
    return result


__all__ = [
    "ERROR_CODES",
    "SimulationResult",
    "custom_error_code",
    "interpret",
    "simulate",
]
