"""Market creation checks: question, content, timing, outcomes and cost."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from solders.pubkey import Pubkey

from baozi.core.config import FeeTable, TimingRules
from baozi.domain import (
    MAX_RACE_OUTCOMES,
    MIN_RACE_OUTCOMES,
    MarketLayer,
    MarketType,
    ValidationResult,
)

from . import pda
from .content import ContentCheck, ContentRules, validate_content, validate_question
from .fees import creation_cost
from .timing import (
    MarketTimingParams,
    calculate_resolution_time,
    recommended_times,
    validate_closing_time,
    validate_market_timing,
    validate_resolution_time,
)

MAX_OUTCOME_LABEL_LENGTH = 50
MAX_CREATOR_NAME_BYTES = 32


@dataclass(slots=True)
class CreationRequest:
    question: str
    layer: MarketLayer
    closing_time: datetime
    resolution_time: datetime | None = None
    market_type: MarketType | None = None
    event_time: datetime | None = None
    measurement_start: datetime | None = None
    measurement_end: datetime | None = None
    outcomes: list[str] | None = None
    invite_hash: str | None = None

    @property
    def is_race(self) -> bool:
        return self.outcomes is not None

    @property
    def inferred_type(self) -> MarketType | None:
        if self.market_type is not None:
            return self.market_type
        if self.event_time is not None:
            return MarketType.EVENT
        if self.measurement_start is not None:
            return MarketType.MEASUREMENT
        return None

    def effective_resolution_time(self) -> datetime:
        if self.resolution_time is not None:
            return self.resolution_time
        event = self.event_time if self.inferred_type is MarketType.EVENT else None
        return calculate_resolution_time(self.closing_time, event)


@dataclass(slots=True)
class CreationValidation:
    request: CreationRequest
    result: ValidationResult
    content: ContentCheck
    cost: dict[str, Any] = field(default_factory=dict)
    recommended: dict[str, datetime] = field(default_factory=dict)

    @property
    def valid(self) -> bool:
        return self.result.valid and not self.content.blocked

    def to_dict(self) -> dict[str, Any]:
        rule_type = {MarketType.EVENT: "A", MarketType.MEASUREMENT: "B"}.get(
            self.request.inferred_type, "unknown"
        )
        payload = self.result.to_dict()
        payload["valid"] = self.valid
        payload["content"] = self.content.to_dict()
        payload["computed"] = {
            "ruleType": rule_type,
            "resolutionTime": self.request.effective_resolution_time().isoformat(),
            **self.cost,
        }
        if self.recommended:
            payload["recommendedTiming"] = {
                key: value.isoformat() for key, value in self.recommended.items()
            }
        return payload


def validate_outcome_labels(labels: list[str]) -> ValidationResult:
    result = ValidationResult()
    if len(labels) < MIN_RACE_OUTCOMES:
        result.reject(
            "outcome_count",
            f"Race markets require at least {MIN_RACE_OUTCOMES} outcomes",
            required=f">= {MIN_RACE_OUTCOMES}",
            actual=len(labels),
        )
    elif len(labels) > MAX_RACE_OUTCOMES:
        result.reject(
            "outcome_count",
            f"Race markets limited to {MAX_RACE_OUTCOMES} outcomes (got {len(labels)})",
            required=f"<= {MAX_RACE_OUTCOMES}",
            actual=len(labels),
        )
    for index, label in enumerate(labels):
        if not label.strip():
            result.reject("outcome_label", f"Outcome {index} is empty")
        elif len(label) > MAX_OUTCOME_LABEL_LENGTH:
            result.reject(
                "outcome_label",
                f"Outcome {index} exceeds {MAX_OUTCOME_LABEL_LENGTH} characters",
                actual=len(label),
            )
    if len({label.strip().lower() for label in labels}) != len(labels):
        result.reject("outcome_unique", "Outcome labels must be unique")
    return result


def validate_creation(
    request: CreationRequest,
    now: datetime,
    *,
    timing: TimingRules,
    fees: FeeTable,
    content_rules: ContentRules,
) -> CreationValidation:
    """Run every creation rule; assembly must not proceed unless ``valid``."""

    result = ValidationResult(violations=validate_question(request.question))
    if request.question.strip() and not request.question.strip().endswith("?"):
        result.warnings.append("Question should end with a question mark for clarity")

    market_type = request.inferred_type
    resolution = request.effective_resolution_time()
    if market_type is None:
        result.merge(validate_closing_time(request.closing_time, now, timing))
        result.merge(validate_resolution_time(request.closing_time, resolution, timing))
    else:
        params = MarketTimingParams(
            closing_time=request.closing_time,
            market_type=market_type,
            event_time=request.event_time,
            measurement_start=request.measurement_start,
            measurement_end=request.measurement_end,
            resolution_time=resolution,
        )
        result.merge(validate_market_timing(params, now, timing))

    if request.outcomes is not None:
        result.merge(validate_outcome_labels(request.outcomes))

    content = validate_content(request.question, request.layer, content_rules)
    result.warnings.extend(content.warnings)

    match request.layer:
        case MarketLayer.OFFICIAL:
            result.warnings.append("Official markets require admin approval")
        case MarketLayer.PRIVATE:
            if not request.invite_hash:
                result.warnings.append(
                    "Private markets can use invite_hash for restricted access"
                )
        case MarketLayer.LAB:
            pass

    recommended: dict[str, datetime] = {}
    anchor = request.event_time if market_type is MarketType.EVENT else request.measurement_start
    if market_type is not None and anchor is not None:
        recommended = recommended_times(anchor, market_type, timing)

    cost = creation_cost(
        request.layer,
        fees,
        outcome_count=len(request.outcomes) if request.outcomes is not None else None,
    )
    return CreationValidation(
        request=request, result=result, content=content, cost=cost, recommended=recommended
    )


def creation_preview(
    validation: CreationValidation, market_id: int, program_id: Pubkey
) -> dict[str, Any]:
    """Validation outcome plus the address the market would be created at."""

    preview = validation.to_dict()
    if validation.valid:
        derive = pda.race_pda if validation.request.is_race else pda.market_pda
        preview["marketId"] = str(market_id)
        preview["marketPda"] = str(derive(market_id, program_id))
    return preview


def validate_creator_profile(display_name: str, fee_bps: int, fees: FeeTable) -> ValidationResult:
    result = ValidationResult()
    size = len(display_name.encode("utf-8"))
    if not display_name.strip():
        result.reject("display_name", "Display name is required")
    elif size > MAX_CREATOR_NAME_BYTES:
        result.reject(
            "display_name",
            f"Display name must be at most {MAX_CREATOR_NAME_BYTES} bytes",
            required=MAX_CREATOR_NAME_BYTES,
            actual=size,
        )
    if not 0 <= fee_bps <= fees.creator_fee_ceiling_bps:
        result.reject(
            "creator_fee",
            f"Creator fee must be between 0 and {fees.creator_fee_ceiling_bps} bps",
            required=f"<= {fees.creator_fee_ceiling_bps}",
            actual=fee_bps,
        )
    return result


__all__ = [
    "CreationRequest",
    "CreationValidation",
    "MAX_CREATOR_NAME_BYTES",
    "MAX_OUTCOME_LABEL_LENGTH",
    "creation_preview",
    "validate_creation",
    "validate_creator_profile",
    "validate_outcome_labels",
]
