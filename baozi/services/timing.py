"""Temporal rules for market creation, betting, and resolution."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from baozi.core.config import TimingRules
from baozi.domain import MarketType, ValidationResult

_HOUR = timedelta(hours=1)
_DAY = timedelta(days=1)


def _hours(delta: timedelta) -> float:
    return round(delta.total_seconds() / 3600, 1)


def _iso(value: datetime) -> str:
    return value.isoformat().replace("+00:00", "Z")


@dataclass(slots=True)
class MarketTimingParams:
    closing_time: datetime
    market_type: MarketType
    event_time: datetime | None = None
    measurement_start: datetime | None = None
    measurement_end: datetime | None = None
    resolution_time: datetime | None = None


def validate_closing_time(closing: datetime, now: datetime, rules: TimingRules) -> ValidationResult:
    result = ValidationResult()
    if closing <= now:
        result.reject(
            "closing_in_past",
            "Closing time must be in the future",
            required=f"> {_iso(now)}",
            actual=_iso(closing),
        )
    latest = now + timedelta(days=rules.max_market_duration_days)
    if closing > latest:
        result.reject(
            "closing_too_far",
            f"Closing time too far in future (max {rules.max_market_duration_days} days)",
            required=f"<= {_iso(latest)}",
            actual=_iso(closing),
        )
    return result


def validate_event_rule(
    closing: datetime, event_time: datetime, now: datetime, rules: TimingRules
) -> ValidationResult:
    """Rule A: betting must close a minimum buffer before the event."""

    result = ValidationResult()
    if event_time <= now:
        result.reject("event_in_past", "Event time must be in the future", actual=_iso(event_time))
    if event_time <= closing:
        result.reject(
            "event_before_close",
            "Event time must be after closing time",
            required=f"> {_iso(closing)}",
            actual=_iso(event_time),
        )

    buffer = event_time - closing
    recommended_close = event_time - timedelta(hours=rules.recommended_event_buffer_hours)
    if buffer < timedelta(hours=rules.min_event_buffer_hours):
        result.reject(
            "event_buffer",
            f"Buffer too short: {_hours(buffer)}h. Minimum {rules.min_event_buffer_hours}h "
            "required between betting close and event.",
            required=f">= {rules.min_event_buffer_hours}h",
            actual=f"{_hours(buffer)}h",
            suggestion=f"Set closing time to {_iso(recommended_close)}",
        )
    elif buffer < timedelta(hours=rules.event_buffer_warning_hours):
        result.warnings.append(
            f"Buffer is {_hours(buffer)}h. Recommend "
            f"{rules.recommended_event_buffer_hours}h for safety margin."
        )

    if recommended_close > now and closing > recommended_close:
        result.suggestions.append(
            f"Consider closing betting at {_iso(recommended_close)} "
            f"({rules.recommended_event_buffer_hours}h before event)"
        )
    return result


def validate_measurement_rule(
    closing: datetime,
    measurement_start: datetime,
    measurement_end: datetime | None,
    now: datetime,
    rules: TimingRules,
) -> ValidationResult:
    """Rule B: betting must close strictly before the measurement period."""

    result = ValidationResult()
    lead = measurement_start - closing
    recommended_close = measurement_start - timedelta(
        hours=rules.recommended_measurement_lead_hours
    )
    latest_close = measurement_start - timedelta(hours=rules.min_measurement_lead_hours)
    if closing >= measurement_start:
        result.reject(
            "measurement_ordering",
            f"Betting closes {_hours(-lead)}h after measurement starts. Betting must close "
            "before the measurement period begins.",
            required=f"< {_iso(measurement_start)}",
            actual=_iso(closing),
            suggestion=f"Set closing time to {_iso(latest_close)}",
        )
    elif lead < timedelta(hours=rules.min_measurement_lead_hours):
        result.warnings.append(
            f"Very tight buffer ({_hours(lead)}h) between betting close and measurement start."
        )

    if measurement_end is not None:
        if measurement_end <= measurement_start:
            result.reject(
                "measurement_period",
                "Measurement end must be after measurement start",
                required=f"> {_iso(measurement_start)}",
                actual=_iso(measurement_end),
            )
        else:
            period = measurement_end - measurement_start
            days = round(period / _DAY, 1)
            if period > 30 * _DAY:
                result.warnings.append(
                    f"Very long measurement period: {days} days. Consider 2-7 days."
                )
            elif period > 7 * _DAY:
                result.warnings.append(f"Long measurement period: {days} days. Prefer 2-7 days.")
            elif period < _DAY:
                result.suggestions.append(
                    f"Short measurement period ({round(period / _HOUR)}h). Ensure resolution "
                    "can be determined within this timeframe."
                )

    if recommended_close > now and closing > recommended_close:
        result.suggestions.append(
            f"Consider closing betting at {_iso(recommended_close)} "
            f"({rules.recommended_measurement_lead_hours}h before measurement period starts)"
        )
    return result


def validate_resolution_time(
    closing: datetime, resolution: datetime, rules: TimingRules
) -> ValidationResult:
    result = ValidationResult()
    buffer = resolution - closing
    if resolution <= closing:
        result.reject(
            "resolution_before_close",
            "Resolution time must be after closing time",
            required=f"> {_iso(closing)}",
            actual=_iso(resolution),
        )
    elif buffer < timedelta(seconds=rules.min_resolution_buffer_seconds):
        result.reject(
            "resolution_buffer",
            f"Resolution must be at least {rules.min_resolution_buffer_seconds // 60} minutes "
            "after closing",
            required=f">= {rules.min_resolution_buffer_seconds}s",
            actual=f"{int(buffer.total_seconds())}s",
        )
    elif buffer > timedelta(seconds=rules.max_resolution_buffer_seconds):
        result.reject(
            "resolution_buffer",
            f"Resolution must be at most {rules.max_resolution_buffer_seconds // 86_400} days "
            "after closing",
            required=f"<= {rules.max_resolution_buffer_seconds}s",
            actual=f"{int(buffer.total_seconds())}s",
        )
    return result


def validate_market_timing(
    params: MarketTimingParams, now: datetime, rules: TimingRules
) -> ValidationResult:
    result = validate_closing_time(params.closing_time, now, rules)

    match params.market_type:
        case MarketType.EVENT:
            if params.event_time is None:
                result.reject("event_time_required", "Event-based markets require event_time")
            else:
                result.merge(
                    validate_event_rule(params.closing_time, params.event_time, now, rules)
                )
        case MarketType.MEASUREMENT:
            if params.measurement_start is None:
                result.reject(
                    "measurement_start_required",
                    "Measurement-period markets require measurement_start",
                )
            else:
                result.merge(
                    validate_measurement_rule(
                        params.closing_time,
                        params.measurement_start,
                        params.measurement_end,
                        now,
                        rules,
                    )
                )
        case _:
            raise AssertionError(f"unhandled market type {params.market_type!r}")

    if params.resolution_time is not None:
        result.merge(validate_resolution_time(params.closing_time, params.resolution_time, rules))
    return result


def check_betting_window(
    closing: datetime, now: datetime, freeze_seconds: int, rules: TimingRules
) -> ValidationResult:
    """Reject bets once ``now`` enters the freeze window before close."""

    result = ValidationResult()
    freeze_starts = closing - timedelta(seconds=freeze_seconds)
    if now >= closing:
        result.reject(
            "betting_closed",
            "Betting has closed",
            required=f"< {_iso(closing)}",
            actual=_iso(now),
        )
    elif now >= freeze_starts:
        minutes_left = math.ceil((closing - now).total_seconds() / 60)
        result.reject(
            "betting_frozen",
            f"Betting is frozen ({minutes_left} minutes until close)",
            required=f"< {_iso(freeze_starts)}",
            actual=_iso(now),
        )
    elif freeze_starts - now < timedelta(minutes=rules.freeze_warning_minutes):
        minutes = int((freeze_starts - now).total_seconds() // 60)
        result.warnings.append(f"Betting freezes in {minutes} minutes")
    result.details["timingValid"] = result.valid
    return result


def can_finalize(
    proposed_at: datetime, now: datetime, has_open_dispute: bool, rules: TimingRules
) -> ValidationResult:
    result = ValidationResult()
    if has_open_dispute:
        result.reject("dispute_open", "Resolution has an unresolved dispute")
    window_ends = proposed_at + timedelta(seconds=rules.dispute_window_seconds)
    if now < window_ends:
        result.reject(
            "dispute_window",
            f"Dispute window open until {_iso(window_ends)}",
            required=f">= {_iso(window_ends)}",
            actual=_iso(now),
        )
    return result


def calculate_resolution_time(closing: datetime, event_time: datetime | None = None) -> datetime:
    if event_time is not None:
        return event_time + _HOUR
    return closing + _DAY


def recommended_times(
    anchor: datetime, market_type: MarketType, rules: TimingRules
) -> dict[str, datetime]:
    """Return closing-time guidance relative to an event or measurement start."""

    match market_type:
        case MarketType.EVENT:
            return {
                "recommendedClose": anchor - timedelta(hours=rules.recommended_event_buffer_hours),
                "latestClose": anchor - timedelta(hours=rules.min_event_buffer_hours),
                "earliestClose": anchor - timedelta(hours=rules.recommended_event_buffer_hours * 2),
            }
        case MarketType.MEASUREMENT:
            return {
                "recommendedClose": anchor
                - timedelta(hours=rules.recommended_measurement_lead_hours),
                "latestClose": anchor - timedelta(hours=rules.min_measurement_lead_hours),
                "earliestClose": anchor - timedelta(days=7),
            }
    raise AssertionError(f"unhandled market type {market_type!r}")


def timing_overview(rules: TimingRules) -> dict[str, Any]:
    return {
        "bettingFreezeSeconds": rules.betting_freeze_seconds,
        "minEventBufferHours": rules.min_event_buffer_hours,
        "recommendedEventBufferHours": rules.recommended_event_buffer_hours,
        "maxMarketDurationDays": rules.max_market_duration_days,
        "minResolutionBufferSeconds": rules.min_resolution_buffer_seconds,
        "maxResolutionBufferSeconds": rules.max_resolution_buffer_seconds,
        "disputeWindowSeconds": rules.dispute_window_seconds,
        "rules": {
            "A": "Event markets close at least "
            f"{rules.min_event_buffer_hours}h before the event",
            "B": "Measurement markets close before the measurement period starts",
        },
    }


__all__ = [
    "MarketTimingParams",
    "calculate_resolution_time",
    "can_finalize",
    "check_betting_window",
    "recommended_times",
    "timing_overview",
    "validate_closing_time",
    "validate_event_rule",
    "validate_market_timing",
    "validate_measurement_rule",
    "validate_resolution_time",
]
