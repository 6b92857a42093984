"""Question screening against swappable subjective/manipulation tables."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from loguru import logger
from pydantic import BaseModel, Field, field_validator

from baozi.domain import MarketLayer, RuleViolation

DEFAULT_CONTENT_RULES_PATH = Path(__file__).resolve().parents[1] / "data" / "content_rules.yaml"

MAX_QUESTION_LENGTH = 200


class ContentRules(BaseModel):
    version: str = "custom"
    enforced_layers: list[str] = Field(
        default_factory=lambda: [layer.fee_key for layer in MarketLayer]
    )
    subjective_terms: list[str]
    manipulation_terms: list[str]
    approved_sources: dict[str, list[str]]
    implied_source_patterns: dict[str, str] = Field(default_factory=dict)
    ambiguous_terms: list[str] = Field(default_factory=list)
    clear_criteria_patterns: list[str] = Field(default_factory=list)

    @field_validator("subjective_terms", "manipulation_terms", "ambiguous_terms", mode="after")
    @classmethod
    def _lower_terms(cls, value: list[str]) -> list[str]:
        return [term.lower() for term in value if term]

    @field_validator("implied_source_patterns", mode="after")
    @classmethod
    def _compile_check(cls, value: dict[str, str]) -> dict[str, str]:
        for name, pattern in value.items():
            try:
                re.compile(pattern)
            except re.error as exc:
                raise ValueError(f"implied source pattern '{name}' is not a valid regex") from exc
        return value

    @property
    def all_sources(self) -> list[str]:
        return [source for group in self.approved_sources.values() for source in group]

    def enforces(self, layer: MarketLayer) -> bool:
        return layer.fee_key in {name.lower() for name in self.enforced_layers}


@dataclass(slots=True)
class ContentCheck:
    layer: MarketLayer
    violations: list[RuleViolation] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    matched_sources: list[str] = field(default_factory=list)

    @property
    def blocked(self) -> bool:
        return any(violation.is_blocking for violation in self.violations)

    def to_dict(self) -> dict[str, Any]:
        return {
            "blocked": self.blocked,
            "layer": self.layer.label,
            "violations": [violation.to_dict() for violation in self.violations],
            "warnings": list(self.warnings),
            "matchedSources": list(self.matched_sources),
        }


def load_content_rules(path: str | Path | None = None) -> ContentRules:
    file_path = Path(path) if path else DEFAULT_CONTENT_RULES_PATH
    if not file_path.exists():
        raise FileNotFoundError(file_path)
    raw = yaml.safe_load(file_path.read_text(encoding="utf-8")) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"Content rules file {file_path} must contain a mapping")
    rules = ContentRules.model_validate(raw)
    logger.debug("Loaded content rules v{} from {}", rules.version, file_path)
    return rules


@lru_cache(maxsize=8)
def _cached_rules(path: str | None) -> ContentRules:
    return load_content_rules(path)


def rules_for(path: str | None) -> ContentRules:
    return _cached_rules(path)


def normalize_question(question: str) -> str:
    return " ".join(question.lower().split())


def _word_match(term: str, text: str) -> bool:
    return re.search(rf"(?<![a-z0-9]){re.escape(term.lower())}(?![a-z0-9])", text) is not None


def validate_content(question: str, layer: MarketLayer, rules: ContentRules) -> ContentCheck:
    """Screen ``question`` and report whether creation must be blocked."""

    check = ContentCheck(layer=layer)
    text = normalize_question(question)
    # Padding keeps trailing-space terms like "will i " matchable at the end.
    padded = f"{text} "
    enforced = rules.enforces(layer)

    def flag(rule: str, message: str, severity: str, **kwargs: Any) -> None:
        if not enforced:
            check.warnings.append(message)
            return
        check.violations.append(
            RuleViolation(rule=rule, message=message, severity=severity, **kwargs)
        )

    subjective = [term for term in rules.subjective_terms if term in padded]
    if subjective:
        flag(
            "subjective_outcome",
            "Question contains unverifiable or subjective terms: " + ", ".join(subjective),
            "critical",
            actual=subjective,
        )

    manipulation = [term for term in rules.manipulation_terms if term in padded]
    if manipulation:
        flag(
            "manipulation_risk",
            "Question invites outcomes the creator could influence: " + ", ".join(manipulation),
            "critical",
            actual=manipulation,
        )

    check.matched_sources = [source for source in rules.all_sources if _word_match(source, text)]
    implied = [
        name
        for name, pattern in rules.implied_source_patterns.items()
        if re.search(pattern, question, flags=re.IGNORECASE)
    ]
    if not check.matched_sources and not implied:
        flag(
            "data_source",
            "Question must reference a verifiable data source, e.g. \"(Source: CoinGecko)\"",
            "error",
            required=rules.all_sources[:10],
        )
    elif not check.matched_sources:
        check.warnings.append(
            f"Data source implied ({', '.join(implied)}); naming it explicitly avoids disputes"
        )

    for term in rules.ambiguous_terms:
        if _word_match(term, text):
            check.warnings.append(f'Avoid ambiguous term: "{term}"')

    if rules.clear_criteria_patterns and not any(
        re.search(pattern, question, flags=re.IGNORECASE)
        for pattern in rules.clear_criteria_patterns
    ):
        check.warnings.append(
            'Question should have a clear numeric threshold or binary outcome, e.g. "above $X"'
        )

    if check.blocked:
        logger.info("Content screening blocked question on {} layer: {}", layer.label, question)
    return check


def validate_question(question: str) -> list[RuleViolation]:
    violations: list[RuleViolation] = []
    stripped = question.strip()
    if not stripped:
        violations.append(RuleViolation("question_required", "Question is required"))
    elif len(stripped) > MAX_QUESTION_LENGTH:
        violations.append(
            RuleViolation(
                "question_length",
                f"Question too long: {len(stripped)} chars (max {MAX_QUESTION_LENGTH})",
                required=MAX_QUESTION_LENGTH,
                actual=len(stripped),
            )
        )
    return violations


__all__ = [
    "ContentCheck",
    "ContentRules",
    "DEFAULT_CONTENT_RULES_PATH",
    "MAX_QUESTION_LENGTH",
    "load_content_rules",
    "normalize_question",
    "rules_for",
    "validate_content",
    "validate_question",
]
