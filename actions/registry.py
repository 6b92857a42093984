"""Code-first registry mapping action names to typed handlers."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any, Dict

from loguru import logger
from pydantic import ValidationError

from baozi.core.errors import BaoziError, RuleViolationError
from baozi.schemas import ActionInfo, ActionParams, ActionResponse

from .context import ActionContext

Handler = Callable[[Any, ActionContext], Any]


class UnknownActionError(LookupError):
    """Raised when a caller requests an unregistered action."""


@dataclass(frozen=True, slots=True)
class ActionSpec:
    name: str
    params: type[ActionParams]
    handler: Handler
    description: str = ""
    builds_transaction: bool = False

    def info(self) -> ActionInfo:
        return ActionInfo(
            name=self.name,
            description=self.description,
            builds_transaction=self.builds_transaction,
            params_schema=self.params.model_json_schema(),
        )


_ACTIONS: Dict[str, ActionSpec] = {}


def register_action(
    name: str, params: type[ActionParams], description: str = ""
) -> Callable[[Handler], Handler]:
    """Register the decorated function as the handler for ``name``."""

    def decorator(handler: Handler) -> Handler:
        _ACTIONS[name] = ActionSpec(
            name=name,
            params=params,
            handler=handler,
            description=description or (handler.__doc__ or "").strip(),
            builds_transaction=name.startswith("build_"),
        )
        return handler

    return decorator


def get_action(name: str) -> ActionSpec:
    try:
        return _ACTIONS[name]
    except KeyError as exc:
        raise UnknownActionError(f"Action '{name}' is not registered") from exc


def available_actions() -> tuple[str, ...]:
    return tuple(sorted(_ACTIONS))


def dispatch(
    name: str, payload: Mapping[str, Any] | None, context: ActionContext
) -> ActionResponse:
    """Validate ``payload`` and run the handler for ``name``.

    Rule, lookup and transport failures come back as a failure envelope;
    an unknown ``name`` raises ``UnknownActionError``.
    """

    spec = get_action(name)
    try:
        params = spec.params.model_validate(dict(payload or {}))
    except ValidationError as exc:
        errors = [
            {"rule": "params", "message": err["msg"], "field": ".".join(map(str, err["loc"]))}
            for err in exc.errors()
        ]
        logger.info("Rejected params for {}: {}", name, errors)
        first = errors[0] if errors else {"field": "", "message": "invalid parameters"}
        return ActionResponse.fail(f"{first['field']}: {first['message']}", errors)

    try:
        data = spec.handler(params, context)
    except RuleViolationError as exc:
        logger.info("Action {} rejected: {}", name, exc)
        return ActionResponse.fail(str(exc), [v.to_dict() for v in exc.violations])
    except BaoziError as exc:
        logger.warning("Action {} failed: {}", name, exc)
        return ActionResponse.fail(str(exc))
    return ActionResponse.ok(data)


__all__ = [
    "ActionSpec",
    "UnknownActionError",
    "available_actions",
    "dispatch",
    "get_action",
    "register_action",
]
