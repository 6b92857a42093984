"""Named agent actions dispatched through a code-first registry."""

from . import handlers  # noqa: F401  (registers actions)
from .context import ActionContext, open_context
from .registry import (
    ActionSpec,
    UnknownActionError,
    available_actions,
    dispatch,
    get_action,
    register_action,
)

__all__ = [
    "ActionContext",
    "ActionSpec",
    "UnknownActionError",
    "available_actions",
    "dispatch",
    "get_action",
    "open_context",
    "register_action",
]
