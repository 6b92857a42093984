from __future__ import annotations

from collections.abc import Iterator
from typing import Any

from fastapi import Body, Depends, FastAPI, HTTPException

from actions import (
    ActionContext,
    UnknownActionError,
    available_actions,
    dispatch,
    get_action,
    open_context,
)

from .core.config import get_settings, settings
from .schemas import ActionInfo, ActionResponse, HealthResponse

app = FastAPI(title="Baozi Agent API", version="0.1.0", debug=settings.debug)


def get_action_context() -> Iterator[ActionContext]:
    """Provide a request-scoped context whose RPC client closes after the response."""

    with open_context(get_settings()) as context:
        yield context


@app.get("/healthz", response_model=HealthResponse, tags=["system"])
def healthcheck() -> HealthResponse:
    """Basic readiness probe consumed by infrastructure monitors."""

    current = get_settings()
    return HealthResponse(
        network=current.solana_network,
        program_id=current.baozi_program_id,
        actions=len(available_actions()),
    )


@app.get("/actions", response_model=list[ActionInfo], tags=["actions"])
def list_actions() -> list[ActionInfo]:
    """Describe every registered action and its parameter schema."""

    return [get_action(name).info() for name in available_actions()]


@app.get("/actions/{name}", response_model=ActionInfo, tags=["actions"])
def describe_action(name: str) -> ActionInfo:
    try:
        return get_action(name).info()
    except UnknownActionError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


@app.post("/actions/{name}", response_model=ActionResponse, tags=["actions"])
def run_action(
    name: str,
    payload: dict[str, Any] | None = Body(default=None),
    context: ActionContext = Depends(get_action_context),
) -> ActionResponse:
    """Run an action; rule and lookup failures come back as ``success: false``."""

    try:
        return dispatch(name, payload, context)
    except UnknownActionError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
