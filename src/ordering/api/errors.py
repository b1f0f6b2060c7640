"""HTTP mapping for ordering and delivery failures.

Protean's own exceptions (validation → 400, not found → 404) are mapped by
``protean.integrations.fastapi.register_exception_handlers``; these cover
the rest.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from ordering.errors import ConflictError, NotServiceableError, StateViolationError


async def _not_serviceable(request: Request, exc: NotServiceableError) -> JSONResponse:  # noqa: ARG001
    return JSONResponse(
        status_code=422,
        content={"error": "not_serviceable", "reason": exc.reason, "distance_km": exc.distance_km},
    )


async def _state_violation(request: Request, exc: StateViolationError) -> JSONResponse:  # noqa: ARG001
    return JSONResponse(status_code=409, content={"error": "refused", "reason": exc.reason})


async def _conflict(request: Request, exc: ConflictError) -> JSONResponse:  # noqa: ARG001
    return JSONResponse(
        status_code=409,
        content={"error": "conflict", "reason": str(exc), "order_id": exc.order_id},
    )


def register_ordering_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(NotServiceableError, _not_serviceable)
    app.add_exception_handler(StateViolationError, _state_violation)
    app.add_exception_handler(ConflictError, _conflict)
