"""Main FastAPI application for the Weekwise backend."""
from fastapi import FastAPI, Request

from weekwise.api.routes.agent import router as agent_router
from weekwise.api.routes.context import router as context_router
from weekwise.api.routes.jobs import router as jobs_router
from weekwise.api.routes.onboarding import router as onboarding_router
from weekwise.api.routes.sessions import router as sessions_router
from weekwise.api.routes.telegram import router as telegram_router
from weekwise.api.routes.weekly_plan import router as weekly_plan_router
from weekwise.core.config import settings
from weekwise.core.logging import configure_logging
from weekwise.core.middleware import RequestIDMiddleware
from weekwise.observability.client import init_opik
from weekwise.observability.tracing import trace

configure_logging(log_level=settings.log_level)

app = FastAPI(title=settings.app_name, version="0.1.0")
app.add_middleware(RequestIDMiddleware)
app.include_router(weekly_plan_router)
app.include_router(sessions_router)
app.include_router(onboarding_router)
app.include_router(agent_router)
app.include_router(telegram_router)
app.include_router(context_router)
app.include_router(jobs_router)


@app.on_event("startup")
async def startup_observability() -> None:
    """Initialize observability backends after the event loop starts."""
    init_opik()


@app.get("/health", tags=["health"], summary="Readiness probe")
async def health_check(request: Request) -> dict[str, str]:
    """Return a simple status payload so automation can probe the API."""
    with trace("http.health_check", metadata={"route": "/health"}, request_id=request.state.request_id):
        return {"status": "ok"}
