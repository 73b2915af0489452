"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from doge.api.doges import router as doges_router
from doge.api.realtime import router as realtime_router
from doge.api.views import (
    MULTIPART_OVERHEAD_BYTES,
    UploadLimitMiddleware,
    register_views,
)
from doge.app_logging import configure_logging
from doge.containers import AppContainer
from doge.services.metrics import start_reporter
from doge.services.seed import seed_users


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        state_container: AppContainer = app.state.container
        await state_container.dispatch_pool.start()
        try:
            state_container.scheduler.schedule_at_fixed_rate(
                _reap_polling_sessions(state_container),
                max(1.0, state_container.settings.polling_session_ttl_seconds / 2),
            )
            seed_users(state_container.user_repository)
            app.state.metrics_reporter = start_reporter(
                state_container.metrics_decision,
                state_container.metrics.registry,
                prefix=state_container.settings.graphite_prefix,
                period_seconds=state_container.settings.graphite_period_seconds,
            )
            logger.info("Such doge! Ready to accept traffic")
            yield
        finally:
            await state_container.scheduler.shutdown()
            await state_container.dispatch_pool.shutdown()
            await state_container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container
    app.state.metrics_reporter = None
    app.add_middleware(
        UploadLimitMiddleware,
        max_bytes=container.settings.max_upload_bytes + MULTIPART_OVERHEAD_BYTES,
    )

    register_views(app)
    app.include_router(doges_router)
    app.include_router(realtime_router)

    @app.get("/health")
    async def health(request: Request) -> dict[str, str]:
        """Report overall status and the document store probe."""
        state_container: AppContainer = request.app.state.container
        mongo = state_container.health_indicator.check()
        return {"status": mongo, "mongo": mongo}

    return app


def _reap_polling_sessions(container: AppContainer):  # type: ignore[no-untyped-def]
    async def reap() -> None:
        for session in container.polling_sessions.reap():
            container.broker.disconnect(session)

    return reap
