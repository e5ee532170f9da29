import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core.config import ExportConfig
from core.constants import SYSTEM_VERSION
from core.exceptions import ConfigurationError
from core.log_setup import new_correlation_id, setup_logging
from dashboard.routers import analytics, exports
from orchestrator.runtime import ExportRuntime, build_runtime

logger = logging.getLogger(__name__)


def create_app(runtime: Optional[ExportRuntime] = None, run_scheduler: bool = False) -> FastAPI:
    """
    Build the Operations API.

    Without a runtime, one is built from the environment at startup.
    With run_scheduler, the daily scheduler runs as a task of this
    process, so /exports/status and /exports/run see the same
    scheduler state and the same overlap guard as the scheduled runs.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = False
        if app.state.runtime is None:
            try:
                config = ExportConfig.from_env()
            except ConfigurationError as e:
                logger.error(f"Export runtime not configured: {e.message}")
            else:
                setup_logging(config.log_level, config.log_format, new_correlation_id("api"))
                app.state.runtime = build_runtime(config)
                owned = True

        scheduler_task = None
        if run_scheduler and app.state.runtime is not None:
            scheduler_task = asyncio.create_task(app.state.runtime.scheduler.run_forever())
            # let run_forever reset its stop event before anything can call stop()
            await asyncio.sleep(0)
        app.state.scheduler_task = scheduler_task

        try:
            yield
        finally:
            if scheduler_task is not None:
                app.state.runtime.scheduler.stop()
                await scheduler_task
            if owned:
                await app.state.runtime.close()

    app = FastAPI(
        title="Health Analytics Export API",
        description="Operator control for the anonymized analytics export and trend queries.",
        version=SYSTEM_VERSION,
        lifespan=lifespan,
    )
    app.state.runtime = runtime

    # CORS (Allow local frontend development)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"], # Restrict in production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include Routers
    app.include_router(exports.router)
    app.include_router(analytics.router)

    @app.get("/")
    def root():
        configured = app.state.runtime is not None
        return {
            "status": "ok" if configured else "unconfigured",
            "message": "Health Analytics Export API is running",
        }

    return app


app = create_app(run_scheduler=True)

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
