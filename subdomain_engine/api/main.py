#subdomain_engine/api/main.py

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from subdomain_engine.api.routes.subdomains import router as subdomains_router
from subdomain_engine.api.routes.sweeper import router as sweeper_router
from subdomain_engine.container import Container, build_container
from subdomain_engine.core.errors import (
    InvalidStateTransition,
    RegistrarError,
    StoreError,
    SubdomainConflictError,
    SubdomainNotFoundError,
    SubdomainValidationError,
)

logger = logging.getLogger(__name__)


ERROR_STATUS = (
    (SubdomainValidationError, 400),
    (SubdomainNotFoundError, 404),
    (SubdomainConflictError, 409),
    (InvalidStateTransition, 409),
    (RegistrarError, 502),
    (StoreError, 500),
)


def create_app(container: Optional[Container] = None, start_scheduler: Optional[bool] = None) -> FastAPI:
    """
    Build the API.

    Without a container one is built from environment settings at startup.
    The sweeper schedule starts with the app when `start_scheduler` (or the
    DNS_SWEEPER_AUTOSTART setting) says so, and stops with it.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if getattr(app.state, "container", None) is None:
            app.state.container = build_container()

        engine = app.state.container
        autostart = engine.settings.autostart if start_scheduler is None else start_scheduler
        if autostart:
            engine.scheduler.start()

        yield

        engine.scheduler.stop()

    app = FastAPI(title="Subdomain DNS Engine API", lifespan=lifespan)
    app.state.container = container

    for error_cls, status_code in ERROR_STATUS:
        app.add_exception_handler(error_cls, _error_handler(status_code))

    @app.get("/health")
    def health():
        return {"status": "ok"}

    app.include_router(subdomains_router)
    app.include_router(sweeper_router)

    return app


def _error_handler(status_code: int):
    async def handler(request: Request, exc: Exception):
        if status_code >= 500:
            logger.error(f"[api] {request.method} {request.url.path} failed: {exc}")
        return JSONResponse(status_code=status_code, content={"detail": str(exc)})
    return handler


app = create_app()


def main():
    import uvicorn

    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    uvicorn.run(app, host="0.0.0.0", port=8000)


if __name__ == "__main__":
    main()
