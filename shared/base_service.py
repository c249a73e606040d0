"""
FastAPI service skeleton shared by Accounts Access Layer services.
"""

import os
import time
from contextlib import asynccontextmanager
from typing import Dict, Optional

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST

from shared.config import ServiceConfig, get_config
from shared.errors import AccessLayerException
from shared.logging import (
    clear_context,
    configure_logging,
    get_logger,
    request_id_var,
    set_admin_context,
    set_request_id,
)
from shared.metrics import get_metrics_collector

SERVICE_VERSION = "1.0.0"

# Dependency states that still count as healthy
HEALTHY_DEPENDENCY_STATES = ("ok", "disabled")


class BaseService:
    """Owns the FastAPI app plus the config, logger and metrics every service needs.

    Subclasses add their routes after ``super().__init__`` and may override
    ``on_startup``, ``on_shutdown`` and ``_check_dependencies``.
    """

    def __init__(self, service_name: str, port: int, config: Optional[ServiceConfig] = None):
        self.service_name = service_name
        self.port = port
        self.config = config or get_config(service_name, port)
        self.logger = get_logger(service_name)
        self.metrics = get_metrics_collector(service_name)
        self._start_time = time.time()

        configure_logging(service_name, self.config.log_level)

        self.app = self._create_app()
        self._setup_middleware()
        self._setup_routes()
        self._setup_exception_handlers()

    def _create_app(self) -> FastAPI:
        @asynccontextmanager
        async def lifespan(app: FastAPI):
            await self.on_startup()
            self.logger.info("Service started", port=self.port, env=self.config.env)
            try:
                yield
            finally:
                await self.on_shutdown()
                self.logger.info("Service stopped")

        is_local = self.config.env == "local"
        return FastAPI(
            title=f"{self.service_name.title()} Service",
            description=f"Accounts Access Layer - {self.service_name.title()} Service",
            version=SERVICE_VERSION,
            docs_url="/docs" if is_local else None,
            redoc_url="/redoc" if is_local else None,
            lifespan=lifespan,
        )

    async def on_startup(self):
        """Called once before the first request."""

    async def on_shutdown(self):
        """Called once when the app stops; release connections here."""

    def _setup_middleware(self):
        @self.app.middleware("http")
        async def request_context(request: Request, call_next):
            started = time.time()
            request_id = set_request_id(request.headers.get("X-Request-ID"))
            set_admin_context(request.headers.get("X-Admin-ID"))

            try:
                response = await call_next(request)
            finally:
                clear_context()

            duration = time.time() - started
            response.headers["X-Request-ID"] = request_id
            self.metrics.record_http_request(request.method, request.url.path, response.status_code, duration)
            self.logger.info(
                "HTTP request",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=round(duration * 1000, 2),
                request_id=request_id
            )
            return response

    def _setup_routes(self):
        @self.app.get("/health")
        async def health_check():
            """Liveness plus the state of each dependency."""
            try:
                dependencies = await self._check_dependencies()
            except Exception as e:
                self.logger.error("Health check failed", error=str(e))
                self.metrics.record_health_check("error")
                return JSONResponse(
                    status_code=503,
                    content={"service": self.service_name, "status": "error", "error": str(e)}
                )

            healthy = all(state in HEALTHY_DEPENDENCY_STATES for state in dependencies.values())
            status = "ok" if healthy else "degraded"
            self.metrics.record_health_check(status)
            return {
                "service": self.service_name,
                "status": status,
                "uptime_seconds": round(time.time() - self._start_time, 3),
                "dependencies": dependencies,
                "version": SERVICE_VERSION,
                "commit": os.getenv("GIT_COMMIT", "unknown")
            }

        @self.app.get("/metrics")
        async def metrics_endpoint():
            return Response(content=self.metrics.export(), media_type=CONTENT_TYPE_LATEST)

    def _setup_exception_handlers(self):
        @self.app.exception_handler(AccessLayerException)
        async def access_layer_exception_handler(request: Request, exc: AccessLayerException):
            self.logger.error("Access layer error", code=exc.code, message=exc.message, details=exc.details)
            return JSONResponse(
                status_code=exc.status_code,
                content=exc.to_response(request_id_var.get()).model_dump()
            )

        @self.app.exception_handler(Exception)
        async def general_exception_handler(request: Request, exc: Exception):
            self.logger.error("Unhandled exception", error=str(exc), exc_info=True)
            return JSONResponse(
                status_code=500,
                content={"code": "INTERNAL_ERROR", "message": "Internal server error", "details": {}}
            )

    async def _check_dependencies(self) -> Dict[str, str]:
        """Map of dependency name to state. Override in subclasses."""
        return {}

    def run(self):
        import uvicorn
        uvicorn.run(
            self.app,
            host=self.config.host,
            port=self.config.port,
            log_level=self.config.log_level.lower()
        )
