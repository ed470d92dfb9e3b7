"""
Base service class for Newsletter Gateway services.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
import time

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.routing import APIRoute
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.routing import Match

from shared.config import ServiceConfig, get_config
from shared.logging import clear_context, configure_logging, get_logger, set_request_id
from shared.metrics import MetricsCollector, get_metrics_collector
from shared.errors import GatewayException, ValidationError


UNMATCHED_ROUTE = "unmatched"


class BaseService:
    """Base service class with common functionality."""

    def __init__(
        self,
        service_name: str,
        config: Optional[ServiceConfig] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.service_name = service_name
        self.config = config or get_config(service_name)
        self.port = self.config.port
        self.logger = get_logger(f"{service_name}.service")
        self.metrics = metrics or get_metrics_collector(service_name)
        self._start_time = time.time()

        configure_logging(service_name, self.config.log_level)

        self.app = self._create_app()
        self._setup_middleware()
        self._setup_routes()

    def _create_app(self) -> FastAPI:
        """Create FastAPI application."""
        docs_enabled = self.config.environment == "development"
        return FastAPI(
            title=f"{self.service_name.title()} Service",
            description=f"Newsletter Gateway - {self.service_name.title()} Service",
            version="1.0.0",
            docs_url="/docs" if docs_enabled else None,
            redoc_url="/redoc" if docs_enabled else None,
            openapi_url="/openapi.json" if docs_enabled else None,
            lifespan=self._lifespan,
        )

    @asynccontextmanager
    async def _lifespan(self, app: FastAPI):
        await self.on_startup()
        try:
            yield
        finally:
            await self.on_shutdown()

    async def on_startup(self) -> None:
        """Startup hook. Override in subclasses."""
        self.logger.info("Service started", port=self.config.port, environment=self.config.environment)

    async def on_shutdown(self) -> None:
        """Shutdown hook. Override in subclasses."""
        self.logger.info("Service stopped")

    def _setup_middleware(self):
        """Set up middleware."""

        @self.app.middleware("http")
        async def observe_request(request: Request, call_next):
            request_id = set_request_id(request.headers.get("X-Request-ID"))
            start_time = time.time()

            try:
                response = await self._check_request_limits(request)
                if response is None:
                    response = await call_next(request)
                    self._after_request(request, response)

                duration = time.time() - start_time
                self.metrics.record_http_request(
                    method=request.method,
                    endpoint=self.route_label(request),
                    status_code=response.status_code,
                    duration=duration
                )
                self.logger.info(
                    "HTTP request",
                    method=request.method,
                    path=request.url.path,
                    status_code=response.status_code,
                    duration_ms=round(duration * 1000, 2)
                )

                response.headers["X-Request-ID"] = request_id
                return response
            finally:
                clear_context()

        # Added last so it wraps every other middleware, including early rejections
        origins = ["*"] if self.config.frontend_url == "*" else [self.config.frontend_url]
        self.app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    async def _check_request_limits(self, request: Request) -> Optional[Response]:
        """Return a response to short-circuit the request. Override in subclasses."""
        return None

    def _after_request(self, request: Request, response: Response) -> None:
        """Hook to decorate a handled response. Override in subclasses."""
        return None

    def _setup_routes(self):
        """Set up common routes and error handlers."""

        @self.app.get("/health")
        async def health_check():
            """Liveness endpoint."""
            return {
                "service": self.service_name,
                "status": "OK",
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "uptime": self._get_uptime(),
                "environment": self.config.environment,
            }

        @self.app.get("/metrics")
        async def metrics_endpoint():
            """Prometheus metrics endpoint."""
            from prometheus_client import CONTENT_TYPE_LATEST
            return Response(content=self.metrics.export(), media_type=CONTENT_TYPE_LATEST)

        @self.app.exception_handler(GatewayException)
        async def gateway_exception_handler(request: Request, exc: GatewayException):
            """Render gateway errors as structured responses."""
            log = self.logger.error if exc.status_code >= 500 else self.logger.warning
            log(
                "Gateway error",
                code=exc.code,
                message=exc.message,
                details=exc.details,
                path=request.url.path,
            )
            return self._error_response(exc)

        @self.app.exception_handler(RequestValidationError)
        async def request_validation_handler(request: Request, exc: RequestValidationError):
            """Report malformed input as a 400 instead of FastAPI's 422."""
            errors = exc.errors()
            self.logger.info("Request validation failed", path=request.url.path, errors=len(errors))
            return self._error_response(
                ValidationError("Invalid request parameters", details={"detail": str(errors)})
            )

        @self.app.exception_handler(StarletteHTTPException)
        async def http_exception_handler(request: Request, exc: StarletteHTTPException):
            """Structured 404 listing the routes the service does serve."""
            if exc.status_code == 404:
                return JSONResponse(
                    status_code=404,
                    content={
                        "success": False,
                        "error": "Route not found",
                        "availableRoutes": self.available_routes(),
                    },
                )
            return JSONResponse(
                status_code=exc.status_code,
                content={"success": False, "error": str(exc.detail)},
                headers=getattr(exc, "headers", None),
            )

        @self.app.exception_handler(Exception)
        async def general_exception_handler(request: Request, exc: Exception):
            """Handle general exceptions."""
            self.logger.error("Unhandled exception", error=str(exc), exc_info=True)
            content: Dict[str, Any] = {"success": False, "error": "Internal server error"}
            content["message"] = str(exc) if self.config.expose_error_details else "Something went wrong"
            return JSONResponse(status_code=500, content=content)

    def _error_response(self, exc: GatewayException) -> JSONResponse:
        payload = exc.to_response(include_details=self.config.expose_error_details)
        return JSONResponse(
            status_code=exc.status_code,
            content=payload.model_dump(exclude_none=True),
        )

    def route_label(self, request: Request) -> str:
        """Route template for metric labels, so ids in the path never become series."""
        route = request.scope.get("route")
        if route is None:
            # Not routed yet (early rejection) or no route matched
            for candidate in self.app.router.routes:
                match, _ = candidate.matches(request.scope)
                if match != Match.NONE:
                    route = candidate
                    break
        return getattr(route, "path", None) or UNMATCHED_ROUTE

    def available_routes(self) -> List[str]:
        """List "METHOD /path" for every API route, in registration order."""
        routes = []
        for route in self.app.router.routes:
            if not isinstance(route, APIRoute):
                continue
            for method in sorted(m for m in (route.methods or set()) if m not in {"HEAD", "OPTIONS"}):
                routes.append(f"{method} {route.path}")
        return routes

    def _get_uptime(self) -> float:
        """Get service uptime in seconds."""
        return time.time() - self._start_time

    def run(self):
        """Run the service."""
        import uvicorn
        uvicorn.run(
            self.app,
            host=self.config.host,
            port=self.config.port,
            log_level=self.config.log_level.lower()
        )
