"""
Support Relay API
FastAPI application that relays support-query submissions to the operator
mailbox through Gmail, authenticated with delegated OAuth2 credentials.
"""

import logging
import os
import socket
import time
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.config import Settings, settings
from app.models.submission import ErrorResponse
from app.routers import send_email
from app.services.dispatcher import build_dispatcher

# Configure logging to output to console
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

logger = logging.getLogger(__name__)

API_NAME = "Support Relay API"
API_VERSION = "1.0.0"

AVAILABLE_ENDPOINTS = [
    "GET /",
    "GET /health",
    "POST /send-email",
]


def _is_usable_lan_ip(ip: str) -> bool:
    """Return True if the IP is a usable LAN address (not loopback, not Docker internal)."""
    if ip.startswith("127."):
        return False
    # Docker bridge network
    if ip.startswith("172."):
        return False
    return True


def get_local_ip() -> Optional[str]:
    """
    Detect the host machine's local network IP address for the startup log.

    ``HOST_IP`` wins when set (containers cannot see the host's LAN address);
    otherwise the UDP connect trick lets the OS pick the outbound interface.
    Returns None when detection fails.
    """
    host_ip = os.getenv("HOST_IP", "").strip()
    if host_ip:
        return host_ip

    try:
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as s:
            s.connect(("8.8.8.8", 80))
            ip = s.getsockname()[0]
            if _is_usable_lan_ip(ip):
                return ip
    except OSError:
        pass

    return None


def get_cors_origins(config: Settings) -> List[str]:
    """
    Allowed CORS origins.

    CORS_ORIGINS (comma-separated) restricts the list; when it is unset any
    origin may call the relay, which is what an embeddable contact form needs.
    """
    return list(config.cors_origins) or ["*"]


def create_app(config: Settings = settings) -> FastAPI:
    application = FastAPI(
        title=API_NAME,
        description="Relays support queries to the operator mailbox via Gmail OAuth2",
        version=API_VERSION,
    )
    application.state.settings = config
    application.state.dispatcher = build_dispatcher(config)

    origins = get_cors_origins(config)
    application.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        # Browsers reject credentialed requests against a wildcard origin.
        allow_credentials=origins != ["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    if config.request_logging:
        @application.middleware("http")
        async def log_requests(request: Request, call_next):
            started = time.perf_counter()
            response = await call_next(request)
            elapsed_ms = (time.perf_counter() - started) * 1000
            logger.info(
                "%s %s -> %s (%.0f ms)",
                request.method,
                request.url.path,
                response.status_code,
                elapsed_ms,
            )
            return response

    application.include_router(send_email.router, tags=["relay"])

    @application.exception_handler(StarletteHTTPException)
    async def not_found_handler(request: Request, exc: StarletteHTTPException):
        """Unknown routes (and unsupported methods on known ones) get the endpoint directory."""
        if exc.status_code not in (404, 405):
            return await http_exception_handler(request, exc)
        body = ErrorResponse(
            message=f"Route {request.method} {request.url.path} not found",
            available_endpoints=AVAILABLE_ENDPOINTS,
        )
        return JSONResponse(status_code=404, content=body.to_content())

    @application.on_event("startup")
    async def log_startup_urls() -> None:
        """
        Log where the relay is reachable, e.g.

            Support Relay API running at:
              Local:   http://localhost:3000
              Network: http://192.168.1.123:3000
        """
        local_ip = get_local_ip()
        network_line = (
            f"  Network: http://{local_ip}:{config.port}"
            if local_ip
            else "  Network: (unavailable)"
        )
        logger.info(
            "%s running at:\n"
            "  Local:   http://localhost:%s\n"
            "%s",
            API_NAME,
            config.port,
            network_line,
        )
        logger.info("Environment: %s", config.environment)

    @application.on_event("shutdown")
    async def log_shutdown() -> None:
        logger.info("%s shutting down", API_NAME)

    @application.get("/")
    async def root():
        return {
            "success": True,
            "message": API_NAME,
            "version": API_VERSION,
            "environment": config.environment,
            "endpoints": AVAILABLE_ENDPOINTS,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    @application.get("/health")
    async def health():
        return {"status": "OK", "timestamp": datetime.now(timezone.utc).isoformat()}

    return application


app = create_app()
