"""
Middleware for beamdrop
"""

import logging
import time
from typing import Callable, Optional

from fastapi import FastAPI, Request, Response, HTTPException
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from .utils import format_duration

logger = logging.getLogger(__name__)


def _client_ip(request: Request) -> str:
    return request.client.host if request.client else "-"


class AccessLogMiddleware(BaseHTTPMiddleware):
    """Access logging middleware"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.time()

        try:
            response = await call_next(request)
        except Exception as e:
            self._log_access(request, None, time.time() - start_time, error=str(e))
            raise

        self._log_access(request, response, time.time() - start_time)
        return response

    def _log_access(
        self,
        request: Request,
        response: Optional[Response],
        duration: float,
        error: Optional[str] = None
    ):
        """Log access information"""

        status_code = response.status_code if response else 500
        content_length = response.headers.get("content-length", "-") if response else "-"

        log_data = {
            "method": request.method,
            "path": str(request.url.path),
            "query": str(request.url.query) if request.url.query else "",
            "status": status_code,
            "size": content_length,
            "duration": format_duration(duration),
            "ip": _client_ip(request),
        }

        if error:
            log_data["error"] = error

        # Log level based on status code
        if status_code >= 500:
            logger.error(f"ACCESS {log_data}")
        elif status_code >= 400:
            logger.warning(f"ACCESS {log_data}")
        else:
            logger.info(f"ACCESS {log_data}")


class ExceptionHandlerMiddleware(BaseHTTPMiddleware):
    """Turns unexpected exceptions into a JSON 500 so no request failure crashes the server"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)

        except HTTPException:
            # Let FastAPI handle HTTP exceptions
            raise

        except Exception as e:
            logger.exception(f"Unhandled exception: {e}")
            return JSONResponse(
                status_code=500,
                content={"error": "Internal server error"}
            )


class RequestStatsMiddleware(BaseHTTPMiddleware):
    """Counts every inbound request"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request.app.state.stats.increment_requests()
        return await call_next(request)


def setup_middleware(app: FastAPI):
    """Setup all middleware for the application"""

    # Added last runs first: stats, then access log, then the exception boundary
    app.add_middleware(ExceptionHandlerMiddleware)
    app.add_middleware(AccessLogMiddleware)
    app.add_middleware(RequestStatsMiddleware)

    logger.debug("Middleware setup complete")
