"""
Global error handling middleware.

Pipeline errors that escape a router keep their own status code; everything
else becomes a JSON 400 (bad values) or 500.
"""
import logging
from typing import Callable

from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from richness_report.domain.exceptions import ReportError


logger = logging.getLogger(__name__)


def _error_response(status_code: int, error: str, detail: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": error, "detail": detail},
    )


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """
    Turns uncaught exceptions into JSON responses of the form
    ``{"error": <type>, "detail": <message>}``.
    """

    async def dispatch(self, request: Request, call_next: Callable):
        context = {"path": request.url.path, "method": request.method}
        try:
            return await call_next(request)

        except ReportError as e:
            logger.error(
                f"{request.method} {request.url.path} failed with {type(e).__name__}: {e.message}",
                extra={**context, "status_code": e.status_code},
            )
            return _error_response(e.status_code, type(e).__name__, e.message)

        except ValueError as e:
            # Bad parameter values that slipped past request validation
            logger.warning(f"Rejected request: {e}", extra=context)
            return _error_response(status.HTTP_400_BAD_REQUEST, "Invalid request", str(e))

        except Exception as e:
            logger.exception(f"Unhandled exception: {e}", extra=context)
            return _error_response(
                status.HTTP_500_INTERNAL_SERVER_ERROR,
                "Internal server error",
                "An unexpected error occurred",
            )
