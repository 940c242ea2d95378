"""
Logging Middleware
Logs all HTTP requests and responses
"""

import time
import uuid
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from training_hub.utils.logger import setup_logger

logger = setup_logger()

REQUEST_ID_HEADER = "X-Request-ID"


class LoggingMiddleware(BaseHTTPMiddleware):
    """Middleware to log all requests and responses"""

    async def dispatch(self, request: Request, call_next):
        start_time = time.time()
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:12]

        with logger.contextualize(request_id=request_id):
            logger.info(
                f"Request: {request.method} {request.url.path} | "
                f"Client: {request.client.host if request.client else 'unknown'}"
            )

            try:
                response = await call_next(request)
            except Exception:
                duration = time.time() - start_time
                logger.exception(
                    f"Error: {request.method} {request.url.path} | "
                    f"Duration: {duration:.3f}s"
                )
                raise

            duration = time.time() - start_time
            logger.info(
                f"Response: {request.method} {request.url.path} | "
                f"Status: {response.status_code} | "
                f"Duration: {duration:.3f}s"
            )

        response.headers[REQUEST_ID_HEADER] = request_id
        return response
