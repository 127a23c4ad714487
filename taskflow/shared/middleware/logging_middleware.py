# taskflow/shared/middleware/logging_middleware.py (async version)

"""
Middleware for HTTP request logging.

Logs method, path, status and timing. Headers are never logged: they carry
bearer tokens and the refresh token cookie.
"""

import time
import logging
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from taskflow.adapters.configuration.config import settings

# Configure logger
logger = logging.getLogger(__name__)


class AsyncRequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware para log de requisições HTTP.
    """

    async def dispatch(self, request: Request, call_next):
        # Log da requisição
        if settings.is_production:
            logger.info(f"Request: {request.method} {request.url.path}")
        else:
            query_params = dict(request.query_params)
            logger.info(
                f"Request: {request.method} {request.url.path} | "
                f"Query: {query_params if query_params else 'N/A'} | "
                f"Client: {request.client.host if request.client else 'N/A'}"
            )

        # Processar
        start_time = time.time()
        response = await call_next(request)
        process_time = time.time() - start_time

        # Log da resposta
        logger.info(
            f"Response: {response.status_code} for {request.method} {request.url.path} | "
            f"Time: {process_time:.4f}s"
        )

        return response
