# taskflow/shared/middleware/__init__.py (async version)

from taskflow.shared.middleware.logging_middleware import AsyncRequestLoggingMiddleware
from taskflow.shared.middleware.error_handler_middleware import ErrorHandlerMiddleware, register_exception_handlers

# Export all for easy imports
__all__ = [
    "AsyncRequestLoggingMiddleware",
    "ErrorHandlerMiddleware",
    "register_exception_handlers",
]
