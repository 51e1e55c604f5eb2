"""
Shared API Middleware

- Error handling with the standard error envelope
- Trace ID and correlation ID propagation
"""

from .error_handler import register_error_handlers
from .trace import TraceMiddleware

__all__ = [
    "register_error_handlers",
    "TraceMiddleware",
]
