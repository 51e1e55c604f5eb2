"""
Trace ID Middleware

Adds trace_id and correlation_id to every request for log correlation.
"""

from uuid import uuid4

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from ....core.observability.context import correlation_id_var, trace_id_var


class TraceMiddleware(BaseHTTPMiddleware):
    """
    Headers:
    - X-Trace-ID: Unique ID for this request (generated if not provided)
    - X-Correlation-ID: ID linking related requests, e.g. an appointment id
    """

    async def dispatch(self, request: Request, call_next):
        trace_id = request.headers.get("X-Trace-ID") or str(uuid4())
        trace_token = trace_id_var.set(trace_id)

        correlation_id = request.headers.get("X-Correlation-ID") or ""
        correlation_token = correlation_id_var.set(correlation_id)

        request.state.trace_id = trace_id

        try:
            response = await call_next(request)
        finally:
            trace_id_var.reset(trace_token)
            correlation_id_var.reset(correlation_token)

        response.headers["X-Trace-ID"] = trace_id
        if correlation_id:
            response.headers["X-Correlation-ID"] = correlation_id
        return response
