"""Middleware for request correlation ids."""

import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from taller_inbox.core.tenant_context import request_id_var

REQUEST_ID_HEADER = "X-Request-Id"


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Assign each request an id and expose it to logging."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Bind the request id for the duration of the request.

        An incoming ``X-Request-Id`` is reused so ids line up with the caller's logs.
        """
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        token = request_id_var.set(request_id)
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
