"""Middleware package."""

from trackhub.middleware.request_context import REQUEST_ID_HEADER, RequestContextMiddleware

__all__ = ["REQUEST_ID_HEADER", "RequestContextMiddleware"]
