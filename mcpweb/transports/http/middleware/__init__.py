from .cors_middleware import cors_middleware
from .error_middleware import error_middleware

MIDDLEWARE_STACK = [
    error_middleware,
    cors_middleware,
]

__all__ = [
    "MIDDLEWARE_STACK",
    "cors_middleware",
    "error_middleware",
]
