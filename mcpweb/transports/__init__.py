from .http import HTTPTransport, create_http_application

__all__ = [
    "HTTPTransport",
    "create_http_application",
]
