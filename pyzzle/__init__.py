"""A fluent builder for sending single HTTP requests."""

from __future__ import annotations

__all__ = [
    "DEFAULT_USER_AGENT",
    "ClientInitError",
    "Cookie",
    "PublicSuffixCookiePolicy",
    "PyzzleError",
    "ReadError",
    "Request",
    "Response",
    "SerializationError",
    "TransportError",
    "TransportTimeout",
    "URLError",
    "delete",
    "get",
    "new",
    "post",
    "put",
]

import logging
from typing import TYPE_CHECKING

from ._cookies import Cookie, PublicSuffixCookiePolicy
from ._exceptions import (
    ClientInitError,
    PyzzleError,
    ReadError,
    SerializationError,
    TransportError,
    TransportTimeout,
    URLError,
)
from ._request import DEFAULT_USER_AGENT, Request
from ._response import Response

if TYPE_CHECKING:
    import httpx

logging.getLogger(__name__).addHandler(logging.NullHandler())


def new(method: str, url: str | httpx.URL) -> Request:
    """Creates a request with the given method."""
    return Request(method, url)


def get(url: str | httpx.URL) -> Request:
    """Creates a GET request."""
    return new("GET", url)


def post(url: str | httpx.URL) -> Request:
    """Creates a POST request."""
    return new("POST", url)


def put(url: str | httpx.URL) -> Request:
    """Creates a PUT request."""
    return new("PUT", url)


def delete(url: str | httpx.URL) -> Request:
    """Creates a DELETE request."""
    return new("DELETE", url)
