from __future__ import annotations


class PyzzleError(Exception):
    """Base class for all errors raised when dispatching a request."""


class URLError(PyzzleError, ValueError):
    """The target URL could not be parsed or is not absolute."""


class ClientInitError(PyzzleError):
    """The per-request client, or its cookie jar, could not be built."""


class SerializationError(PyzzleError, ValueError):
    """The request value could not be encoded as JSON."""


class TransportError(PyzzleError):
    """The request could not be sent or its response headers not received.

    The underlying httpx error is available as `__cause__`.
    """


class TransportTimeout(TransportError, TimeoutError):
    """The request did not complete before its timeout."""


class ReadError(PyzzleError, OSError):
    """The response body could not be fully read."""
