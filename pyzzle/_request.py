from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import replace
from time import monotonic
from typing import TYPE_CHECKING, Any
from urllib.parse import urlencode

import httpx

from ._client import Options, new_client
from ._exceptions import SerializationError, TransportError, TransportTimeout
from ._response import Response, capture, read_content

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Sequence

    from opentelemetry.trace import Span

    from ._cookies import Cookie

log = logging.getLogger(__name__)

USER_AGENT_VERSION = 1
DEFAULT_USER_AGENT = f"pyzzle/{USER_AGENT_VERSION}"

# Name of the span event recorded by Request.trace.
TRACE_EVENT_NAME = "pyzzle"


class Request:
    """A single HTTP request, configured through chained method calls.

    Configuration methods modify the request in place and return it. Terminal
    methods (`do`, `body`, `json`, `form`) send it and return the [`Response`][].
    A request is not safe to share between threads.
    """

    _method: str
    _url: str
    _header: httpx.Headers
    _cookies: list[Cookie]
    _body: bytes
    _debug: Callable[[Response], None] | None
    _options: Options

    def __init__(self, method: str, url: str | httpx.URL) -> None:
        """Creates a new request.

        Args:
            method: The HTTP method.
            url: The absolute request URL.
        """
        self._method = method
        self._url = str(url)
        self._header = httpx.Headers({"User-Agent": DEFAULT_USER_AGENT})
        self._cookies = []
        self._body = b""
        self._debug = None
        self._options = Options()

    def __repr__(self) -> str:
        return f"<Request [{self._method} {self._url}]>"

    @property
    def method(self) -> str:
        return self._method

    @property
    def url(self) -> str:
        return self._url

    @property
    def text(self) -> str:
        """The request body decoded as UTF-8."""
        return self._body.decode("utf-8", errors="replace")

    def get_headers(self) -> dict[str, str]:
        """Returns a copy of the request headers, one value per name."""
        encoding = self._header.encoding
        return {
            name.decode(encoding): value.decode(encoding)
            for name, value in self._header.raw
        }

    def timeout(self, seconds: int) -> Request:
        """Sets the request timeout in seconds. 0 uses the client default."""
        self._options.timeout = seconds
        return self

    def transport(self, transport: httpx.BaseTransport | None) -> Request:
        """Sets the transport used to send the request."""
        self._options.transport = transport
        return self

    def header(self, name: str, value: str) -> Request:
        """Sets a header, replacing any existing value."""
        self._header[name] = value
        return self

    def headers(self, headers: Mapping[str, str]) -> Request:
        """Sets several headers, replacing any existing values."""
        for name, value in headers.items():
            self._header[name] = value
        return self

    def user_agent(self, user_agent: str) -> Request:
        return self.header("User-Agent", user_agent)

    def referer(self, referer: str) -> Request:
        return self.header("Referer", referer)

    def cookie(self, cookie: Cookie) -> Request:
        """Attaches a cookie to the request.

        The cookie is sent only if it applies to the request URL.
        """
        self._cookies.append(cookie)
        return self

    def debug(self, hook: Callable[[Response], None] | None) -> Request:
        """Sets a function called with every successful response.

        The hook runs before the response is returned. Exceptions it raises
        are propagated to the caller.
        """
        self._debug = hook
        return self

    def trace(self, span: Span) -> Request:
        """Records the request and response bodies as an event on span."""

        def add_event(response: Response) -> None:
            span.add_event(
                TRACE_EVENT_NAME,
                attributes={
                    "request": response.request.text,
                    "response": response.text,
                },
            )

        return self.debug(add_event)

    def body(self, content: bytes) -> Response:
        """Sends the request with content as its body."""
        self._body = content
        return self.do()

    def json(self, value: Any) -> Response:
        """Sends the request with value encoded as a JSON body.

        Raises:
            SerializationError: If value cannot be encoded.
        """
        self.header("Content-Type", "application/json")
        try:
            content = json.dumps(value, separators=(",", ":"), allow_nan=False)
        except (TypeError, ValueError) as e:
            msg = f"failed to encode JSON body: {e}"
            raise SerializationError(msg) from e
        return self.body(content.encode())

    def form(
        self,
        data: Mapping[str, str | Sequence[str]] | Iterable[tuple[str, str]],
    ) -> Response:
        """Sends the request with data as a URL-encoded form body."""
        self.header("Content-Type", "application/x-www-form-urlencoded")
        return self.body(encode_form(data).encode())

    def do(self) -> Response:
        """Sends the request and reads the full response.

        Raises:
            URLError: If the request URL is invalid.
            ClientInitError: If the client cannot be created.
            TransportError: If sending the request fails.
            TransportTimeout: If the request times out.
            ReadError: If the response body cannot be read.
        """
        method = self._method
        url = self._url
        headers = httpx.Headers(self._header)
        cookies = tuple(self._cookies)
        content = self._body or None
        options = replace(self._options)

        log.debug("%s %s", method, url)
        with new_client(url, cookies, options, headers.get("cookie")) as client:
            request = client.build_request(method, url, headers=headers, content=content)
            deadline = monotonic() + options.timeout if options.timeout else None
            try:
                response = client.send(request, stream=True)
            except httpx.TimeoutException as e:
                msg = f"{method} {url} timed out: {e}"
                raise TransportTimeout(msg) from e
            except httpx.RequestError as e:
                msg = f"{method} {url} failed: {e}"
                raise TransportError(msg) from e
            try:
                body = read_content(response, deadline)
            finally:
                response.close()

        res = capture(self, response, body)
        log.debug("%s %s -> %d (%d bytes)", method, url, res.status, len(body))
        if self._debug is not None:
            self._debug(res)
        return res


def encode_form(
    data: Mapping[str, str | Sequence[str]] | Iterable[tuple[str, str]],
) -> str:
    """Encodes form values sorted by key, keeping the order of repeated keys."""
    items = data.items() if isinstance(data, Mapping) else data
    return urlencode(sorted(items, key=lambda item: item[0]), doseq=True)
