from __future__ import annotations

import logging
from dataclasses import dataclass
from time import monotonic
from typing import TYPE_CHECKING

import httpx

from ._cookies import Cookie
from ._exceptions import ReadError, TransportTimeout

if TYPE_CHECKING:
    from ._request import Request

log = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class Response:
    """The result of a completed request.

    Attributes:
        request: The request that produced this response.
        status: The HTTP status code.
        headers: The response headers.
        cookies: The cookies set by the server, in header order.
        content: The full response body.
    """

    request: Request
    status: int
    headers: httpx.Headers
    cookies: tuple[Cookie, ...]
    content: bytes

    @property
    def text(self) -> str:
        """The response body decoded as UTF-8."""
        return self.content.decode("utf-8", errors="replace")

    def __repr__(self) -> str:
        return f"<Response [{self.status}]>"


def read_content(response: httpx.Response, deadline: float | None = None) -> bytes:
    """Reads the whole body of a streamed response.

    Args:
        response: The streamed response.
        deadline: The monotonic time after which reading times out.

    Raises:
        TransportTimeout: If the deadline passes or the read times out.
        ReadError: If the body cannot be fully read.
    """
    chunks: list[bytes] = []
    try:
        for chunk in response.iter_bytes():
            chunks.append(chunk)
            if deadline is not None and monotonic() > deadline:
                msg = "timed out reading response body"
                raise TransportTimeout(msg)
    except httpx.TimeoutException as e:
        msg = f"timed out reading response body: {e}"
        raise TransportTimeout(msg) from e
    except (httpx.RequestError, httpx.StreamError) as e:
        log.debug("read error: %s", e)
        msg = f"failed to read response body: {e}"
        raise ReadError(msg) from e
    return b"".join(chunks)


def capture(request: Request, response: httpx.Response, content: bytes) -> Response:
    headers = response.headers.get_list("set-cookie")
    parsed = (Cookie.parse_set_cookie(header) for header in headers)
    cookies = tuple(cookie for cookie in parsed if cookie is not None)
    return Response(
        request=request,
        status=response.status_code,
        headers=httpx.Headers(response.headers),
        cookies=cookies,
        content=content,
    )
