from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from http.cookiejar import CookieJar
from typing import TYPE_CHECKING, Any

import httpx
from publicsuffixlist import PublicSuffixList

from ._cookies import PublicSuffixCookiePolicy
from ._exceptions import ClientInitError, URLError

if TYPE_CHECKING:
    from collections.abc import Sequence

    from ._cookies import Cookie

log = logging.getLogger(__name__)


@dataclass
class Options:
    """Per-request client settings.

    Attributes:
        timeout: The request timeout in whole seconds. 0 leaves the httpx default.
        transport: Replaces the network transport, e.g. for mocking or for custom
                   TLS and proxy settings.
    """

    timeout: int = 0
    transport: httpx.BaseTransport | None = None


class BorrowedTransport(httpx.BaseTransport):
    """Delegates to a caller-owned transport without closing it with the client."""

    _transport: httpx.BaseTransport

    def __init__(self, transport: httpx.BaseTransport) -> None:
        self._transport = transport

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        return self._transport.handle_request(request)

    def close(self) -> None:
        pass


class PolicyCookieHeader:
    """Request hook that computes the Cookie header from the client jar's policy.

    httpx copies the client jar into a jar with the default cookie policy when it
    builds a request or follows a redirect, so the header it attaches does not
    honor host-only or public suffix rules. The hook replaces that header on every
    hop. A Cookie header the caller set explicitly is left alone.
    """

    _cookies: httpx.Cookies
    _explicit: str | None

    def __init__(self, jar: CookieJar, explicit: str | None = None) -> None:
        self._cookies = httpx.Cookies(jar)
        self._explicit = explicit

    def __call__(self, request: httpx.Request) -> None:
        current = request.headers.get("cookie")
        if self._explicit is not None and current == self._explicit:
            return
        if current is not None:
            del request.headers["cookie"]
        self._cookies.set_cookie_header(request)


@lru_cache(maxsize=None)
def public_suffix_list() -> PublicSuffixList:
    return PublicSuffixList()


def new_cookie_jar() -> CookieJar:
    """Creates an empty cookie jar that applies public suffix rules.

    Raises:
        ClientInitError: If the public suffix list cannot be loaded.
    """
    try:
        suffixes = public_suffix_list()
    except (OSError, ValueError) as e:
        msg = f"failed to load public suffix list: {e}"
        raise ClientInitError(msg) from e
    return CookieJar(policy=PublicSuffixCookiePolicy(suffixes))


def parse_url(url: str) -> httpx.URL:
    try:
        target = httpx.URL(url)
    except httpx.InvalidURL as e:
        msg = f"invalid URL {url!r}: {e}"
        raise URLError(msg) from e
    if not target.scheme or not target.host:
        msg = f"URL must be absolute: {url!r}"
        raise URLError(msg)
    return target


def set_cookies(jar: CookieJar, url: httpx.URL, cookies: Sequence[Cookie]) -> None:
    """Stores cookies in the jar as if the server at url had set them."""
    if not cookies:
        return
    before = len(jar)
    response = httpx.Response(
        200,
        headers=[("set-cookie", cookie.to_set_cookie()) for cookie in cookies],
        request=httpx.Request("GET", url),
    )
    httpx.Cookies(jar).extract_cookies(response)
    if (dropped := before + len(cookies) - len(jar)) > 0:
        log.debug("%d cookie(s) not accepted for %s", dropped, url)


def new_client(
    url: str,
    cookies: Sequence[Cookie],
    options: Options,
    cookie_header: str | None = None,
) -> httpx.Client:
    """Creates a client for a single request to url.

    Every call returns a new client with its own cookie jar, pre-loaded with
    cookies scoped to url.

    Args:
        url: The absolute request URL.
        cookies: The cookies to attach to the request.
        options: The timeout and transport settings.
        cookie_header: A Cookie header set explicitly on the request, sent as is
            instead of the jar's cookies on the first hop.

    Raises:
        ClientInitError: If the cookie jar cannot be created.
        URLError: If url cannot be parsed or is not absolute.
    """
    jar = new_cookie_jar()
    target = parse_url(url)
    set_cookies(jar, target, cookies)

    kwargs: dict[str, Any] = {}
    if options.timeout:
        kwargs["timeout"] = httpx.Timeout(options.timeout)
    if options.transport is not None:
        kwargs["transport"] = BorrowedTransport(options.transport)

    return httpx.Client(
        cookies=jar,
        follow_redirects=True,
        event_hooks={"request": [PolicyCookieHeader(jar, cookie_header)]},
        **kwargs,
    )
