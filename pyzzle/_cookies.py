from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import format_datetime
from http.cookiejar import DefaultCookiePolicy, eff_request_host, parse_ns_headers
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from http.cookiejar import Cookie as JarCookie
    from urllib.request import Request as URLLibRequest

    from publicsuffixlist import PublicSuffixList

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Cookie:
    """An HTTP cookie, either attached to an outgoing request or set by a server.

    An empty `domain` makes the cookie host-only when it is attached to a request.
    An empty `path` defaults to the directory of the request path.
    """

    name: str
    value: str
    domain: str = ""
    path: str = ""
    expires: datetime | None = None
    max_age: int | None = None
    secure: bool = False
    http_only: bool = False
    same_site: str = ""

    def to_set_cookie(self) -> str:
        """Renders the cookie as the value of a Set-Cookie header.

        Characters that cannot appear in a cookie value are dropped, and a value
        containing a space or comma is quoted.
        """
        parts = [f"{self.name}={_sanitize_value(self.value)}"]
        if self.domain:
            parts.append(f"Domain={self.domain}")
        if self.path:
            parts.append(f"Path={_sanitize_path(self.path)}")
        if self.expires is not None:
            expires = self.expires.astimezone(timezone.utc)
            parts.append(f"Expires={format_datetime(expires, usegmt=True)}")
        if self.max_age is not None:
            parts.append(f"Max-Age={self.max_age}")
        if self.secure:
            parts.append("Secure")
        if self.http_only:
            parts.append("HttpOnly")
        if self.same_site:
            parts.append(f"SameSite={self.same_site}")
        return "; ".join(parts)

    @classmethod
    def parse_set_cookie(cls, header: str) -> Cookie | None:
        """Parses the value of a Set-Cookie header.

        A header holds a single cookie. Its first `name=value` pair is the cookie
        and the rest are attributes; attributes that are not understood are
        skipped. A header without a cookie yields None rather than raising,
        matching how clients ignore cookies they cannot understand.
        """
        parsed = parse_ns_headers([header])
        if not parsed:
            log.debug("ignoring malformed Set-Cookie header: %r", header)
            return None
        (name, value), *attrs = parsed[0]
        if value is None:
            log.debug("ignoring Set-Cookie header without a value: %r", header)
            return None

        fields: dict[str, Any] = {}
        for key, attr in attrs:
            match key.lower():
                case "domain" if attr:
                    fields["domain"] = attr
                case "path" if attr:
                    fields["path"] = attr
                case "expires" if attr is not None:
                    # parse_ns_headers has already converted the date to epoch seconds.
                    fields["expires"] = datetime.fromtimestamp(attr, timezone.utc)
                case "max-age" if attr:
                    fields["max_age"] = _parse_max_age(attr)
                case "secure":
                    fields["secure"] = True
                case "httponly":
                    fields["http_only"] = True
                case "samesite" if attr:
                    fields["same_site"] = attr
        return cls(name=name, value=_unquote(value), **fields)


def _valid_value_char(c: str) -> bool:
    return "\x20" <= c < "\x7f" and c not in '";\\'


def _sanitize_value(value: str) -> str:
    sanitized = "".join(c for c in value if _valid_value_char(c))
    if sanitized != value:
        log.debug("dropping invalid characters from cookie value %r", value)
    if " " in sanitized or "," in sanitized:
        return f'"{sanitized}"'
    return sanitized


def _sanitize_path(path: str) -> str:
    sanitized = "".join(c for c in path if "\x20" <= c < "\x7f" and c != ";")
    if sanitized != path:
        log.debug("dropping invalid characters from cookie path %r", path)
    return sanitized


def _unquote(value: str) -> str:
    if len(value) > 1 and value[0] == value[-1] == '"':
        return value[1:-1]
    return value


def _parse_max_age(value: str) -> int | None:
    try:
        return int(value)
    except ValueError:
        return None


class PublicSuffixCookiePolicy(DefaultCookiePolicy):
    """Cookie policy that refuses cookies scoped to a public suffix.

    A cookie with a Domain attribute such as `co.uk` or `github.io` would otherwise
    be shared between unrelated sites. Such a cookie is only accepted when the
    domain is the request host itself, in which case it is stored as host-only.
    Host-only cookies are only returned to the exact host that set them.
    """

    _suffixes: PublicSuffixList

    def __init__(self, suffixes: PublicSuffixList, **kwargs: Any) -> None:
        kwargs.setdefault("strict_ns_domain", DefaultCookiePolicy.DomainStrictNonDomain)
        super().__init__(**kwargs)
        self._suffixes = suffixes

    def set_ok_domain(self, cookie: JarCookie, request: URLLibRequest) -> bool:
        if not super().set_ok_domain(cookie, request):
            return False
        if not cookie.domain_specified:
            return True

        domain = cookie.domain.lstrip(".").lower()
        if not self._suffixes.is_public(domain):
            return True

        req_host, erhn = eff_request_host(request)
        if domain != req_host:
            log.debug(
                "rejecting cookie %s scoped to public suffix %s", cookie.name, domain
            )
            return False
        cookie.domain = erhn
        cookie.domain_specified = False
        cookie.domain_initial_dot = False
        return True
