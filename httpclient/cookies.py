"""
Cookie jar of the client: keeps the cookies received from servers and
selects the ones to send back with each request.
"""

import threading
import time
from dataclasses import dataclass
from email.utils import parsedate_to_datetime
from typing import Dict, Iterator, Optional, Tuple
from urllib.parse import quote_plus, unquote_plus

import structlog

from .exceptions import CookieParseError
from .headers import HEADER_HOST, HEADER_SET_COOKIE
from .request import Request
from .response import Response

logger = structlog.get_logger(__name__)

CookieKey = Tuple[str, str, str]


@dataclass
class Cookie:
    name: str
    value: str
    domain: str = ''
    path: str = '/'
    expires: Optional[float] = None
    secure: bool = False
    http_only: bool = False

    @property
    def key(self) -> CookieKey:
        return (self.domain, self.path or '/', self.name)

    def is_expired(self, now: Optional[float] = None) -> bool:
        if not self.expires:
            return False
        if now is None:
            now = time.time()
        return self.expires < now

    def to_header_value(self) -> str:
        return f"{self.name}={quote_plus(self.value, safe='')}"

    @classmethod
    def from_header(cls, header: str, default_domain: Optional[str] = None, now: Optional[float] = None) -> 'Cookie':
        """Parse a Set-Cookie header value.

        Args:
            header: Value of the Set-Cookie header
            default_domain: Domain used when the cookie has no Domain attribute
            now: Reference time for Max-Age, defaults to the current time

        Raises:
            CookieParseError: when the value has no name=value pair
        """
        if not header or not header.strip():
            raise CookieParseError("Empty cookie", header=header)

        parts = header.split(';')
        pair = parts[0].strip()
        if '=' not in pair:
            raise CookieParseError(f"No name=value pair in cookie {header!r}", header=header)

        name, value = pair.split('=', 1)
        name = name.strip()
        if not name:
            raise CookieParseError(f"No name in cookie {header!r}", header=header)

        value = value.strip()
        if len(value) > 1 and value[0] == value[-1] == '"':
            value = value[1:-1]

        cookie = cls(name=name, value=unquote_plus(value), domain=(default_domain or '').lower())

        max_age = None
        for part in parts[1:]:
            part = part.strip()
            if not part:
                continue

            attribute, _, attribute_value = part.partition('=')
            attribute = attribute.strip().lower()
            attribute_value = attribute_value.strip()

            if attribute == 'domain' and attribute_value:
                cookie.domain = attribute_value.lstrip('.').lower()
            elif attribute == 'path' and attribute_value:
                cookie.path = attribute_value
            elif attribute == 'expires' and attribute_value:
                cookie.expires = _parse_http_date(attribute_value)
            elif attribute == 'max-age':
                try:
                    max_age = int(attribute_value)
                except ValueError:
                    raise CookieParseError(f"Invalid Max-Age in cookie {header!r}", header=header)
            elif attribute == 'secure':
                cookie.secure = True
            elif attribute == 'httponly':
                cookie.http_only = True

        if max_age is not None:
            if now is None:
                now = time.time()
            # Max-Age of zero or less expires the cookie at once
            cookie.expires = now + max_age if max_age > 0 else now - 1

        return cookie


def _parse_http_date(value: str) -> Optional[float]:
    try:
        return parsedate_to_datetime(value).timestamp()
    except (TypeError, ValueError, IndexError, OverflowError):
        logger.debug("cookie_expires_ignored", expires=value)
        return None


class CookieJar:
    """In-memory cookie store keyed by (domain, path, name).

    Expired cookies are not swept, they are dropped the next time a request
    looks them up.
    """

    def __init__(self, strict_domains: bool = True):
        self.strict_domains = strict_domains
        self._cookies: Dict[CookieKey, Cookie] = {}
        self._lock = threading.Lock()

    def register_cookie(self, cookie: Cookie) -> None:
        """Store a cookie, replacing the one with the same domain, path and name."""
        if not cookie.path:
            cookie.path = '/'

        with self._lock:
            self._cookies[cookie.key] = cookie

    def domain_matches(self, host: str, domain: str) -> bool:
        host = host.lower()
        domain = domain.lower()

        if not self.strict_domains:
            return host.endswith(domain)

        return host == domain or host.endswith('.' + domain)

    def applicable_cookies(self, request: Request, now: Optional[float] = None) -> Dict[str, Cookie]:
        """Get the cookies to send with the provided request, by name."""
        host = request.headers.get(HEADER_HOST) or request.host or ''
        if isinstance(host, list):
            host = host[0]
        path = request.path_without_query
        is_secure = request.is_secure
        if now is None:
            now = time.time()

        result: Dict[str, Cookie] = {}
        with self._lock:
            for key, cookie in list(self._cookies.items()):
                domain, cookie_path, name = key
                if not self.domain_matches(host, domain):
                    continue
                if not path.startswith(cookie_path):
                    continue

                if cookie.is_expired(now):
                    del self._cookies[key]
                    logger.debug("cookie_expired", domain=domain, path=cookie_path, name=name)
                    continue
                if cookie.secure and not is_secure:
                    continue

                result.setdefault(name, cookie)

        return result

    def cookie_header(self, request: Request, now: Optional[float] = None) -> Optional[str]:
        """Get the Cookie header value for the provided request."""
        cookies = self.applicable_cookies(request, now=now)
        if not cookies:
            return None
        return '; '.join(cookie.to_header_value() for cookie in cookies.values())

    def on_response_received(self, response: Response, request: Request) -> int:
        """Register the cookies set by a response, returns how many were stored."""
        host = request.headers.get(HEADER_HOST) or request.host
        if isinstance(host, list):
            host = host[0]

        registered = 0
        for header in response.headers.get_list(HEADER_SET_COOKIE):
            try:
                cookie = Cookie.from_header(header, default_domain=host)
            except CookieParseError as e:
                logger.warning("cookie_parse_failed", header=header, error=str(e))
                continue

            self.register_cookie(cookie)
            registered += 1

        return registered

    def get(self, domain: str, path: str, name: str) -> Optional[Cookie]:
        with self._lock:
            return self._cookies.get((domain, path or '/', name))

    def clear(self) -> None:
        with self._lock:
            self._cookies.clear()

    def __contains__(self, key) -> bool:
        with self._lock:
            return key in self._cookies

    def __iter__(self) -> Iterator[Cookie]:
        with self._lock:
            return iter(list(self._cookies.values()))

    def __len__(self) -> int:
        with self._lock:
            return len(self._cookies)
