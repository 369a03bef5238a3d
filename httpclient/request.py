"""
Request model of the HTTP client: one outbound request before transmission.
"""

import re
from enum import Enum
from typing import Mapping, Optional, Union
from urllib.parse import urlencode

from .exceptions import UnsupportedAuthenticationMethodError
from .headers import HEADER_HOST, HeaderContainer

DEFAULT_PORTS = {'http': 80, 'https': 443}

_TOKEN = re.compile(r"^[!#$%&'*+.^_`|~0-9A-Za-z-]+$")


class Method:
    GET = 'GET'
    HEAD = 'HEAD'
    POST = 'POST'
    PUT = 'PUT'
    DELETE = 'DELETE'
    PATCH = 'PATCH'
    OPTIONS = 'OPTIONS'


class AuthenticationMethod(str, Enum):
    BASIC = 'basic'
    DIGEST = 'digest'

    @classmethod
    def parse(cls, value) -> 'AuthenticationMethod':
        """Resolve a method name, case-insensitive.

        Raises:
            UnsupportedAuthenticationMethodError: for anything but basic or digest
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        raise UnsupportedAuthenticationMethodError(value)


class Request:
    """An outbound HTTP request.

    `path` holds the path and the query string combined, the way it goes
    over the wire. Credentials, authentication method and follow-location
    intent are always present, unset by default.
    """

    def __init__(
        self,
        path: str = '/',
        method: str = Method.GET,
        protocol: str = 'HTTP/1.1',
        headers: Optional[HeaderContainer] = None,
        body: Union[str, bytes, Mapping, None] = None,
        scheme: str = 'http',
        host: Optional[str] = None,
        port: Optional[int] = None,
    ):
        self.method = method
        self.path = path
        self.protocol = protocol
        self.headers = headers if headers is not None else HeaderContainer()
        self.scheme = scheme
        self.host = host
        self.port = port

        self.body: Union[str, bytes, None] = None
        self.body_parameters: dict = {}
        if isinstance(body, Mapping):
            self.body_parameters = dict(body)
        elif body is not None:
            self.body = body

        self.username: Optional[str] = None
        self.password: Optional[str] = None
        self._authentication_method: Optional[AuthenticationMethod] = None
        self.follow_location: Optional[bool] = None

    @property
    def method(self) -> str:
        return self._method

    @method.setter
    def method(self, method: str):
        method = (method or '').strip().upper()
        if not _TOKEN.match(method):
            raise ValueError(f"Invalid request method: {method!r}")
        self._method = method

    @property
    def path(self) -> str:
        return self._path

    @path.setter
    def path(self, path: str):
        path = path or '/'
        if not path.startswith('/'):
            path = '/' + path
        self._path = path

    @property
    def scheme(self) -> str:
        return self._scheme

    @scheme.setter
    def scheme(self, scheme: str):
        self._scheme = (scheme or 'http').lower()

    @property
    def authentication_method(self) -> AuthenticationMethod:
        """Authentication method, basic when none has been set."""
        return self._authentication_method or AuthenticationMethod.BASIC

    @authentication_method.setter
    def authentication_method(self, method):
        self._authentication_method = AuthenticationMethod.parse(method)

    @property
    def is_secure(self) -> bool:
        return self.scheme == 'https'

    @property
    def is_head(self) -> bool:
        return self.method == Method.HEAD

    @property
    def query(self) -> Optional[str]:
        if '?' not in self.path:
            return None
        return self.path.split('?', 1)[1]

    @property
    def path_without_query(self) -> str:
        return self.path.split('?', 1)[0]

    @property
    def effective_port(self) -> int:
        if self.port:
            return self.port
        return DEFAULT_PORTS.get(self.scheme, 80)

    @property
    def server_url(self) -> str:
        """Scheme and host, with the port when it is not the scheme default."""
        host = self.host or self.headers.get(HEADER_HOST) or ''
        if isinstance(host, list):
            host = host[0]
        if ':' in host and not host.startswith('['):
            host = f"[{host}]"

        url = f"{self.scheme}://{host}"
        if self.port and self.port != DEFAULT_PORTS.get(self.scheme):
            url += f":{self.port}"

        return url

    @property
    def url(self) -> str:
        return self.server_url + self.path

    @property
    def body_parameters_as_string(self) -> str:
        if not self.body_parameters:
            return ''
        return urlencode(self.body_parameters, doseq=True)

    @property
    def transmitted_body(self) -> Optional[bytes]:
        """Body as it goes over the wire; a raw body wins over body parameters."""
        if self.is_head:
            return None

        if self.body:
            if isinstance(self.body, str):
                return self.body.encode('utf-8')
            return bytes(self.body)

        parameters = self.body_parameters_as_string
        if parameters:
            return parameters.encode('ascii')

        return None

    def get_header(self, name: str, default=None):
        return self.headers.get(name, default)

    def __repr__(self) -> str:
        return f"<Request {self.method} {self.url}>"
