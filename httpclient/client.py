"""
HTTP client: turns a URL, verb, body and headers into a request, hands it to
the transport and keeps cookies between requests.
"""

from typing import Mapping, Optional, Union
from urllib.parse import unquote, urlsplit

import structlog

from .config import ClientConfiguration, Config
from .cookies import CookieJar
from .exceptions import MalformedUrlError
from .headers import (
    HEADER_AUTHORIZATION,
    HEADER_COOKIE,
    HEADER_HOST,
    HEADER_USER_AGENT,
    HeaderContainer,
    HeadersInput,
    parse_header_line,
)
from .request import AuthenticationMethod, Method, Request
from .response import Response, ResponseFactory
from .transport import Credentials, HttpxTransport, Transport, TransportRequest, TransportResult

logger = structlog.get_logger(__name__)

# rebuilt on every send from the jar and the credentials
GENERATED_HEADERS = (HEADER_COOKIE.lower(), HEADER_AUTHORIZATION.lower())

Body = Union[str, bytes, Mapping, None]


class HTTPClient:
    """Client performing HTTP requests through a transport.

    The client owns its cookie jar and its transport; close it, or use it as
    a context manager, to release the transport.
    """

    def __init__(
        self,
        config: Optional[ClientConfiguration] = None,
        transport: Optional[Transport] = None,
        response_factory: Optional[ResponseFactory] = None,
        cookie_jar: Optional[CookieJar] = None,
    ):
        self.config = config or ClientConfiguration()
        self.transport = transport or HttpxTransport()
        self.response_factory = response_factory or ResponseFactory()
        self.cookie_jar = cookie_jar or CookieJar(strict_domains=self.config.strict_cookie_domains)

    @classmethod
    def from_config(cls, config: Config, **kwargs) -> 'HTTPClient':
        """Create a client from the loaded configuration file."""
        return cls(config=config.client_configuration(), **kwargs)

    def set_authentication_method(self, method) -> None:
        self.config.authentication_method = AuthenticationMethod.parse(method)

    def set_credentials(self, username: Optional[str], password: Optional[str] = None) -> None:
        self.config.username = username
        self.config.password = password

    def set_follow_location(self, follow_location: bool) -> None:
        self.config.follow_location = follow_location

    def will_follow_location(self) -> bool:
        return self.config.follow_location

    def set_force_ipv4(self, force_ipv4: bool) -> None:
        self.config.force_ipv4 = force_ipv4

    def will_force_ipv4(self) -> bool:
        return self.config.force_ipv4

    def set_proxy(self, proxy: Optional[str]) -> None:
        self.config.proxy = proxy

    def set_timeout(self, timeout: float) -> None:
        self.config.timeout = timeout

    def set_user_agent(self, user_agent: str) -> None:
        self.config.user_agent = user_agent

    def create_header_container(self, headers: HeadersInput = None) -> HeaderContainer:
        """Create a header container with the provided headers and the default ones."""
        container = HeaderContainer(headers)
        container.set(HEADER_USER_AGENT, self.config.user_agent, overwrite=False)
        return container

    def create_request(
        self,
        method: str,
        url: str,
        headers: Union[HeaderContainer, HeadersInput] = None,
        body: Body = None,
    ) -> Request:
        """Create a request for the provided URL.

        Args:
            method: HTTP method (GET, POST, ...)
            url: Absolute http or https URL
            headers: Header container, or headers to create one from
            body: Raw body, or a mapping of body parameters

        Raises:
            MalformedUrlError: when the URL cannot be parsed
        """
        if isinstance(headers, HeaderContainer):
            headers.set(HEADER_USER_AGENT, self.config.user_agent, overwrite=False)
        else:
            headers = self.create_header_container(headers)

        if not isinstance(url, str) or not url.strip():
            raise MalformedUrlError("Could not create the request: empty URL", url=url)

        try:
            parts = urlsplit(url.strip())
            port = parts.port
        except ValueError as e:
            raise MalformedUrlError(f"Could not create the request: invalid URL {url} ({e})", url=url) from e

        if parts.scheme not in ('http', 'https'):
            raise MalformedUrlError(f"Could not create the request: unsupported scheme in {url}", url=url)
        if not parts.hostname:
            raise MalformedUrlError(f"Could not create the request: no host in {url}", url=url)

        path = parts.path or '/'
        if parts.query:
            path += '?' + parts.query

        headers.set(HEADER_HOST, parts.hostname, overwrite=True)

        request = Request(path, method, 'HTTP/1.1', headers, body, scheme=parts.scheme, host=parts.hostname, port=port)

        if parts.username is not None:
            request.username = unquote(parts.username)
            request.password = unquote(parts.password) if parts.password is not None else None
            request.authentication_method = self.config.authentication_method
        elif self.config.username:
            request.username = self.config.username
            request.password = self.config.password
            request.authentication_method = self.config.authentication_method

        if self.config.follow_location:
            request.follow_location = True

        return request

    def request(self, method: str, url: str, body: Body = None, headers: HeadersInput = None) -> Response:
        headers = self.create_header_container(headers)
        request = self.create_request(method, url, headers, body)

        return self.send_request(request)

    def get(self, url: str, headers: HeadersInput = None) -> Response:
        return self.request(Method.GET, url, headers=headers)

    def head(self, url: str, headers: HeadersInput = None) -> Response:
        return self.request(Method.HEAD, url, headers=headers)

    def options(self, url: str, headers: HeadersInput = None) -> Response:
        return self.request(Method.OPTIONS, url, headers=headers)

    def post(self, url: str, body: Body = None, headers: HeadersInput = None) -> Response:
        return self.request(Method.POST, url, body, headers)

    def put(self, url: str, body: Body = None, headers: HeadersInput = None) -> Response:
        return self.request(Method.PUT, url, body, headers)

    def patch(self, url: str, body: Body = None, headers: HeadersInput = None) -> Response:
        return self.request(Method.PATCH, url, body, headers)

    def delete(self, url: str, body: Body = None, headers: HeadersInput = None) -> Response:
        return self.request(Method.DELETE, url, body, headers)

    def send_request(self, request: Request) -> Response:
        """Send a request and return its response.

        Raises:
            UnsupportedAuthenticationMethodError: when the request has an
                invalid authentication method
            TransportError: when the exchange with the server fails
            ResponseParseError: when the server response is malformed
        """
        transport_request = self._create_transport_request(request)

        logger.debug("sending_request",
                     method=request.method,
                     url=request.url,
                     secure=request.is_secure)
        if transport_request.credentials:
            logger.debug("request_authorization",
                         method=request.method,
                         username=transport_request.credentials.username,
                         authentication=transport_request.credentials.method.value)

        result = self.transport.send(transport_request)

        response = self.response_factory.parse(result.raw)
        logger.debug("received_response", url=request.url, status_code=response.status_code, size=response.size)

        self.cookie_jar.on_response_received(response, request)
        self.update_request_headers(request, result)

        return response

    def _create_transport_request(self, request: Request) -> TransportRequest:
        credentials = None
        if request.username:
            credentials = Credentials(
                username=request.username,
                password=request.password or '',
                method=AuthenticationMethod.parse(request.authentication_method),
            )

        headers = [(name, value) for name, value in request.headers if name.lower() != HEADER_COOKIE.lower()]
        cookies = [value for value in request.headers.get_list(HEADER_COOKIE) if value]
        jar_cookies = self.cookie_jar.cookie_header(request)
        if jar_cookies:
            cookies.append(jar_cookies)
        if cookies:
            headers.append((HEADER_COOKIE, '; '.join(cookies)))

        if request.follow_location is None:
            follow_location = self.config.follow_location
        else:
            follow_location = request.follow_location

        body = request.transmitted_body

        return TransportRequest(
            method=request.method,
            url=request.url,
            headers=headers,
            body=body,
            timeout=self.config.timeout,
            proxy=self.config.proxy,
            follow_location=follow_location,
            force_ipv4=self.config.force_ipv4,
            verify=self.config.verify,
            credentials=credentials,
            no_body=request.is_head,
            form_encoded=bool(body) and not request.body,
        )

    def update_request_headers(self, request: Request, result: TransportResult) -> None:
        """Add the headers the transport actually sent to the request."""
        if not result.request_header:
            return

        lines = result.request_header.replace('\r\n', '\n').split('\n')
        sent = set(request.headers.items())
        for line in lines[1:]:
            header = parse_header_line(line)
            if header is None or header in sent or header[0].lower() in GENERATED_HEADERS:
                continue

            request.headers.add(*header)
            sent.add(header)

    def close(self) -> None:
        self.transport.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
