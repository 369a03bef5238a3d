"""
Transports perform the actual network exchange for the client.
Keeps network code separate from request bookkeeping.
"""

import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import httpx
import structlog

from .exceptions import TransportError
from .headers import HEADER_CONTENT_TYPE
from .request import AuthenticationMethod

logger = structlog.get_logger(__name__)

FORM_CONTENT_TYPE = 'application/x-www-form-urlencoded'


@dataclass
class Credentials:
    username: str
    password: str = ''
    method: AuthenticationMethod = AuthenticationMethod.BASIC


@dataclass
class TransportRequest:
    """Everything a transport needs to send one request."""
    method: str
    url: str
    headers: List[Tuple[str, str]] = field(default_factory=list)
    body: Optional[bytes] = None
    timeout: float = 10.0
    proxy: Optional[str] = None
    follow_location: bool = False
    force_ipv4: bool = False
    verify: bool = True
    credentials: Optional[Credentials] = None
    no_body: bool = False
    form_encoded: bool = False


@dataclass
class TransportResult:
    """Raw response bytes plus the request header block as it was sent."""
    raw: bytes
    request_header: str = ''
    info: Dict[str, object] = field(default_factory=dict)


class Transport:
    """Base class for transports."""

    def send(self, request: TransportRequest) -> TransportResult:
        """Send the request.

        Raises:
            TransportError: when the exchange with the server fails
        """
        raise NotImplementedError

    def close(self) -> None:
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


class HttpxTransport(Transport):
    """Transport on top of httpx.

    One httpx client is kept per proxy, IPv4 and verification combination.
    The clients are closed with the transport.
    """

    def __init__(self, transport: Optional[httpx.BaseTransport] = None):
        """Initialize the transport.

        Args:
            transport: httpx transport to use instead of the network one,
                eg. an httpx.MockTransport
        """
        self._transport = transport
        self._clients: Dict[Tuple[Optional[str], bool, bool], httpx.Client] = {}
        self._closed = False

    def _get_client(self, request: TransportRequest) -> httpx.Client:
        key = (request.proxy, request.force_ipv4, request.verify)
        client = self._clients.get(key)
        if client is not None:
            return client

        transport = self._transport
        if transport is None:
            transport = httpx.HTTPTransport(
                verify=request.verify,
                proxy=request.proxy,
                # binding the IPv4 wildcard address restricts resolution to IPv4
                local_address='0.0.0.0' if request.force_ipv4 else None,
            )

        client = httpx.Client(transport=transport, trust_env=False)
        self._clients[key] = client
        logger.debug("transport_client_created", proxy=request.proxy, force_ipv4=request.force_ipv4)

        return client

    def _get_auth(self, credentials: Optional[Credentials]) -> Optional[httpx.Auth]:
        if credentials is None:
            return None
        if credentials.method == AuthenticationMethod.DIGEST:
            return httpx.DigestAuth(credentials.username, credentials.password or '')
        return httpx.BasicAuth(credentials.username, credentials.password or '')

    def send(self, request: TransportRequest) -> TransportResult:
        if self._closed:
            raise TransportError("Transport is closed")

        headers = list(request.headers)
        body = None if request.no_body else request.body
        if body and request.form_encoded and not any(name.lower() == 'content-type' for name, _ in headers):
            headers.append((HEADER_CONTENT_TYPE, FORM_CONTENT_TYPE))

        start_time = time.time()
        try:
            client = self._get_client(request)
        except (ValueError, httpx.InvalidURL) as e:
            raise TransportError(f"Invalid proxy {request.proxy}: {e}", cause=e) from e

        try:
            response = client.request(
                request.method,
                request.url,
                headers=headers,
                content=body,
                auth=self._get_auth(request.credentials),
                follow_redirects=request.follow_location,
                timeout=httpx.Timeout(None, connect=request.timeout),
            )
        except httpx.TimeoutException as e:
            raise TransportError(f"Timeout after {request.timeout}s: {e}", cause=e) from e
        except httpx.HTTPError as e:
            raise TransportError(str(e) or e.__class__.__name__, cause=e) from e
        except httpx.InvalidURL as e:
            raise TransportError(f"Invalid URL: {e}", cause=e) from e
        except ValueError as e:
            # non-ASCII header values among others
            raise TransportError(f"Could not build the request: {e}", cause=e) from e
        finally:
            # the client cookie jar handles cookies, not httpx
            client.cookies.clear()

        return TransportResult(
            raw=self._serialize_response(response),
            request_header=self._serialize_request(response.request, response.http_version),
            info={
                'url': str(response.url),
                'http_version': response.http_version,
                'elapsed': time.time() - start_time,
                'redirects': len(response.history),
            },
        )

    def _serialize_request(self, request: httpx.Request, http_version: str) -> str:
        target = request.url.raw_path.decode('ascii')
        lines = [f"{request.method} {target} {http_version or 'HTTP/1.1'}"]
        lines.extend(f"{name.decode('latin-1')}: {value.decode('latin-1')}" for name, value in request.headers.raw)
        return '\r\n'.join(lines) + '\r\n\r\n'

    def _serialize_response(self, response: httpx.Response) -> bytes:
        lines = [f"{response.http_version or 'HTTP/1.1'} {response.status_code} {response.reason_phrase}".rstrip()]
        for name, value in response.headers.raw:
            name = name.decode('latin-1')
            # content is already decoded and complete
            if name.lower() in ('content-encoding', 'transfer-encoding', 'content-length'):
                continue
            lines.append(f"{name}: {value.decode('latin-1')}")
        lines.append(f"Content-Length: {len(response.content)}")

        head = '\r\n'.join(lines) + '\r\n\r\n'
        return head.encode('iso-8859-1', errors='replace') + response.content

    def close(self) -> None:
        self._closed = True
        for client in self._clients.values():
            client.close()
        self._clients.clear()
