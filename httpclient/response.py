"""
Turns the raw bytes returned by a transport into a Response.
"""

import re
from typing import Optional, Tuple, Union

from .exceptions import ResponseParseError
from .headers import HEADER_CONTENT_TYPE, HEADER_LOCATION, HeaderContainer

_STATUS_LINE = re.compile(r'^HTTP/(\d(?:\.\d)?)\s+(\d{3})(?:\s+(.*))?$')


class Response:
    def __init__(
        self,
        status_code: int,
        headers: Optional[HeaderContainer] = None,
        body: bytes = b'',
        reason: str = '',
        protocol: str = 'HTTP/1.1',
    ):
        """Initialize a Response with the parsed status, headers and body."""
        self.status_code = status_code
        self.headers = headers if headers is not None else HeaderContainer()
        self.body = body
        self.reason = reason
        self.protocol = protocol

    def get_header(self, name: str, default=None):
        return self.headers.get(name, default)

    @property
    def ok(self) -> bool:
        """Check if the status code is a 2xx one."""
        return 200 <= self.status_code < 300

    @property
    def is_redirect(self) -> bool:
        return 300 <= self.status_code < 400

    @property
    def will_redirect(self) -> bool:
        """Check if the response redirects to another location."""
        return self.is_redirect and self.headers.has(HEADER_LOCATION)

    @property
    def location(self) -> Optional[str]:
        location = self.headers.get(HEADER_LOCATION)
        if isinstance(location, list):
            return location[-1]
        return location

    @property
    def content_type(self) -> str:
        content_type = self.headers.get(HEADER_CONTENT_TYPE, '')
        if isinstance(content_type, list):
            content_type = content_type[-1]
        return content_type.lower()

    @property
    def encoding(self) -> str:
        """Character set from the Content-Type header, utf-8 when absent."""
        if 'charset=' in self.content_type:
            charset = self.content_type.split('charset=')[1].split(';')[0].strip(' \'"')
            if charset:
                return charset
        return 'utf-8'

    @property
    def text(self) -> str:
        """Decode the body using the detected or fallback encoding."""
        if not self.body:
            return ""
        try:
            return self.body.decode(self.encoding)
        except (UnicodeDecodeError, LookupError):
            return self.body.decode('utf-8', errors='replace')

    @property
    def size(self) -> int:
        return len(self.body)

    def __repr__(self) -> str:
        return f"<Response [{self.status_code}]>"


class ResponseFactory:
    """Parses raw HTTP response data into Response values."""

    def parse(self, raw: Union[bytes, str]) -> Response:
        if isinstance(raw, str):
            raw = raw.encode('utf-8')
        if not raw or not raw.strip():
            raise ResponseParseError("Could not parse the response: no data received")

        head, body = self._split(raw)
        protocol, status_code, reason, headers = self._parse_head(head)

        # redirect chains and interim responses come as consecutive blocks
        while body.startswith(b'HTTP/') and (status_code < 200 or 300 <= status_code < 400):
            head, body = self._split(body)
            protocol, status_code, reason, headers = self._parse_head(head)

        return Response(status_code, headers, body, reason=reason, protocol=protocol)

    def _split(self, raw: bytes) -> Tuple[bytes, bytes]:
        crlf = raw.find(b'\r\n\r\n')
        lf = raw.find(b'\n\n')

        if crlf != -1 and (lf == -1 or crlf <= lf):
            return raw[:crlf], raw[crlf + 4:]
        if lf != -1:
            return raw[:lf], raw[lf + 2:]
        return raw, b''

    def _parse_head(self, head: bytes) -> Tuple[str, int, str, HeaderContainer]:
        lines = head.decode('iso-8859-1').replace('\r\n', '\n').split('\n')

        match = _STATUS_LINE.match(lines[0].strip())
        if not match:
            raise ResponseParseError(f"Could not parse the response: invalid status line {lines[0]!r}")

        protocol = f"HTTP/{match.group(1)}"
        status_code = int(match.group(2))
        reason = (match.group(3) or '').strip()

        headers = HeaderContainer()
        name = value = None
        for line in lines[1:]:
            if not line.strip():
                continue

            if line[0] in ' \t':
                if name is None:
                    raise ResponseParseError(f"Could not parse the response: continuation without header {line!r}")
                value = f"{value} {line.strip()}"
                continue

            if name is not None:
                headers.add(name, value)

            if ':' not in line:
                raise ResponseParseError(f"Could not parse the response: invalid header line {line!r}")

            name, value = line.split(':', 1)
            name = name.strip()
            value = value.strip()
            if not name:
                raise ResponseParseError(f"Could not parse the response: invalid header line {line!r}")

        if name is not None:
            headers.add(name, value)

        return protocol, status_code, reason, headers
