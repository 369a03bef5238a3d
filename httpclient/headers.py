"""
Ordered multi-value container for HTTP headers.
"""

from typing import Iterable, Iterator, List, Mapping, Optional, Tuple, Union

HEADER_HOST = 'Host'
HEADER_USER_AGENT = 'User-Agent'
HEADER_COOKIE = 'Cookie'
HEADER_AUTHORIZATION = 'Authorization'
HEADER_SET_COOKIE = 'Set-Cookie'
HEADER_CONTENT_TYPE = 'Content-Type'
HEADER_LOCATION = 'Location'

HeadersInput = Union[Mapping[str, str], Iterable[Tuple[str, str]], None]


class HeaderContainer:
    """Keeps headers in insertion order, several values per name allowed.

    Names are compared case-insensitively but kept with the spelling they
    were added with.
    """

    def __init__(self, headers: HeadersInput = None):
        self._headers: List[Tuple[str, str]] = []

        if headers:
            items = headers.items() if isinstance(headers, Mapping) else headers
            for name, value in items:
                self.add(name, value)

    def add(self, name: str, value) -> None:
        """Append a header value, keeping the existing values for the name."""
        name = name.strip()
        if not name:
            raise ValueError("Header name cannot be empty")

        if isinstance(value, (list, tuple)):
            for item in value:
                self._headers.append((name, str(item)))
        else:
            self._headers.append((name, str(value)))

    def set(self, name: str, value, overwrite: bool = True) -> None:
        """Set a header.

        Args:
            name: Name of the header
            value: Value, or a list of values
            overwrite: When True every stored value for the name is replaced,
                otherwise the header is only set when it is not present yet.
        """
        if self.has(name):
            if not overwrite:
                return
            self.remove(name)

        self.add(name, value)

    def has(self, name: str) -> bool:
        key = name.lower()
        return any(header.lower() == key for header, _ in self._headers)

    def get(self, name: str, default=None):
        """Get the value of a header, a list when it has several values."""
        values = self.get_list(name)
        if not values:
            return default
        if len(values) == 1:
            return values[0]
        return values

    def get_list(self, name: str) -> List[str]:
        key = name.lower()
        return [value for header, value in self._headers if header.lower() == key]

    def remove(self, name: str) -> None:
        key = name.lower()
        self._headers = [(header, value) for header, value in self._headers if header.lower() != key]

    def items(self) -> List[Tuple[str, str]]:
        return list(self._headers)

    def copy(self) -> 'HeaderContainer':
        return HeaderContainer(self._headers)

    def __contains__(self, name) -> bool:
        return isinstance(name, str) and self.has(name)

    def __iter__(self) -> Iterator[Tuple[str, str]]:
        return iter(list(self._headers))

    def __len__(self) -> int:
        return len(self._headers)

    def __eq__(self, other) -> bool:
        if not isinstance(other, HeaderContainer):
            return NotImplemented
        return self._headers == other._headers

    def __str__(self) -> str:
        return '\r\n'.join(f"{name}: {value}" for name, value in self._headers)

    def __repr__(self) -> str:
        return f"HeaderContainer({self._headers!r})"


def parse_header_line(line: str) -> Optional[Tuple[str, str]]:
    """Split a `Name: value` line, None when the line holds no header."""
    line = line.strip()
    if not line or ':' not in line:
        return None

    name, value = line.split(':', 1)
    name = name.strip()
    if not name:
        return None

    return name, value.strip()
