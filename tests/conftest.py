"""Shared fixtures for the httpclient tests."""

import pytest

from httpclient.client import HTTPClient
from httpclient.config import ClientConfiguration
from httpclient.transport import Transport, TransportResult


class RecordingTransport(Transport):
    """Transport that records what it is asked to send and replays canned responses."""

    def __init__(self, responses=None, request_header=None):
        self.responses = list(responses or [])
        self.request_header = request_header
        self.sent = []
        self.closed = False

    def send(self, request):
        self.sent.append(request)

        raw = self.responses.pop(0) if self.responses else b"HTTP/1.1 200 OK\r\nContent-Length: 2\r\n\r\nok"
        if isinstance(raw, Exception):
            raise raw

        if self.request_header is not None:
            header = self.request_header
        else:
            lines = [f"{request.method} / HTTP/1.1"]
            lines.extend(f"{name}: {value}" for name, value in request.headers)
            header = "\r\n".join(lines) + "\r\n\r\n"

        return TransportResult(raw=raw, request_header=header)

    def close(self):
        self.closed = True


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def config():
    return ClientConfiguration()


@pytest.fixture
def client(config, transport):
    with HTTPClient(config=config, transport=transport) as client:
        yield client
