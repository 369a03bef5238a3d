"""Tests for httpclient.transport, using httpx's mock transport to avoid real network calls."""

import base64

import httpx
import pytest

from httpclient.client import HTTPClient
from httpclient.exceptions import TransportError
from httpclient.request import AuthenticationMethod
from httpclient.response import ResponseFactory
from httpclient.transport import Credentials, HttpxTransport, TransportRequest


def make_transport(handler):
    return HttpxTransport(transport=httpx.MockTransport(handler))


class TestHttpxTransport:

    def test_send_returns_raw_response_and_request_header(self):
        def handler(request):
            return httpx.Response(200, headers={'X-Test': 'yes'}, content=b'hello')

        transport = make_transport(handler)
        result = transport.send(TransportRequest(
            method='GET',
            url='http://example.com/path?q=1',
            headers=[('Host', 'example.com'), ('User-Agent', 'test-agent')],
        ))

        response = ResponseFactory().parse(result.raw)
        assert response.status_code == 200
        assert response.reason == 'OK'
        assert response.get_header('X-Test') == 'yes'
        assert response.get_header('Content-Length') == '5'
        assert response.body == b'hello'

        assert result.request_header.startswith('GET /path?q=1 HTTP/1.1\r\n')
        assert 'Host: example.com\r\n' in result.request_header
        assert 'User-Agent: test-agent\r\n' in result.request_header
        assert result.info['url'] == 'http://example.com/path?q=1'

    def test_body_and_form_content_type(self):
        seen = {}

        def handler(request):
            seen['content'] = request.content
            seen['content_type'] = request.headers.get('content-type')
            return httpx.Response(201)

        transport = make_transport(handler)
        transport.send(TransportRequest(method='POST', url='http://example.com/', body=b'a=1', form_encoded=True))

        assert seen['content'] == b'a=1'
        assert seen['content_type'] == 'application/x-www-form-urlencoded'

    def test_explicit_content_type_is_kept(self):
        seen = {}

        def handler(request):
            seen['content_type'] = request.headers.get('content-type')
            return httpx.Response(200)

        transport = make_transport(handler)
        transport.send(TransportRequest(
            method='POST',
            url='http://example.com/',
            headers=[('Content-Type', 'text/plain')],
            body=b'a=1',
            form_encoded=True,
        ))

        assert seen['content_type'] == 'text/plain'

    def test_no_body_drops_content(self):
        seen = {}

        def handler(request):
            seen['content'] = request.content
            return httpx.Response(200)

        transport = make_transport(handler)
        transport.send(TransportRequest(method='HEAD', url='http://example.com/', body=b'ignored', no_body=True))

        assert seen['content'] == b''

    def test_basic_credentials(self):
        seen = {}

        def handler(request):
            seen['authorization'] = request.headers.get('authorization')
            return httpx.Response(200)

        transport = make_transport(handler)
        transport.send(TransportRequest(
            method='GET',
            url='http://example.com/',
            credentials=Credentials('user', 'secret', AuthenticationMethod.BASIC),
        ))

        assert seen['authorization'] == 'Basic ' + base64.b64encode(b'user:secret').decode()

    def test_digest_credentials_answer_the_challenge(self):
        authorizations = []

        def handler(request):
            authorization = request.headers.get('authorization')
            authorizations.append(authorization)
            if authorization is None:
                return httpx.Response(401, headers={
                    'WWW-Authenticate': 'Digest realm="test", nonce="abc", qop="auth"',
                })
            return httpx.Response(200)

        transport = make_transport(handler)
        result = transport.send(TransportRequest(
            method='GET',
            url='http://example.com/',
            credentials=Credentials('user', 'secret', AuthenticationMethod.DIGEST),
        ))

        assert authorizations[0] is None
        assert authorizations[1].startswith('Digest ')
        assert ResponseFactory().parse(result.raw).status_code == 200
        assert 'Authorization: Digest ' in result.request_header

    def test_follow_location(self):
        def handler(request):
            if request.url.path == '/old':
                return httpx.Response(302, headers={'Location': '/new'})
            return httpx.Response(200, content=b'moved')

        transport = make_transport(handler)

        result = transport.send(TransportRequest(method='GET', url='http://example.com/old'))
        assert ResponseFactory().parse(result.raw).will_redirect

        result = transport.send(TransportRequest(method='GET', url='http://example.com/old', follow_location=True))
        response = ResponseFactory().parse(result.raw)
        assert response.status_code == 200
        assert response.body == b'moved'
        assert result.info['redirects'] == 1

    def test_httpx_cookies_do_not_persist(self):
        seen = []

        def handler(request):
            seen.append(request.headers.get('cookie'))
            return httpx.Response(200, headers={'Set-Cookie': 'sid=abc; Path=/'})

        transport = make_transport(handler)
        transport.send(TransportRequest(method='GET', url='http://example.com/'))
        transport.send(TransportRequest(method='GET', url='http://example.com/'))

        assert seen == [None, None]

    def test_connection_failures_become_transport_errors(self):
        def handler(request):
            raise httpx.ConnectError("Connection refused", request=request)

        transport = make_transport(handler)

        with pytest.raises(TransportError, match="Connection refused") as error:
            transport.send(TransportRequest(method='GET', url='http://example.com/'))

        assert isinstance(error.value.cause, httpx.ConnectError)

    def test_timeouts_become_transport_errors(self):
        def handler(request):
            raise httpx.ConnectTimeout("timed out", request=request)

        transport = make_transport(handler)

        with pytest.raises(TransportError, match="Timeout after 2"):
            transport.send(TransportRequest(method='GET', url='http://example.com/', timeout=2))

    def test_invalid_proxy_becomes_transport_error(self):
        transport = HttpxTransport()

        with pytest.raises(TransportError, match="Invalid proxy") as error:
            transport.send(TransportRequest(method='GET', url='http://example.com/', proxy='notaproxy'))

        assert isinstance(error.value.cause, ValueError)
        assert transport._clients == {}
        transport.close()

    def test_non_ascii_header_value_becomes_transport_error(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200)

        transport = make_transport(handler)

        with pytest.raises(TransportError, match="Could not build the request") as error:
            transport.send(TransportRequest(
                method='GET',
                url='http://example.com/',
                headers=[('X-Name', 'Żółw')],
            ))

        assert isinstance(error.value.cause, UnicodeEncodeError)
        assert seen == []

    def test_clients_are_reused_per_configuration(self):
        transport = make_transport(lambda request: httpx.Response(200))

        transport.send(TransportRequest(method='GET', url='http://example.com/'))
        transport.send(TransportRequest(method='GET', url='http://example.com/other'))
        transport.send(TransportRequest(method='GET', url='http://example.com/', force_ipv4=True))

        assert len(transport._clients) == 2

    def test_closed_transport_refuses_to_send(self):
        transport = make_transport(lambda request: httpx.Response(200))
        transport.send(TransportRequest(method='GET', url='http://example.com/'))

        transport.close()

        assert transport._clients == {}
        with pytest.raises(TransportError):
            transport.send(TransportRequest(method='GET', url='http://example.com/'))


class TestClientOverHttpx:

    def test_cookie_round_trip(self):
        seen = []

        def handler(request):
            seen.append(request.headers.get('cookie'))
            if request.url.path == '/login':
                return httpx.Response(200, headers=[
                    ('Set-Cookie', 'sid=abc; Path=/'),
                    ('Set-Cookie', 'pref=a+b; Path=/account'),
                ])
            return httpx.Response(200, content=b'welcome')

        with HTTPClient(transport=make_transport(handler)) as client:
            client.get('http://www.example.com/login')
            response = client.get('http://www.example.com/account/settings')

        assert response.text == 'welcome'
        assert seen[0] is None
        assert seen[1] == 'sid=abc; pref=a+b'

    def test_request_headers_are_reconstructed(self):
        with HTTPClient(transport=make_transport(lambda request: httpx.Response(200))) as client:
            request = client.create_request('GET', 'http://example.com/')
            client.send_request(request)

        assert request.headers.get_list('Host') == ['example.com']
        assert request.headers.has('Accept-Encoding')

    def test_head_request_over_httpx(self):
        seen = {}

        def handler(request):
            seen['method'] = request.method
            seen['content'] = request.content
            return httpx.Response(200, headers={'Content-Length': '0'})

        with HTTPClient(transport=make_transport(handler)) as client:
            response = client.head('http://example.com/')

        assert response.status_code == 200
        assert seen == {'method': 'HEAD', 'content': b''}
