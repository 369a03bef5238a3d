"""
Entrypoint: load .env and config.yaml, init logging, perform one request
and print the response.
"""

import argparse
import sys

import structlog
from dotenv import load_dotenv

from httpclient.client import HTTPClient
from httpclient.config import Config
from httpclient.exceptions import HttpClientError
from httpclient.headers import parse_header_line
from httpclient.log import setup_logging
from httpclient.request import AuthenticationMethod, Method


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Perform an HTTP request")
    parser.add_argument("url", help="URL of the request")
    parser.add_argument("-X", "--request", dest="method", help="HTTP method, GET by default or POST with data")
    parser.add_argument("-H", "--header", dest="headers", action="append", default=[],
                        help="Extra header as 'Name: value', can be repeated")
    parser.add_argument("-d", "--data", help="Request body")
    parser.add_argument("-u", "--user", help="Credentials as user:password")
    parser.add_argument("--digest", action="store_true", help="Use digest authentication")
    parser.add_argument("-L", "--location", action="store_true", help="Follow redirects")
    parser.add_argument("-4", "--ipv4", action="store_true", help="Resolve names to IPv4 addresses only")
    parser.add_argument("--proxy", help="URL of the proxy server")
    parser.add_argument("--timeout", type=float, help="Connect timeout in seconds")
    parser.add_argument("-A", "--user-agent", help="User agent to send")
    parser.add_argument("--config", help="Path to the configuration file")
    parser.add_argument("-i", "--include", action="store_true", help="Print the response status and headers")
    parser.add_argument("-v", "--verbose", action="store_true", help="Print the request headers that were sent")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    """Perform the request described by the command line arguments."""
    load_dotenv()
    args = parse_args(argv)

    try:
        config = Config(args.config)
    except (FileNotFoundError, ValueError) as e:
        print(f"Could not load configuration: {e}", file=sys.stderr)
        return 1

    setup_logging(config.logging.get("level", "INFO"), config.logging.get("format", "console"))
    logger = structlog.get_logger(__name__)

    headers = []
    for line in args.headers:
        header = parse_header_line(line)
        if header is None:
            print(f"Invalid header: {line}", file=sys.stderr)
            return 1
        headers.append(header)

    method = args.method or (Method.POST if args.data is not None else Method.GET)

    try:
        with HTTPClient.from_config(config) as client:
            if args.user:
                username, _, password = args.user.partition(":")
                client.set_credentials(username, password)
            if args.digest:
                client.set_authentication_method(AuthenticationMethod.DIGEST)
            if args.location:
                client.set_follow_location(True)
            if args.ipv4:
                client.set_force_ipv4(True)
            if args.proxy:
                client.set_proxy(args.proxy)
            if args.timeout:
                client.set_timeout(args.timeout)
            if args.user_agent:
                client.set_user_agent(args.user_agent)

            request = client.create_request(method, args.url, headers, args.data)
            response = client.send_request(request)
    except HttpClientError as e:
        logger.error("request_failed", url=args.url, error=str(e))
        return 1

    if args.verbose:
        print(f"> {request.method} {request.path} {request.protocol}")
        for name, value in request.headers:
            print(f"> {name}: {value}")
        print(">")

    if args.include:
        print(f"{response.protocol} {response.status_code} {response.reason}".rstrip())
        print(str(response.headers))
        print()

    sys.stdout.write(response.text)
    return 0


if __name__ == "__main__":
    sys.exit(main())
