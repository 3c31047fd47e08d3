#!/usr/bin/env python3
"""Run the Visteria API locally.

Translates plain HTTP requests into API Gateway proxy events and hands them
to the Lambda handlers, so the dashboard and tracking snippet can be
developed against DynamoDB Local without deploying.

Usage:
    export DYNAMODB_ENDPOINT_URL="http://localhost:8000"
    export VISTERIA_API_KEYS="dev-key"
    python scripts/serve_local.py --port 8787
"""

import argparse
import os
import re
import sys
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any
from urllib.parse import parse_qsl, urlsplit

ROOT = os.path.join(os.path.dirname(__file__), "..")
sys.path.insert(0, os.path.join(ROOT, "src", "layers", "shared", "python"))
sys.path.insert(0, os.path.join(ROOT, "src", "handlers"))

import structlog

# Handler modules build no container at import
from api import health, projects, sites, visits
from visteria.config import Settings
from visteria.container import Container

logger = structlog.get_logger()

SITE_PATH = re.compile(r"^/api/sites/(?P<siteId>[^/]+)/?$")


def build_event(method: str, raw_path: str, headers: dict[str, str], body: str | None,
                client_ip: str) -> dict[str, Any]:
    """Build an API Gateway proxy event for a local request."""
    parts = urlsplit(raw_path)
    path_params = {}
    match = SITE_PATH.match(parts.path)
    if match:
        path_params = match.groupdict()

    return {
        "httpMethod": method,
        "path": parts.path,
        "pathParameters": path_params,
        "queryStringParameters": dict(parse_qsl(parts.query)),
        "headers": headers,
        "body": body,
        "isBase64Encoded": False,
        "requestContext": {"identity": {"sourceIp": client_ip}},
    }


def dispatch(event: dict[str, Any], container: Container) -> dict:
    """Route an event to the matching handler."""
    path = event["path"].rstrip("/") or "/"
    if path == "/health":
        return health.handle(event, container.settings)
    if path == "/api/visits/track":
        return visits.handle(event, container)
    if path == "/api/projects":
        return projects.handle(event, container)
    if event["pathParameters"].get("siteId"):
        return sites.handle(event, container)
    return {"statusCode": 404, "headers": {"Content-Type": "application/json"},
            "body": '{"error": true, "message": "Not found"}'}


def make_request_handler(container: Container) -> type[BaseHTTPRequestHandler]:
    """Create a request handler class bound to a container."""

    class LocalApiHandler(BaseHTTPRequestHandler):
        def _handle(self) -> None:
            length = int(self.headers.get("Content-Length") or 0)
            body = self.rfile.read(length).decode("utf-8") if length else None
            event = build_event(
                self.command,
                self.path,
                dict(self.headers.items()),
                body,
                self.client_address[0],
            )
            response = dispatch(event, container)

            payload = (response.get("body") or "").encode("utf-8")
            self.send_response(response["statusCode"])
            for name, value in (response.get("headers") or {}).items():
                self.send_header(name, value)
            self.send_header("Content-Length", str(len(payload)))
            self.end_headers()
            self.wfile.write(payload)

        do_GET = _handle
        do_POST = _handle
        do_OPTIONS = _handle
        do_PUT = _handle
        do_DELETE = _handle

        def log_message(self, format: str, *args: Any) -> None:
            logger.info("Request", client=self.client_address[0], line=format % args)

    return LocalApiHandler


def main():
    """Main entry point."""
    settings = Settings.from_env()

    parser = argparse.ArgumentParser(description="Run the Visteria API locally")
    parser.add_argument("--host", default="127.0.0.1", help="Interface to bind")
    parser.add_argument("--port", type=int, default=settings.port, help="Port to listen on")
    parser.add_argument(
        "--no-create-table",
        action="store_true",
        help="Do not create the table when it is missing",
    )
    args = parser.parse_args()

    with Container(settings) as container:
        if not args.no_create_table:
            container.store.ensure_table()

        server = ThreadingHTTPServer((args.host, args.port), make_request_handler(container))
        logger.info(
            "Visteria API listening",
            url=f"http://{args.host}:{args.port}",
            table=settings.table_name,
            endpoint=settings.endpoint_url,
        )
        try:
            server.serve_forever()
        except KeyboardInterrupt:
            pass
        finally:
            server.server_close()
            logger.info("Visteria API stopped")


if __name__ == "__main__":
    main()
