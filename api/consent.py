#!/usr/bin/env python3
"""Vercel entry point for /api/consent, relaying requests to the Flask app."""

import json
import sys
from io import BytesIO
from http.server import BaseHTTPRequestHandler
from pathlib import Path
from typing import Callable, Iterable, List, Mapping, Optional, Tuple
from urllib.parse import urlsplit

print("[lambda] cold start", flush=True)

PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from consent_service.config import ERROR_MESSAGES  # noqa: E402
from consent_service.server import app as wsgi_app  # noqa: E402

Headers = List[Tuple[str, str]]


def build_environ(
    method: str,
    path: str,
    headers: Iterable[Tuple[str, str]],
    body: bytes,
    client_address: Optional[Tuple[str, int]] = None,
    request_version: str = "HTTP/1.1",
) -> dict:
    """Translate a raw platform request into a WSGI environ."""
    split_url = urlsplit(path)
    header_map = {key.lower(): value for key, value in headers}
    environ = {
        "wsgi.version": (1, 0),
        "wsgi.url_scheme": "https",
        "wsgi.input": BytesIO(body),
        "wsgi.errors": sys.stderr,
        "wsgi.multithread": False,
        "wsgi.multiprocess": False,
        "wsgi.run_once": False,
        "REQUEST_METHOD": method,
        "SCRIPT_NAME": "",
        "PATH_INFO": split_url.path or "/",
        "QUERY_STRING": split_url.query or "",
        "SERVER_NAME": header_map.get("host", "localhost"),
        "SERVER_PORT": "443",
        "SERVER_PROTOCOL": request_version,
        "CONTENT_TYPE": header_map.get("content-type", ""),
        "CONTENT_LENGTH": str(len(body)),
    }
    # Socket peer; used when no X-Forwarded-For is present
    if client_address:
        environ["REMOTE_ADDR"] = client_address[0]
        environ["REMOTE_PORT"] = str(client_address[1])

    for key, value in headers:
        header_key = f"HTTP_{key.upper().replace('-', '_')}"
        if header_key in ("HTTP_CONTENT_TYPE", "HTTP_CONTENT_LENGTH"):
            continue
        # Repeated headers are joined, keeping the first X-Forwarded-For hop first
        if header_key in environ:
            environ[header_key] = f"{environ[header_key]}, {value}"
        else:
            environ[header_key] = value

    return environ


def run_wsgi(app: Callable, environ: dict) -> Tuple[str, Headers, bytes]:
    """Drive a WSGI app and collect status, headers and body."""
    status_headers: dict = {}
    chunks: List[bytes] = []

    def start_response(status: str, response_headers: Headers, exc_info=None):
        status_headers["status"] = status
        status_headers["headers"] = list(response_headers)
        return chunks.append

    result = app(environ, start_response)
    try:
        for data in result:
            chunks.append(data if isinstance(data, bytes) else data.encode("utf-8"))
    finally:
        if hasattr(result, "close"):
            result.close()

    return (
        status_headers.get("status", "500 Internal Server Error"),
        status_headers.get("headers", []),
        b"".join(chunks),
    )


def error_body() -> bytes:
    return json.dumps({"ok": False, "error": ERROR_MESSAGES["server_error"]}).encode("utf-8")


class handler(BaseHTTPRequestHandler):  # pragma: no cover - executed in production
    server_version = "VercelPythonWSGI/1.0"

    def _read_body(self) -> bytes:
        length = int(self.headers.get("content-length", 0) or 0)
        if length > 0:
            return self.rfile.read(length)
        return b""

    def _send(self, status: str, headers: Headers, body: bytes) -> None:
        status_code, _, status_text = status.partition(" ")
        self.send_response(int(status_code), status_text or None)

        header_names = {name.lower() for name, _ in headers}
        if "content-length" not in header_names:
            headers.append(("Content-Length", str(len(body))))
        for name, value in headers:
            self.send_header(name, value)
        self.end_headers()
        if body and self.command != "HEAD":
            self.wfile.write(body)

    def _dispatch(self) -> None:
        try:
            body = self._read_body()
            environ = build_environ(
                self.command,
                self.path,
                self.headers.items(),
                body,
                self.client_address,
                self.request_version,
            )
            self._send(*run_wsgi(wsgi_app, environ))
        except Exception as exc:
            print(f"[lambda] request error: {type(exc).__name__}: {exc}", flush=True)
            self._send(
                "500 Internal Server Error",
                [("Content-Type", "application/json")],
                error_body(),
            )

    # Every verb goes through Flask so non-POST methods get the JSON 405
    do_GET = do_POST = do_PUT = do_PATCH = do_DELETE = do_OPTIONS = do_HEAD = _dispatch

    def log_message(self, format, *args):
        print(f"[lambda] {self.address_string()} - {format % args}", flush=True)
