"""
Notification server: serves the output tree and the long-poll endpoint.

Runs on the websockets asyncio server. Every request is answered from the
process_request hook with a plain HTTP response, so no WebSocket connection
is ever opened and each connection carries exactly one request.
"""

from __future__ import annotations

import asyncio
import email.utils
import json
import mimetypes
from http import HTTPStatus
from pathlib import Path, PurePosixPath
from typing import Any, Optional
from urllib.parse import unquote, urlsplit

from websockets.asyncio.server import Server, ServerConnection, serve
from websockets.datastructures import Headers
from websockets.http11 import Request, Response

from esite.build.context import BuildContext
from esite.core.utils import log
from esite.preview.channel import EventChannel
from esite.preview.client import LISTEN_PATH, inject

DEFAULT_ERROR_DOCUMENT = "/error.html"
NOT_FOUND_MESSAGE = (
    "404 - Not Found - configure/correct an error document to change the 404 response"
)


def resolve_request_path(raw_path: str) -> str:
    """Map a request target to an output-relative document path.

    Query strings are dropped, `/` and directory paths map to index.html and
    a last segment without an extension gets `.html` appended.
    """
    path = unquote(urlsplit(raw_path).path) or "/"
    if path.endswith("/"):
        return path + "index.html"
    if "." not in path.rsplit("/", 1)[-1]:
        return path + ".html"
    return path


def content_type(path: str) -> str:
    guessed, _ = mimetypes.guess_type(path)
    return guessed or "application/octet-stream"


def make_response(status: HTTPStatus, body: bytes, content_type: str) -> Response:
    headers = Headers(
        [
            ("Date", email.utils.formatdate(usegmt=True)),
            ("Connection", "close"),
            ("Content-Type", content_type),
            ("Content-Length", str(len(body))),
            ("Cache-Control", "no-cache"),
        ]
    )
    return Response(status.value, status.phrase, headers, body)


def json_response(status: HTTPStatus, payload: dict[str, Any]) -> Response:
    return make_response(status, json.dumps(payload).encode("utf-8"), "application/json")


class NotificationServer:
    """Serves the build output with live reload for one BuildContext."""

    def __init__(
        self,
        context: BuildContext,
        channel: EventChannel,
        host: str = "localhost",
        port: int = 8080,
    ):
        self.context = context
        self.channel = channel
        self.host = host
        self.port = port
        self._server: Optional[Server] = None
        self._stopping = asyncio.Event()

    @property
    def root(self) -> Path:
        return self.context.build_path

    @property
    def error_document(self) -> str:
        return self.context.config.get("ErrorDocument") or DEFAULT_ERROR_DOCUMENT

    @property
    def bound_port(self) -> int:
        """Port actually listened on (useful when started with port 0)."""
        if self._server is None:
            return self.port
        return next(iter(self._server.sockets)).getsockname()[1]

    # -------------------------------------------------------------------------
    # Request handling
    # -------------------------------------------------------------------------

    def locate(self, document: str) -> Optional[Path]:
        """Return the file for an output-relative path, or None."""
        root = self.root.resolve()
        candidate = (root / document.lstrip("/")).resolve()
        if candidate != root and root not in candidate.parents:
            return None
        return candidate if candidate.is_file() else None

    async def respond(self, raw_path: str) -> Response:
        """Build the response for one GET request target."""
        if urlsplit(raw_path).path == LISTEN_PATH:
            return await self._listen()

        document = resolve_request_path(raw_path)
        path = self.locate(document)
        if path is not None:
            try:
                body = await asyncio.to_thread(path.read_bytes)
            except FileNotFoundError:
                # Removed by a rebuild in progress
                pass
            else:
                return self._serve_document(document, body)

        return await self._not_found()

    def _serve_document(self, document: str, body: bytes) -> Response:
        suffix = PurePosixPath(document).suffix.lower()
        if suffix in (".html", ".htm", ".svg") and not self.context.encrypted_paths.covers(document):
            body = inject(body, svg=suffix == ".svg")
        return make_response(HTTPStatus.OK, body, content_type(document))

    async def _not_found(self) -> Response:
        error_path = self.locate(self.error_document)
        if error_path is not None:
            try:
                body = await asyncio.to_thread(error_path.read_bytes)
            except FileNotFoundError:
                pass
            else:
                return make_response(HTTPStatus.NOT_FOUND, body, content_type(self.error_document))
        return json_response(HTTPStatus.NOT_FOUND, {"message": NOT_FOUND_MESSAGE})

    async def _listen(self) -> Response:
        waiter = asyncio.ensure_future(self.channel.wait())
        stopping = asyncio.ensure_future(self._stopping.wait())
        try:
            await asyncio.wait({waiter, stopping}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (waiter, stopping):
                if not task.done():
                    task.cancel()

        if waiter.done() and not waiter.cancelled():
            return json_response(HTTPStatus.OK, {"event": waiter.result().value})
        return json_response(HTTPStatus.SERVICE_UNAVAILABLE, {"message": "Server is shutting down"})

    async def process_request(self, connection: ServerConnection, request: Request) -> Response:
        return await self.respond(request.path)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    @staticmethod
    async def _no_websocket(connection: ServerConnection) -> None:
        await connection.close()

    async def start(self) -> None:
        # No open_timeout: long-poll requests stay in the handshake phase
        self._server = await serve(
            self._no_websocket,
            self.host,
            self.port,
            process_request=self.process_request,
            open_timeout=None,
        )
        log.success(f"Preview running on http://{self.host}:{self.bound_port}")

    async def close(self) -> None:
        self._stopping.set()
        if self._server is not None:
            self._server.close()
            await self._server.wait_closed()
            self._server = None
