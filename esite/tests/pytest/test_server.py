"""
Tests for the notification server: routing, script injection, 404 handling
and the long-poll endpoint.
"""

from __future__ import annotations

import asyncio
import json

import pytest

from esite.build.context import BuildContext
from esite.preview.channel import Event, EventChannel
from esite.preview.client import LISTEN_PATH, LIVE_RELOAD_SCRIPT
from esite.preview.server import NOT_FOUND_MESSAGE, NotificationServer, resolve_request_path

BUILD_TREE: dict[str, bytes] = {
    "index.html": b"<html><body>Home</body></html>",
    "about.html": b"<html><body>About</body></html>",
    "css/site.css": b"body { color: black; }",
    "img/logo.svg": b'<svg xmlns="http://www.w3.org/2000/svg"><circle r="4"/></svg>',
    "private/secret.html": b"ENCRYPTED-BYTES",
    "docs/index.html": b"<html>Docs</html>",
}


def write_build(context: BuildContext, files: dict[str, bytes] = BUILD_TREE) -> None:
    for rel_path, content in files.items():
        path = context.build_path / rel_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)


@pytest.fixture
def server(context: BuildContext) -> NotificationServer:
    write_build(context)
    return NotificationServer(context, EventChannel())


def get(server: NotificationServer, path: str):
    return asyncio.run(server.respond(path))


# =============================================================================
# Path Resolution
# =============================================================================


@pytest.mark.evergreen
@pytest.mark.parametrize(
    "raw, expected",
    [
        ("/", "/index.html"),
        ("/about", "/about.html"),
        ("/about?ref=home", "/about.html"),
        ("/docs/", "/docs/index.html"),
        ("/css/site.css", "/css/site.css"),
        ("/blog.v2/post", "/blog.v2/post.html"),
        ("/my%20page", "/my page.html"),
    ],
)
def test_resolve_request_path(raw: str, expected: str) -> None:
    assert resolve_request_path(raw) == expected


# =============================================================================
# Static Files
# =============================================================================


@pytest.mark.evergreen
class TestStaticFiles:
    """Existing files are served with a content type from their extension."""

    def test_root_serves_index_with_client(self, server: NotificationServer) -> None:
        response = get(server, "/")

        assert response.status_code == 200
        assert response.headers["Content-Type"].startswith("text/html")
        assert response.body.startswith(BUILD_TREE["index.html"])
        assert b'<script type="text/javascript">' in response.body
        assert LISTEN_PATH.encode() in response.body

    def test_extensionless_path_serves_html(self, server: NotificationServer) -> None:
        response = get(server, "/about")

        assert response.status_code == 200
        assert response.body.startswith(BUILD_TREE["about.html"])

    def test_stylesheet_is_served_untouched(self, server: NotificationServer) -> None:
        response = get(server, "/css/site.css")

        assert response.status_code == 200
        assert response.headers["Content-Type"] == "text/css"
        assert response.body == BUILD_TREE["css/site.css"]
        assert response.headers["Content-Length"] == str(len(response.body))

    def test_svg_gets_cdata_script_before_closing_tag(self, server: NotificationServer) -> None:
        response = get(server, "/img/logo.svg")
        body = response.body

        assert response.headers["Content-Type"] == "image/svg+xml"
        assert body.endswith(b"</svg>")
        assert body.count(b"</svg>") == 1
        assert body.index(b"<![CDATA[") < body.index(b"</svg>")
        assert LIVE_RELOAD_SCRIPT.encode() in body

    def test_no_injection_below_encrypted_prefix(
        self, server: NotificationServer, context: BuildContext
    ) -> None:
        context.encrypted_paths.add("private")

        response = get(server, "/private/secret.html")

        assert response.status_code == 200
        assert response.body == BUILD_TREE["private/secret.html"]

    def test_responses_are_not_cached(self, server: NotificationServer) -> None:
        assert get(server, "/css/site.css").headers["Cache-Control"] == "no-cache"


# =============================================================================
# Not Found
# =============================================================================


@pytest.mark.evergreen
class TestNotFound:
    """Missing files get the error document or a JSON message."""

    def test_generic_json_without_error_document(self, server: NotificationServer) -> None:
        response = get(server, "/missing.png")

        assert response.status_code == 404
        assert response.headers["Content-Type"] == "application/json"
        assert json.loads(response.body) == {"message": NOT_FOUND_MESSAGE}

    def test_default_error_document(self, server: NotificationServer, context: BuildContext) -> None:
        (context.build_path / "error.html").write_bytes(b"<html>Oops</html>")

        response = get(server, "/nope")

        assert response.status_code == 404
        assert response.body == b"<html>Oops</html>"

    def test_configured_error_document(self, make_context) -> None:
        context = make_context(ErrorDocument="/404.html")
        write_build(context, {"404.html": b"custom"})
        server = NotificationServer(context, EventChannel())

        response = get(server, "/nope")

        assert response.status_code == 404
        assert response.body == b"custom"

    def test_paths_outside_output_are_missing(
        self, server: NotificationServer, context: BuildContext
    ) -> None:
        (context.config.project_root / "secret.txt").write_text("top secret")

        response = get(server, "/../secret.txt")

        assert response.status_code == 404
        assert b"top secret" not in response.body


# =============================================================================
# Long-Poll
# =============================================================================


@pytest.mark.evergreen
class TestLongPoll:
    """The listen endpoint answers with the next published event."""

    @pytest.mark.parametrize("event", [Event.STYLE, Event.RELOAD])
    def test_listen_resolves_with_event(self, server: NotificationServer, event: Event) -> None:
        async def scenario():
            request = asyncio.create_task(server.respond(LISTEN_PATH))
            await asyncio.sleep(0.01)
            assert not request.done()
            server.channel.publish(event)
            return await asyncio.wait_for(request, timeout=1)

        response = asyncio.run(scenario())

        assert response.status_code == 200
        assert json.loads(response.body) == {"event": event.value}

    def test_listen_never_touches_filesystem(
        self, server: NotificationServer, context: BuildContext
    ) -> None:
        listen_file = context.build_path / LISTEN_PATH.lstrip("/")
        listen_file.parent.mkdir(parents=True)
        listen_file.write_text("file")

        async def scenario():
            request = asyncio.create_task(server.respond(LISTEN_PATH + "?t=1"))
            await asyncio.sleep(0.01)
            pending = not request.done()
            server.channel.publish(Event.RELOAD)
            return pending, await request

        pending, response = asyncio.run(scenario())

        assert pending
        assert json.loads(response.body) == {"event": "reload"}

    def test_close_releases_pending_listeners(self, server: NotificationServer) -> None:
        async def scenario():
            request = asyncio.create_task(server.respond(LISTEN_PATH))
            await asyncio.sleep(0.01)
            await server.close()
            return await asyncio.wait_for(request, timeout=1)

        assert asyncio.run(scenario()).status_code == 503


# =============================================================================
# Over HTTP
# =============================================================================


async def http_get(port: int, path: str) -> bytes:
    reader, writer = await asyncio.open_connection("127.0.0.1", port)
    writer.write(f"GET {path} HTTP/1.1\r\nHost: localhost\r\n\r\n".encode())
    await writer.drain()
    data = await reader.read()
    writer.close()
    return data


@pytest.mark.evergreen
class TestOverHttp:
    """Requests over a real socket get one response each."""

    def test_serves_file_and_long_poll(self, context: BuildContext) -> None:
        write_build(context)

        async def scenario():
            server = NotificationServer(context, EventChannel(), host="127.0.0.1", port=0)
            await server.start()
            try:
                page = await asyncio.wait_for(http_get(server.bound_port, "/about"), timeout=5)
                listen = asyncio.create_task(http_get(server.bound_port, LISTEN_PATH))
                await asyncio.sleep(0.1)
                server.channel.publish(Event.STYLE)
                event = await asyncio.wait_for(listen, timeout=5)
            finally:
                await server.close()
            return page, event

        page, event = asyncio.run(scenario())

        assert page.startswith(b"HTTP/1.1 200 OK")
        assert BUILD_TREE["about.html"] in page
        assert event.startswith(b"HTTP/1.1 200 OK")
        assert event.endswith(b'{"event": "style"}')
