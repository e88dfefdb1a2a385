"""
Live-reload client injected into HTML and SVG documents by the dev server.
"""

from __future__ import annotations

from esite.core.utils import RESERVED_PREFIX

LISTEN_PATH = RESERVED_PREFIX + "listen"

# __ESITE_LISTEN_PATH__ is replaced when the module is loaded.
LIVE_RELOAD_SCRIPT = """
(function() {
  var listenPath = "__ESITE_LISTEN_PATH__";
  var retryDelay = 500;

  function refreshStyles() {
    var links = document.querySelectorAll('link[rel="stylesheet"]');
    var stamp = Date.now();
    for (var i = 0; i < links.length; i++) {
      var href = links[i].getAttribute("href");
      if (!href) continue;
      var url = new URL(href, location.href);
      url.searchParams.set("_cacheOverride", stamp);
      links[i].setAttribute("href", url.toString());
    }
    console.log("[esite] Styles refreshed");
  }

  function listen() {
    fetch(listenPath, { cache: "no-store" })
      .then(function(response) {
        if (!response.ok) throw new Error("HTTP " + response.status);
        return response.json();
      })
      .then(function(message) {
        if (message.event === "reload") {
          location.reload();
          return;
        }
        if (message.event === "style") refreshStyles();
        listen();
      })
      .catch(function() {
        setTimeout(listen, retryDelay);
      });
  }

  listen();
})();
""".replace("__ESITE_LISTEN_PATH__", LISTEN_PATH)


def html_snippet() -> bytes:
    return f'<script type="text/javascript">{LIVE_RELOAD_SCRIPT}</script>'.encode("utf-8")


def svg_snippet() -> bytes:
    return f'<script type="text/javascript"><![CDATA[{LIVE_RELOAD_SCRIPT} ]]></script>'.encode("utf-8")


def inject(content: bytes, svg: bool = False) -> bytes:
    """Add the client to a document.

    HTML gets the script appended. SVG gets it inserted before the last
    closing </svg> tag, or appended when there is none.
    """
    if not svg:
        return content + html_snippet()
    index = content.rfind(b"</svg>")
    if index == -1:
        return content + svg_snippet()
    return content[:index] + svg_snippet() + content[index:]
