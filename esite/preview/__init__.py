"""
esite.preview - Development server with live reload.
"""

from esite.preview.channel import Event, EventChannel
from esite.preview.coordinator import RebuildCoordinator, RebuildResult
from esite.preview.watcher import FileChangeWatcher, classify, fingerprint
from esite.preview.server import NotificationServer, resolve_request_path
from esite.preview.devserver import DevServer

__all__ = [
    "Event",
    "EventChannel",
    "RebuildCoordinator",
    "RebuildResult",
    "FileChangeWatcher",
    "classify",
    "fingerprint",
    "NotificationServer",
    "resolve_request_path",
    "DevServer",
]
