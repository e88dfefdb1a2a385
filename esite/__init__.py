"""
esite - pluggable static-site build pipeline with a live-reload dev server.
"""

__version__ = "0.1.0"
