"""
esite.plugins - Plugin host and built-in plugins.

Built-in plugins are submodules of this package and are imported on demand
by esite.plugins.registry.
"""
