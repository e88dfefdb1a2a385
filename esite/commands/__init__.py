"""
esite.commands - Handlers for the esite CLI subcommands.
"""
