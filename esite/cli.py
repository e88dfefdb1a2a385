"""
Main CLI for the esite tool.

Provides build, deploy and module commands for esite projects.
"""

from __future__ import annotations

import argparse
import sys
import traceback

from esite import __version__
from esite.core.utils import log


# =============================================================================
# Argument Parsing
# =============================================================================


def create_parser() -> argparse.ArgumentParser:
    """Create the main argument parser with all subcommands."""

    parser = argparse.ArgumentParser(
        prog="esite",
        description="Pluggable static-site build pipeline",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands:
  build       Build the project into the output directory
  deploy      Build for production and run every deploy module
  run         Run an executable module
  preview     Start the dev server (same as: esite run preview)

Examples:
  esite build                    # Production build
  esite build --dev              # Development build (dev-required steps only)
  esite preview                  # Serve with live reload on PreviewPort
  esite deploy                   # Build and upload via deploy modules
        """,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    parser.add_argument(
        "--no-color",
        action="store_true",
        help="Disable colored output",
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Show tracebacks for errors",
    )

    parser.add_argument(
        "--project", "-p",
        default=None,
        help="Project directory (default: search upward for esite.yaml)",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        title="commands",
        metavar="<command>",
    )

    # --- build ---
    build_parser = subparsers.add_parser(
        "build",
        help="Build the project",
        description="Copy the source tree to the output directory and run all build steps.",
    )
    build_parser.add_argument(
        "--dev",
        action="store_true",
        help="Only run steps required for development builds",
    )

    # --- deploy ---
    subparsers.add_parser(
        "deploy",
        aliases=["publish"],
        help="Build for production and deploy",
        description="Build for production, then pass every output file to each deploy module.",
    )

    # --- run ---
    run_parser = subparsers.add_parser(
        "run",
        aliases=["exec"],
        help="Run an executable module",
        description="Load a module in addition to the configured ones and call its run function.",
    )
    run_parser.add_argument(
        "module",
        help="Module name, e.g. preview",
    )

    # --- preview ---
    subparsers.add_parser(
        "preview",
        help="Start the dev server with live reload",
    )

    return parser


# =============================================================================
# Main Entry Point
# =============================================================================


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.no_color:
        log.set_color(False)

    if not args.command:
        parser.print_help()
        return 0

    try:
        if args.command == "build":
            from esite.commands.build import cmd_build
            return cmd_build(args)

        elif args.command in ("deploy", "publish"):
            from esite.commands.deploy import cmd_deploy
            return cmd_deploy(args)

        elif args.command in ("run", "exec"):
            from esite.commands.run import cmd_run
            return cmd_run(args)

        elif args.command == "preview":
            from esite.commands.run import cmd_run
            args.module = "preview"
            return cmd_run(args)

        else:
            log.error(f"Unknown command: {args.command}")
            return 1

    except KeyboardInterrupt:
        log.warning("Interrupted")
        return 130
    except Exception as e:
        if args.verbose:
            traceback.print_exc()
        log.error(str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
