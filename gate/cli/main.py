"""
Gate CLI Main Module
====================

Main CLI entry point.
"""

from __future__ import annotations

import argparse
import sys
from typing import List, Optional

from gate import __version__
from gate.core.exceptions import GateError


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser."""
    parser = argparse.ArgumentParser(
        prog="gate",
        description="Gate routing CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  gate routes myapp:router        List the routes declared in myapp.router
  gate serve myapp:app --port 80  Serve myapp.app with uvicorn
        """,
    )

    parser.add_argument(
        "-v", "--version",
        action="version",
        version=f"Gate {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    routes_parser = subparsers.add_parser(
        "routes",
        help="List all routes with their pipelines",
    )
    routes_parser.add_argument(
        "target",
        help="Application as module:attribute (GateApp, Router or RouteTable)",
    )
    routes_parser.add_argument(
        "--steps",
        action="store_true",
        help="Also list the steps of each pipeline",
    )

    serve_parser = subparsers.add_parser(
        "serve",
        help="Run the application with uvicorn",
    )
    serve_parser.add_argument(
        "target",
        help="Application as module:attribute",
    )
    serve_parser.add_argument(
        "--host",
        default="127.0.0.1",
        help="Host to bind to",
    )
    serve_parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port to bind to",
    )
    serve_parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload",
    )

    return parser


def cli(args: Optional[List[str]] = None) -> int:
    """
    Main CLI entry point.

    Args:
        args: Command line arguments (uses sys.argv if None)

    Returns:
        Exit code
    """
    parser = create_parser()
    parsed = parser.parse_args(args)

    if not parsed.command:
        parser.print_help()
        return 0

    handlers = {
        "routes": handle_routes,
        "serve": handle_serve,
    }

    try:
        return handlers[parsed.command](parsed)
    except KeyboardInterrupt:
        print("\nAborted.")
        return 130
    except (GateError, ImportError, AttributeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def handle_routes(args: argparse.Namespace) -> int:
    from gate.cli.commands.routes import list_routes
    return list_routes(args.target, show_steps=args.steps)


def handle_serve(args: argparse.Namespace) -> int:
    from gate.cli.commands.serve import run_server
    return run_server(args.target, args.host, args.port, args.reload)


def main() -> None:
    sys.exit(cli())


if __name__ == "__main__":
    main()
