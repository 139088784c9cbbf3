"""
Gate CLI Serve Command
======================

Run an application with uvicorn.
"""

from __future__ import annotations

import sys

from gate.cli.commands import load_target, split_target
from gate.core.application import GateApp
from gate.core.router import Router, RouteTable


def run_server(
    target: str,
    host: str = "127.0.0.1",
    port: int = 8000,
    reload: bool = False,
) -> int:
    """
    Serve ``target`` with uvicorn.

    A Router or RouteTable is wrapped in a GateApp first. With reload
    enabled uvicorn imports the target itself, so it must then name an
    ASGI application.

    Returns:
        Exit code
    """
    import uvicorn

    print("Starting Gate server...")
    print(f"  URL: http://{host}:{port}")
    print(f"  Reload: {'enabled' if reload else 'disabled'}")
    print()

    if reload:
        module_name, attr = split_target(target)
        app = f"{module_name}:{attr}"
    else:
        app = load_target(target)
        if isinstance(app, (Router, RouteTable)):
            app = GateApp(app)
        elif not callable(app):
            print(f"Error: {target} is not an ASGI application", file=sys.stderr)
            return 1

    try:
        uvicorn.run(app, host=host, port=port, reload=reload, log_level="info", app_dir=".")
    except KeyboardInterrupt:
        print("\nShutting down...")

    return 0
