"""
Gate CLI
========

Commands:
- routes: List the routing table of an application
- serve: Run an application with uvicorn
"""

from gate.cli.main import cli, main

__all__ = ["main", "cli"]
