"""
Gate CLI Routes Command
=======================

List the routing table of an application, in match order.
"""

from __future__ import annotations

import sys
from typing import Any, List, Tuple

from gate.cli.commands import load_target
from gate.core.application import GateApp
from gate.core.exceptions import GateError
from gate.core.middleware import describe_conditions
from gate.core.router import Router, RouteTable


def list_routes(target: str, show_steps: bool = False) -> int:
    """
    Print the routes of ``target``.

    Returns:
        Exit code
    """
    table = resolve_table(load_target(target))
    rows = route_rows(table)

    if not rows:
        print("No routes found")
        return 0

    _print_routes(rows)

    if show_steps:
        _print_pipelines(table)

    return 0


def resolve_table(obj: Any) -> RouteTable:
    """Get the routing table from a GateApp, Router or RouteTable."""
    if isinstance(obj, RouteTable):
        return obj
    if isinstance(obj, Router):
        return obj.build()
    if isinstance(obj, GateApp):
        return obj.table
    raise GateError(f"Expected a GateApp, Router or RouteTable, got {type(obj).__name__}")


def route_rows(table: RouteTable) -> List[Tuple[str, str, str, str]]:
    """
    Routes as (method, path, pipeline, handler) rows, in declaration order.

    Declaration order is match order, so rows are never sorted.
    """
    rows = []
    for route in table.routes:
        handler = getattr(route.handler, "__name__", type(route.handler).__name__)
        rows.append((route.method, route.path, route.pipeline_name or "-", handler))
    return rows


def _print_routes(rows: List[Tuple[str, str, str, str]]) -> None:
    method_width = max(max(len(r[0]) for r in rows), 6)
    path_width = max(max(len(r[1]) for r in rows), 4)
    pipeline_width = max(max(len(r[2]) for r in rows), 8)

    print()
    header = f"{'Method':<{method_width}}  {'Path':<{path_width}}  {'Pipeline':<{pipeline_width}}  Handler"
    print(header)
    print("-" * len(header))

    for method, path, pipeline, handler in rows:
        method_display = _colorize_method(method, method_width)
        print(f"{method_display}  {path:<{path_width}}  {pipeline:<{pipeline_width}}  {handler}")

    print()
    print(f"Total: {len(rows)} routes")
    print()


def _print_pipelines(table: RouteTable) -> None:
    for name, pipeline in table.pipelines.items():
        print(f"{name}:")
        if not pipeline.steps:
            print("  (no steps)")
        for index, step in enumerate(pipeline.steps, start=1):
            line = f"  {index}. {step.name}"
            if step.conditions:
                line += f"  when {describe_conditions(step.conditions)}"
            print(line)
    print()


def _colorize_method(method: str, width: int) -> str:
    """Add ANSI colors to HTTP method."""
    colors = {
        "GET": "\033[92m",
        "POST": "\033[93m",
        "PUT": "\033[94m",
        "PATCH": "\033[96m",
        "DELETE": "\033[91m",
        "HEAD": "\033[95m",
        "OPTIONS": "\033[90m",
    }

    color = colors.get(method, "")
    if color and sys.stdout.isatty():
        return f"{color}{method:<{width}}\033[0m"

    return f"{method:<{width}}"
