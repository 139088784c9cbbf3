"""Gate CLI commands."""

from __future__ import annotations

import importlib
import sys
from pathlib import Path
from typing import Any, Tuple


def load_target(target: str) -> Any:
    """
    Import ``module:attribute`` from the current directory.

    Raises:
        ImportError: If the module cannot be imported
        AttributeError: If the attribute is missing
    """
    module_name, attr = split_target(target)

    cwd = str(Path.cwd())
    if cwd not in sys.path:
        sys.path.insert(0, cwd)

    module = importlib.import_module(module_name)
    obj = module
    for part in attr.split("."):
        obj = getattr(obj, part)
    return obj


def split_target(target: str) -> Tuple[str, str]:
    module_name, _, attr = target.partition(":")
    return module_name, attr or "app"
