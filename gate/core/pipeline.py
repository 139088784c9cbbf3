"""
Gate Pipelines
==============

Named, ordered chains of middleware steps.

Declaration:
    ``PipelineRegistry`` collects steps under the pipeline most recently
    opened with ``begin_pipeline``. ``freeze()`` turns what was collected
    into immutable ``Pipeline`` objects.

Execution:
    ``PipelineExecutor.run`` walks a pipeline front to back. For each
    step the conditions are checked in order, stopping at the first
    false one:

        conditions hold  -> conn = step.target(conn, step.options)
                            stop here if conn.halted
        any condition false -> step skipped, continue with the next one

    Skipping a step never halts the pipeline. Exceptions raised by a
    condition or a step propagate to the caller untouched.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import (
    TYPE_CHECKING,
    Any,
    Dict,
    Iterable,
    List,
    Mapping,
    Optional,
    Tuple,
)

from gate.core.exceptions import BuildError, DeclarationError
from gate.core.middleware import Condition, MiddlewareStep, make_step
from gate.utils.logger import LogLevel, get_logger

if TYPE_CHECKING:
    from gate.core.conn import Conn

logger = get_logger("gate.pipeline")


@dataclass(frozen=True)
class Pipeline:
    """
    An immutable, named sequence of middleware steps.

    Steps run in exactly the order they were declared.
    """
    name: str
    steps: Tuple[MiddlewareStep, ...] = ()

    def __len__(self) -> int:
        return len(self.steps)

    def __iter__(self):
        return iter(self.steps)


class PipelineRegistry:
    """
    Collects middleware steps under named pipelines during declaration.

    Example:
        registry = PipelineRegistry()
        registry.begin_pipeline("api")
        registry.add_step(put_resp_content_type, "application/json")
        pipelines = registry.freeze()
    """

    def __init__(self) -> None:
        self._steps: Dict[str, List[MiddlewareStep]] = {}
        self._active: Optional[str] = None
        self._frozen: Optional[Mapping[str, Pipeline]] = None

    @property
    def active(self) -> Optional[str]:
        """Name of the pipeline receiving new steps, if any."""
        return self._active

    @property
    def names(self) -> List[str]:
        return list(self._steps)

    def __contains__(self, name: str) -> bool:
        return name in self._steps

    def _check_mutable(self) -> None:
        if self._frozen is not None:
            raise BuildError("Pipelines cannot be changed after the router is built")

    def begin_pipeline(self, name: str) -> None:
        """
        Open a new pipeline and make it the active one.

        Raises:
            DeclarationError: If ``name`` was already declared
            BuildError: If the registry is frozen
        """
        self._check_mutable()
        if not isinstance(name, str) or not name:
            raise DeclarationError(f"Pipeline name must be a non-empty string, got {name!r}")
        if name in self._steps:
            raise DeclarationError(f"Pipeline '{name}' is already declared")

        self._steps[name] = []
        self._active = name

    def activate(self, name: Optional[str]) -> None:
        """Move the cursor to an existing pipeline, or clear it with None."""
        self._check_mutable()
        if name is not None and name not in self._steps:
            raise DeclarationError(f"Pipeline '{name}' is not declared")
        self._active = name

    def add_step(
        self,
        target: Any,
        options: Any = None,
        conditions: Iterable[Condition] = (),
    ) -> MiddlewareStep:
        """
        Append a step to the active pipeline.

        Raises:
            DeclarationError: If no pipeline is active
            BuildError: If the registry is frozen
        """
        self._check_mutable()
        if self._active is None:
            raise DeclarationError(
                "Middleware step declared outside of a pipeline; call begin_pipeline() first"
            )

        step = make_step(target, options, conditions)
        self._steps[self._active].append(step)
        return step

    def freeze(self) -> Mapping[str, Pipeline]:
        """
        Return the immutable pipelines, by name.

        Calling this again returns the same mapping.
        """
        if self._frozen is None:
            self._frozen = MappingProxyType({
                name: Pipeline(name=name, steps=tuple(steps))
                for name, steps in self._steps.items()
            })
            self._active = None
        return self._frozen


class PipelineExecutor:
    """Runs pipelines against a conn."""

    def run(self, pipeline: Optional[Pipeline], conn: "Conn") -> "Conn":
        """
        Run every step of ``pipeline`` whose conditions hold.

        Args:
            pipeline: Pipeline to run; None behaves like an empty pipeline
            conn: Request context

        Returns:
            The conn returned by the last step that ran, halted if a step
            halted it
        """
        if pipeline is None:
            return conn

        debug = logger.is_enabled_for(LogLevel.DEBUG)

        for step in pipeline.steps:
            if not all(condition(conn) for condition in step.conditions):
                if debug:
                    logger.debug("Step skipped", pipeline=pipeline.name, step=step.name)
                continue

            conn = step.target(conn, step.options)

            if conn.halted:
                if debug:
                    logger.debug("Pipeline halted", pipeline=pipeline.name, step=step.name)
                return conn

        return conn


def run_pipeline(pipeline: Optional[Pipeline], conn: "Conn") -> "Conn":
    """Run ``pipeline`` with a default executor."""
    return _default_executor.run(pipeline, conn)


_default_executor = PipelineExecutor()
