"""
Small DAG runner for the NDJSON analysis pipeline.

Tasks receive a shared context dict, return a dict of outputs, and run in
dependency order. A failing task never raises out of ``run``: it is marked
failed and everything downstream of it is skipped.
"""

from __future__ import annotations

import logging
import time
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

logger = logging.getLogger(__name__)

TaskFn = Callable[[dict[str, Any]], dict[str, Any] | None]


class TaskStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class TaskNode:
    name: str
    execute_fn: TaskFn
    depends_on: list[str] = field(default_factory=list)
    status: TaskStatus = TaskStatus.PENDING
    result: dict[str, Any] = field(default_factory=dict)
    error: str | None = None
    duration_ms: float = 0.0

    def summary(self) -> dict[str, Any]:
        if self.status == TaskStatus.SKIPPED:
            return {"status": self.status.value}
        return {
            "status": self.status.value,
            "duration_ms": round(self.duration_ms, 2),
            "error": self.error,
        }


class DAG:
    """
    Usage:
        dag = DAG("ndjson_analysis")
        dag.add_task("parse", parse_step)
        dag.add_task("select", select_step, depends_on=["parse"])
        dag.add_task("analyze", analyze_step, depends_on=["select"])
        summary = dag.run({"ndjson": text})
    """

    def __init__(self, name: str):
        self.name = name
        self.tasks: dict[str, TaskNode] = {}
        self.context: dict[str, Any] = {}

    def add_task(
        self,
        name: str,
        execute_fn: TaskFn,
        depends_on: list[str] | None = None,
    ) -> DAG:
        if name in self.tasks:
            raise ValueError(f"Duplicate task name: {name}")
        self.tasks[name] = TaskNode(name=name, execute_fn=execute_fn, depends_on=list(depends_on or []))
        return self

    def execution_order(self) -> list[str]:
        """Kahn's algorithm; ties keep insertion order."""
        downstream: dict[str, list[str]] = {name: [] for name in self.tasks}
        remaining: dict[str, int] = {}
        for task in self.tasks.values():
            for dep in task.depends_on:
                if dep not in self.tasks:
                    raise ValueError(f"Task '{task.name}' depends on unknown task '{dep}'")
                downstream[dep].append(task.name)
            remaining[task.name] = len(task.depends_on)

        ready = deque(name for name, count in remaining.items() if count == 0)
        order: list[str] = []
        while ready:
            current = ready.popleft()
            order.append(current)
            for name in downstream[current]:
                remaining[name] -= 1
                if remaining[name] == 0:
                    ready.append(name)

        if len(order) != len(self.tasks):
            raise ValueError("Cycle detected in DAG")
        return order

    def _run_task(self, task: TaskNode) -> None:
        task.status = TaskStatus.RUNNING
        started = time.perf_counter()
        try:
            task.result = task.execute_fn(self.context) or {}
            task.status = TaskStatus.SUCCESS
        except Exception as exc:
            task.status = TaskStatus.FAILED
            task.error = str(exc)
            logger.exception("Task '%s' in '%s' failed", task.name, self.name)
        finally:
            task.duration_ms = (time.perf_counter() - started) * 1000

    def run(self, initial_context: dict[str, Any] | None = None) -> dict[str, Any]:
        order = self.execution_order()
        self.context = dict(initial_context or {})
        logger.info("Starting pipeline '%s' (%s)", self.name, " -> ".join(order))

        for name in order:
            task = self.tasks[name]
            if any(self.tasks[dep].status != TaskStatus.SUCCESS for dep in task.depends_on):
                task.status = TaskStatus.SKIPPED
                logger.warning("Skipping '%s': upstream task did not succeed", name)
                continue

            self._run_task(task)
            self.context.update(task.result)

        ok = all(task.status == TaskStatus.SUCCESS for task in self.tasks.values())
        status = "completed" if ok else "failed"
        logger.info("Pipeline '%s' finished: %s", self.name, status)
        return {
            "pipeline": self.name,
            "status": status,
            "tasks": {name: self.tasks[name].summary() for name in order},
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "tasks": {name: {"depends_on": task.depends_on} for name, task in self.tasks.items()},
        }
