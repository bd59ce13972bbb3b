"""Serial task runner -- one coroutine at a time, stop on first failure.

CONTRACT
────────
Tasks run one at a time in queue order.  Each starts only after the
previous one finished, and the first failure ends the run.

ARCHITECTURE
────────────
::

    SerialRunner
      ├── .add(name, factory)   ─ enqueue a zero-arg coroutine factory
      └── .run()                ─ await each in order, collect results
                                   first failure -> TaskError(name, cause)

    sync_models(driver, models)  ─ one "sync:<table>" task per table
    drop_models(driver, tables)  ─ one "drop:<table>" task per table

Example::

    runner = SerialRunner()
    runner.add("users", lambda: driver.sync("users", user_props))
    runner.add("posts", lambda: driver.sync("posts", post_props))
    await runner.run()
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from ormkit.core.errors import TaskError
from ormkit.core.logging import get_logger
from ormkit.core.properties import Property

if TYPE_CHECKING:
    from ormkit.core.drivers.base import Driver

logger = get_logger(__name__)


@dataclass
class SerialTask:
    """A named unit of work in a serial run."""

    name: str
    factory: Callable[[], Awaitable[Any]]


class SerialRunner:
    """Runs queued coroutine factories strictly one after another.

    Factories (not coroutines) are queued so nothing starts before
    :meth:`run`, and tasks after a failure are never created at all.
    """

    def __init__(self) -> None:
        self._tasks: list[SerialTask] = []

    def add(self, name: str, factory: Callable[[], Awaitable[Any]]) -> SerialRunner:
        """Queue a task. Returns ``self`` for fluent chaining."""
        self._tasks.append(SerialTask(name=name, factory=factory))
        return self

    @property
    def task_count(self) -> int:
        return len(self._tasks)

    async def run(self) -> list[Any]:
        """Await every task in order.

        Returns:
            The tasks' results, in queue order.

        Raises:
            TaskError: naming the first task that failed; its exception is
                the cause.  Remaining tasks are not run.
        """
        results: list[Any] = []
        logger.debug("serial.start", tasks=len(self._tasks))
        for task in self._tasks:
            try:
                results.append(await task.factory())
            except Exception as e:
                logger.warning("serial.task_failed", task=task.name, error=str(e))
                raise TaskError(task.name, e) from e
        logger.debug("serial.complete", tasks=len(results))
        return results


async def sync_models(
    driver: Driver,
    models: Mapping[str, Mapping[str, Any]],
    id_property: str = "id",
) -> list[Any]:
    """Create every table in ``models`` (table -> property specs), in order."""
    runner = SerialRunner()
    for table, properties in models.items():
        parsed = {name: Property.parse(spec) for name, spec in properties.items()}
        runner.add(
            f"sync:{table}",
            lambda table=table, parsed=parsed: driver.sync(table, parsed, id_property),
        )
    return await runner.run()


async def drop_models(driver: Driver, tables: Iterable[str]) -> list[Any]:
    runner = SerialRunner()
    for table in tables:
        runner.add(f"drop:{table}", lambda table=table: driver.drop(table))
    return await runner.run()


__all__ = [
    "SerialTask",
    "SerialRunner",
    "sync_models",
    "drop_models",
]
