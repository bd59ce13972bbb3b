"""Tests for ``ormkit.core.tasks`` - serial runner and model sync helpers."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from ormkit.core.errors import QueryError, TaskError
from ormkit.core.properties import Property, PropertyType
from ormkit.core.tasks import SerialRunner, drop_models, sync_models


def _driver() -> MagicMock:
    driver = MagicMock()
    driver.sync = AsyncMock()
    driver.drop = AsyncMock()
    return driver


class TestSerialRunner:
    @pytest.mark.asyncio
    async def test_runs_in_order(self):
        seen: list[str] = []

        async def step(name: str) -> str:
            seen.append(name)
            return name.upper()

        runner = SerialRunner()
        runner.add("a", lambda: step("a")).add("b", lambda: step("b"))

        assert runner.task_count == 2
        assert await runner.run() == ["A", "B"]
        assert seen == ["a", "b"]

    @pytest.mark.asyncio
    async def test_empty(self):
        assert await SerialRunner().run() == []

    @pytest.mark.asyncio
    async def test_stops_at_first_failure(self):
        third = AsyncMock()
        cause = QueryError("relation exists")

        runner = (
            SerialRunner()
            .add("first", AsyncMock(return_value=1))
            .add("second", AsyncMock(side_effect=cause))
            .add("third", third)
        )

        with pytest.raises(TaskError) as exc:
            await runner.run()

        assert exc.value.task == "second"
        assert exc.value.__cause__ is cause
        assert "second" in str(exc.value)
        third.assert_not_called()

    @pytest.mark.asyncio
    async def test_factory_not_called_before_run(self):
        factory = AsyncMock()
        runner = SerialRunner().add("lazy", factory)
        factory.assert_not_called()
        await runner.run()
        factory.assert_awaited_once()


class TestModelHelpers:
    @pytest.mark.asyncio
    async def test_sync_models(self):
        driver = _driver()
        await sync_models(driver, {"users": {"name": "string"}, "posts": {"title": str}})

        tables = [c.args[0] for c in driver.sync.await_args_list]
        assert tables == ["users", "posts"]
        table, props, id_property = driver.sync.await_args_list[0].args
        assert props == {"name": Property(PropertyType.STRING)}
        assert id_property == "id"

    @pytest.mark.asyncio
    async def test_sync_models_custom_id(self):
        driver = _driver()
        await sync_models(driver, {"users": {}}, id_property="uid")
        driver.sync.assert_awaited_once_with("users", {}, "uid")

    @pytest.mark.asyncio
    async def test_sync_models_failure_names_table(self):
        driver = _driver()
        driver.sync.side_effect = [None, QueryError("boom"), None]

        with pytest.raises(TaskError) as exc:
            await sync_models(driver, {"a": {}, "b": {}, "c": {}})

        assert exc.value.task == "sync:b"
        assert driver.sync.await_count == 2

    @pytest.mark.asyncio
    async def test_drop_models(self):
        driver = _driver()
        await drop_models(driver, ["posts", "users"])
        assert [c.args for c in driver.drop.await_args_list] == [("posts",), ("users",)]
