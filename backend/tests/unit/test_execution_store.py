# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Unit tests for the run stores

Tests run persistence and history queries.
"""

import asyncio
import json
from pathlib import Path
from tempfile import TemporaryDirectory

import pytest

from agentflow.execution_store import FileRunStore, InMemoryRunStore, build_statistics
from agentflow.tools import ExecutionStatus, ToolExecution
from agentflow.workflow.models import ExecutionResult, ExecutionStep

EXEC_ID = "exec_20250101_120000_1a2b3c4d"


@pytest.fixture
def temp_executions_dir():
    """Create temporary directory for run records"""
    with TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def file_store(temp_executions_dir):
    return FileRunStore(base_dir=str(temp_executions_dir))


def sample_step(node_id="start"):
    return ExecutionStep(node_id=node_id, node_type="start", status=ExecutionStatus.COMPLETED, output={"n": 1})


def sample_result(success=True, execution_id=EXEC_ID):
    return ExecutionResult(
        success=success,
        output={"n": 1} if success else None,
        error=None if success else "boom",
        execution_time=40.0,
        steps=[sample_step()],
        execution_id=execution_id,
        completed_at="2025-01-01T12:00:01Z",
    )


class TestFileRunStore:
    """Test FileRunStore"""

    def test_creates_directory_if_not_exists(self, temp_executions_dir):
        """Should create the executions directory"""
        new_dir = temp_executions_dir / "runs"
        assert not new_dir.exists()

        FileRunStore(base_dir=str(new_dir))
        assert new_dir.exists()

    @pytest.mark.asyncio
    async def test_create_run_writes_dated_file(self, file_store, temp_executions_dir):
        """Should store the record under the date encoded in the id"""
        await file_store.create_run(EXEC_ID, {"workflowId": "weather", "input": {"city": "Paris"}})

        path = temp_executions_dir / "2025-01-01" / f"{EXEC_ID}.json"
        assert path.exists()
        record = json.loads(path.read_text())
        assert record["executionId"] == EXEC_ID
        assert record["status"] == "running"
        assert record["workflowId"] == "weather"
        assert record["steps"] == []

    @pytest.mark.asyncio
    async def test_append_and_seal(self, file_store):
        """Should accumulate steps and tool executions, then seal"""
        await file_store.create_run(EXEC_ID, {"workflowId": "weather"})
        await file_store.append_step(EXEC_ID, sample_step())
        await file_store.append_tool_execution(
            EXEC_ID, ToolExecution(id="t1", tool_id="get_weather", status=ExecutionStatus.COMPLETED)
        )

        record = await file_store.get(EXEC_ID)
        assert [s["nodeId"] for s in record["steps"]] == ["start"]
        assert record["toolExecutions"][0]["toolId"] == "get_weather"

        await file_store.seal_run(EXEC_ID, sample_result())

        record = await file_store.get(EXEC_ID)
        assert record["status"] == "completed"
        assert record["executionTime"] == 40.0
        assert record["completedAt"] == "2025-01-01T12:00:01Z"
        assert record["result"]["output"] == {"n": 1}
        assert len(record["toolExecutions"]) == 1
        assert file_store._locks == {}

    @pytest.mark.asyncio
    async def test_concurrent_appends_are_not_lost(self, file_store):
        """Should serialize writes to the same record"""
        await file_store.create_run(EXEC_ID, {})

        await asyncio.gather(*(file_store.append_step(EXEC_ID, sample_step(f"n{i}")) for i in range(10)))

        record = await file_store.get(EXEC_ID)
        assert sorted(s["nodeId"] for s in record["steps"]) == sorted(f"n{i}" for i in range(10))

    @pytest.mark.asyncio
    async def test_unknown_run(self, file_store):
        """Should return None for reads and raise for updates"""
        assert await file_store.get("exec_20250101_000000_ffffffff") is None

        with pytest.raises(KeyError):
            await file_store.append_step("exec_20250101_000000_ffffffff", sample_step())

    @pytest.mark.asyncio
    async def test_list_filters(self, file_store):
        """Should filter by workflow, status and date, newest first"""
        first = "exec_20250101_120000_aaaaaaaa"
        second = "exec_20250102_120000_bbbbbbbb"
        third = "exec_20250102_130000_cccccccc"
        await file_store.create_run(first, {"workflowId": "weather"})
        await file_store.create_run(second, {"workflowId": "weather"})
        await file_store.create_run(third, {"workflowId": "billing"})
        await file_store.seal_run(first, sample_result(execution_id=first))
        await file_store.seal_run(second, sample_result(success=False, execution_id=second))

        assert [r["executionId"] for r in await file_store.list()] == [third, second, first]
        assert [r["executionId"] for r in await file_store.list(workflow_id="weather")] == [second, first]
        assert [r["executionId"] for r in await file_store.list(status="failed")] == [second]
        assert [r["executionId"] for r in await file_store.list(date="2025-01-01")] == [first]
        assert [r["executionId"] for r in await file_store.list(limit=1, offset=1)] == [second]

    @pytest.mark.asyncio
    async def test_corrupt_file_is_skipped(self, file_store, temp_executions_dir):
        """Should log and skip unreadable records"""
        await file_store.create_run(EXEC_ID, {})
        (temp_executions_dir / "2025-01-01" / "exec_20250101_110000_deadbeef.json").write_text("{not json")

        records = await file_store.list()

        assert [r["executionId"] for r in records] == [EXEC_ID]

    @pytest.mark.asyncio
    async def test_statistics_period(self, file_store):
        """Should only count runs inside the period"""
        await file_store.create_run(EXEC_ID, {"workflowId": "weather"})
        await file_store.seal_run(EXEC_ID, sample_result())

        stats = await file_store.get_statistics(days=36500)
        assert stats["total_executions"] == 1
        assert stats["completed"] == 1
        assert stats["period_days"] == 36500

        stats = await file_store.get_statistics(days=1)
        assert stats["total_executions"] == 0


class TestInMemoryRunStore:
    """Test InMemoryRunStore"""

    @pytest.mark.asyncio
    async def test_lifecycle(self):
        store = InMemoryRunStore()
        await store.create_run(EXEC_ID, {"workflowId": "weather"})
        await store.append_step(EXEC_ID, sample_step())
        await store.seal_run(EXEC_ID, sample_result(success=False))

        record = await store.get(EXEC_ID)
        assert record["status"] == "failed"
        assert record["error"] == "boom"
        assert await store.list(status="failed") == [record]
        assert await store.list(status="completed") == []

    @pytest.mark.asyncio
    async def test_get_returns_a_copy(self):
        store = InMemoryRunStore()
        await store.create_run(EXEC_ID, {"input": {"city": "Paris"}})

        record = await store.get(EXEC_ID)
        record["input"]["city"] = "Oslo"

        assert (await store.get(EXEC_ID))["input"] == {"city": "Paris"}

    @pytest.mark.asyncio
    async def test_unknown_run(self):
        store = InMemoryRunStore()

        assert await store.get("missing") is None
        with pytest.raises(KeyError):
            await store.seal_run("missing", sample_result())


def test_build_statistics():
    stats = build_statistics([
        {"workflowId": "weather", "status": "completed", "executionTime": 10},
        {"workflowId": "weather", "status": "failed", "executionTime": 30},
        {"status": "running"},
    ])

    assert stats["total_executions"] == 3
    assert stats["completed"] == 1
    assert stats["failed"] == 1
    assert stats["running"] == 1
    assert stats["avg_execution_time_ms"] == 20
    assert stats["by_workflow"] == {
        "weather": {"total": 2, "completed": 1, "failed": 1},
        "inline": {"total": 1, "completed": 0, "failed": 0},
    }
    assert build_statistics([])["success_rate"] == 0
