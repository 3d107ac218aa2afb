# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Execution Store - Persistent storage for workflow run history

Runs are recorded as they happen: created when submitted, steps and tool
executions appended as they complete, sealed with the final result.

Safe under concurrent runs: every live record is guarded by its own asyncio
lock, released once the run is sealed.
"""

import asyncio
import copy
import json
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol

import aiofiles

from agentflow.core.config import get_config
from agentflow.core.logging import get_engine_logger, log_event
from agentflow.tools.models import ToolExecution
from agentflow.workflow.models import ExecutionResult, ExecutionStep

logger = get_engine_logger("store")

STATUS_RUNNING = "running"
STATUS_COMPLETED = "completed"
STATUS_FAILED = "failed"


class RunStore(Protocol):
    """Append/update interface the engine writes run history through"""

    async def create_run(self, execution_id: str, metadata: Dict[str, Any]) -> None: ...

    async def append_step(self, execution_id: str, step: ExecutionStep) -> None: ...

    async def append_tool_execution(self, execution_id: str, tool_execution: ToolExecution) -> None: ...

    async def seal_run(self, execution_id: str, result: ExecutionResult) -> None: ...


def _new_record(execution_id: str, metadata: Dict[str, Any]) -> Dict[str, Any]:
    record = {
        "executionId": execution_id,
        "status": STATUS_RUNNING,
        "steps": [],
        "toolExecutions": [],
        "result": None,
    }
    record.update(copy.deepcopy(metadata))
    return record


def _seal(record: Dict[str, Any], result: ExecutionResult) -> None:
    wire = result.to_wire()
    record["status"] = STATUS_COMPLETED if result.success else STATUS_FAILED
    record["steps"] = wire["steps"]
    record["completedAt"] = wire["completedAt"]
    record["executionTime"] = wire["executionTime"]
    record["error"] = wire["error"]
    record["result"] = wire


def _matches(record: Dict[str, Any], workflow_id: Optional[str], status: Optional[str]) -> bool:
    if workflow_id and record.get("workflowId") != workflow_id:
        return False
    if status and record.get("status") != status:
        return False
    return True


def build_statistics(records: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Counts, success rate and average duration over run records"""
    total = len(records)
    completed = sum(1 for r in records if r.get("status") == STATUS_COMPLETED)
    failed = sum(1 for r in records if r.get("status") == STATUS_FAILED)
    running = sum(1 for r in records if r.get("status") == STATUS_RUNNING)

    durations = [r["executionTime"] for r in records if r.get("executionTime") is not None]
    avg_duration = sum(durations) / len(durations) if durations else 0

    by_workflow: Dict[str, Dict[str, int]] = {}
    for record in records:
        workflow_id = record.get("workflowId") or "inline"
        counts = by_workflow.setdefault(workflow_id, {"total": 0, "completed": 0, "failed": 0})
        counts["total"] += 1
        if record.get("status") == STATUS_COMPLETED:
            counts["completed"] += 1
        elif record.get("status") == STATUS_FAILED:
            counts["failed"] += 1

    return {
        "total_executions": total,
        "completed": completed,
        "failed": failed,
        "running": running,
        "success_rate": (completed / total * 100) if total > 0 else 0,
        "avg_execution_time_ms": round(avg_duration, 2),
        "by_workflow": by_workflow,
    }


class InMemoryRunStore:
    """Run store kept in process memory (tests, ephemeral deployments)"""

    def __init__(self):
        self._records: Dict[str, Dict[str, Any]] = {}
        self._lock = asyncio.Lock()

    async def create_run(self, execution_id: str, metadata: Dict[str, Any]) -> None:
        async with self._lock:
            self._records[execution_id] = _new_record(execution_id, metadata)

    async def append_step(self, execution_id: str, step: ExecutionStep) -> None:
        async with self._lock:
            self._require(execution_id)["steps"].append(step.to_wire())

    async def append_tool_execution(self, execution_id: str, tool_execution: ToolExecution) -> None:
        async with self._lock:
            self._require(execution_id)["toolExecutions"].append(tool_execution.to_wire())

    async def seal_run(self, execution_id: str, result: ExecutionResult) -> None:
        async with self._lock:
            _seal(self._require(execution_id), result)

    async def get(self, execution_id: str) -> Optional[Dict[str, Any]]:
        record = self._records.get(execution_id)
        return copy.deepcopy(record) if record is not None else None

    async def list(
        self,
        workflow_id: Optional[str] = None,
        status: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[Dict[str, Any]]:
        records = [
            r for r in sorted(self._records.values(), key=lambda r: r["executionId"], reverse=True)
            if _matches(r, workflow_id, status)
        ]
        return copy.deepcopy(records[offset:offset + limit])

    async def get_statistics(self) -> Dict[str, Any]:
        return build_statistics(list(self._records.values()))

    def _require(self, execution_id: str) -> Dict[str, Any]:
        if execution_id not in self._records:
            raise KeyError(f"Unknown execution: {execution_id}")
        return self._records[execution_id]


class FileRunStore:
    """
    Store and query run history as JSON files.

    Storage structure:
        data/executions/
        └── {YYYY-MM-DD}/
            ├── exec_20250101_120000_1a2b3c4d.json
            └── exec_20250101_120512_5e6f7a8b.json

    Each file holds the run record:
        - executionId, workflowId, workflowName, agentId, userId
        - status (running/completed/failed)
        - startedAt / completedAt / executionTime
        - input
        - steps (appended as they complete, replaced by the sealed list)
        - toolExecutions
        - result (the sealed ExecutionResult)
    """

    def __init__(self, base_dir: Optional[str] = None):
        if base_dir is None:
            base_dir = get_config().executions_path

        self.base_dir = Path(base_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)

        # One lock per run file
        self._locks: Dict[str, asyncio.Lock] = {}

    def _get_lock(self, file_path: Path) -> asyncio.Lock:
        """Get or create lock for a specific file"""
        key = str(file_path)
        if key not in self._locks:
            self._locks[key] = asyncio.Lock()
        return self._locks[key]

    @staticmethod
    def _date_for(execution_id: str) -> Optional[str]:
        """YYYY-MM-DD from an id of the form exec_YYYYmmdd_HHMMSS_hash"""
        try:
            date_str = execution_id.split("_")[1]
            return datetime.strptime(date_str, "%Y%m%d").strftime("%Y-%m-%d")
        except (IndexError, ValueError):
            return None

    def _path_for(self, execution_id: str) -> Path:
        date = self._date_for(execution_id)
        if date is None:
            existing = self._search_all_dates(execution_id)
            if existing is not None:
                return existing
            date = datetime.now(timezone.utc).strftime("%Y-%m-%d")
        return self.base_dir / date / f"{execution_id}.json"

    def _search_all_dates(self, execution_id: str) -> Optional[Path]:
        """Search for a run file across all dates"""
        for date_dir in self.base_dir.glob("*"):
            if not date_dir.is_dir():
                continue
            execution_file = date_dir / f"{execution_id}.json"
            if execution_file.exists():
                return execution_file
        return None

    @staticmethod
    async def _read(path: Path) -> Dict[str, Any]:
        async with aiofiles.open(path, "r") as f:
            return json.loads(await f.read())

    @staticmethod
    async def _write(path: Path, record: Dict[str, Any]) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        async with aiofiles.open(path, "w") as f:
            await f.write(json.dumps(record, indent=2, default=str))

    async def _update(self, execution_id: str, mutate) -> None:
        path = self._path_for(execution_id)
        async with self._get_lock(path):
            if not path.exists():
                raise KeyError(f"Unknown execution: {execution_id}")
            record = await self._read(path)
            mutate(record)
            await self._write(path, record)

    async def create_run(self, execution_id: str, metadata: Dict[str, Any]) -> None:
        path = self._path_for(execution_id)
        async with self._get_lock(path):
            await self._write(path, _new_record(execution_id, metadata))

    async def append_step(self, execution_id: str, step: ExecutionStep) -> None:
        wire = step.to_wire()
        await self._update(execution_id, lambda record: record["steps"].append(wire))

    async def append_tool_execution(self, execution_id: str, tool_execution: ToolExecution) -> None:
        wire = tool_execution.to_wire()
        await self._update(execution_id, lambda record: record["toolExecutions"].append(wire))

    async def seal_run(self, execution_id: str, result: ExecutionResult) -> None:
        try:
            await self._update(execution_id, lambda record: _seal(record, result))
        finally:
            # Sealed records are never written again
            self._locks.pop(str(self._path_for(execution_id)), None)

    async def get(self, execution_id: str) -> Optional[Dict[str, Any]]:
        """
        Get run record by ID.

        Returns:
            Run record or None if not found
        """
        path = self._path_for(execution_id)
        if not path.exists():
            path = self._search_all_dates(execution_id)
            if path is None:
                return None
        # Only live runs hold a lock; sealed files are no longer written
        lock = self._locks.get(str(path))
        if lock is None:
            return await self._read(path)
        async with lock:
            return await self._read(path)

    async def list(
        self,
        workflow_id: Optional[str] = None,
        status: Optional[str] = None,
        date: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[Dict[str, Any]]:
        """
        List runs with optional filters, newest first.

        Args:
            workflow_id: Filter by stored workflow id
            status: Filter by status (running/completed/failed)
            date: Filter by date (YYYY-MM-DD)
            limit: Max results to return
            offset: Skip first N results
        """
        records: List[Dict[str, Any]] = []

        if date:
            date_dirs = [self.base_dir / date]
        else:
            date_dirs = sorted(self.base_dir.glob("*"), reverse=True)

        for date_dir in date_dirs:
            if not date_dir.is_dir():
                continue

            for execution_file in sorted(date_dir.glob("*.json"), reverse=True):
                try:
                    record = await self._read(execution_file)
                except (OSError, ValueError) as e:
                    log_event(
                        logger, "run_record_unreadable", level="WARNING",
                        path=str(execution_file), error=str(e),
                    )
                    continue

                if not _matches(record, workflow_id, status):
                    continue
                records.append(record)

                if len(records) >= limit + offset:
                    break

            if len(records) >= limit + offset:
                break

        return records[offset:offset + limit]

    async def get_statistics(self, days: int = 30) -> Dict[str, Any]:
        """Statistics over the last ``days`` days of runs"""
        cutoff = (datetime.now(timezone.utc) - timedelta(days=days)).strftime("%Y-%m-%d")
        records = []
        for date_dir in self.base_dir.glob("*"):
            if date_dir.is_dir() and date_dir.name >= cutoff:
                records.extend(await self.list(date=date_dir.name, limit=100000))

        stats = build_statistics(records)
        stats["period_days"] = days
        return stats
