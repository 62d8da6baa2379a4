"""Task runs: ids, per-task log files and run bookkeeping."""

import asyncio
from datetime import UTC, datetime
from pathlib import Path
from typing import Protocol

from cuid2 import cuid_wrapper

from browser_agent.errors import AgentError
from browser_agent.models.agents import ExecuteResult
from browser_agent.models.task import TaskRun, TaskStatus
from browser_agent.utils.logging import get_logger, task_log_sink

logger = get_logger(__name__)

cuid = cuid_wrapper()

DEFAULT_MAX_RUNS = 1000


class Executor(Protocol):
    async def execute(self, task: str) -> ExecuteResult: ...


class TaskService:
    """Runs tasks through an executor and keeps an in-memory record of each run."""

    def __init__(self, executor: Executor, log_dir: str | Path = "log", max_runs: int = DEFAULT_MAX_RUNS):
        """Initialize task service.

        Args:
            executor: Single-agent executor or orchestrator
            log_dir: Directory receiving one JSON-lines log file per run
            max_runs: Number of run records kept; the oldest finished runs are
                evicted first and runs in progress are never evicted
        """
        self.executor = executor
        self.log_dir = Path(log_dir)
        self.max_runs = max_runs
        self.runs: dict[str, TaskRun] = {}

    async def run(self, task: str) -> TaskRun:
        """Execute ``task`` and return its finished run record.

        Agent errors and cancellation are recorded on the run and re-raised.
        """
        run = TaskRun(task_id=cuid(), description=task)
        self.runs[run.task_id] = run
        self._evict_finished()

        with task_log_sink(run.task_id, task, self.log_dir) as log_path:
            logger.info(f"Task {run.task_id} started, logging to {log_path}")
            run.status = TaskStatus.RUNNING
            try:
                result = await self.executor.execute(task)
            except AgentError as e:
                run.status = TaskStatus.FAILED
                run.error = str(e)
                run.finished_at = datetime.now(UTC)
                logger.error(f"Task {run.task_id} failed: {e}")
                raise
            except asyncio.CancelledError:
                run.status = TaskStatus.CANCELLED
                run.error = "cancelled"
                run.finished_at = datetime.now(UTC)
                logger.warning(f"Task {run.task_id} cancelled")
                raise

            run.status = TaskStatus.COMPLETED
            run.final_answer = result.final_answer
            run.iterations = result.iterations
            run.finished_at = datetime.now(UTC)
            logger.info(f"Task {run.task_id} completed in {result.iterations} iterations")

        return run

    def get_run(self, task_id: str) -> TaskRun | None:
        return self.runs.get(task_id)

    def _evict_finished(self) -> None:
        excess = len(self.runs) - self.max_runs
        if excess <= 0:
            return
        # Dicts keep insertion order, so the oldest runs come first
        finished = [task_id for task_id, run in self.runs.items() if run.finished_at is not None][:excess]
        for task_id in finished:
            del self.runs[task_id]
        logger.debug(f"Evicted {len(finished)} finished task runs")
