"""Tests for task runs and per-task log files."""

import asyncio
import json
import logging

import pytest

from browser_agent.errors import TransportError
from browser_agent.models.task import TaskStatus
from browser_agent.services.executor import TaskExecutor
from browser_agent.services.tasks import TaskService
from browser_agent.tools.registry import ToolsRegistry
from browser_agent.utils.logging import current_task_id, sanitize_task_name, task_log_sink
from fakes import FakeChat, text_reply


def service_for(chat, log_dir):
    return TaskService(TaskExecutor(chat, ToolsRegistry(), "system"), log_dir=log_dir)


class BlockingExecutor:
    """Executor that never finishes on its own."""

    def __init__(self):
        self.started = asyncio.Event()

    async def execute(self, task):
        self.started.set()
        await asyncio.Event().wait()


def read_log(path):
    return [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]


class TestTaskService:
    """Run bookkeeping."""

    @pytest.mark.asyncio
    async def test_completed_run(self, tmp_path):
        service = service_for(FakeChat([text_reply("Hello!")]), tmp_path)

        run = await service.run("say hello")

        assert run.status == TaskStatus.COMPLETED
        assert run.final_answer == "Hello!"
        assert run.iterations == 1
        assert run.finished_at is not None
        assert service.get_run(run.task_id) is run

    @pytest.mark.asyncio
    async def test_failed_run_recorded_and_raised(self, tmp_path):
        service = service_for(FakeChat([TransportError("down")]), tmp_path)

        with pytest.raises(TransportError):
            await service.run("say hello")

        run = next(iter(service.runs.values()))
        assert run.status == TaskStatus.FAILED
        assert run.error == "down"

    @pytest.mark.asyncio
    async def test_unique_task_ids(self, tmp_path):
        service = service_for(FakeChat(default=lambda messages: text_reply("ok")), tmp_path)
        runs = [await service.run("task") for _ in range(3)]
        assert len({run.task_id for run in runs}) == 3

    @pytest.mark.asyncio
    async def test_cancelled_run_is_terminal(self, tmp_path):
        """A run cancelled mid-flight is recorded as cancelled, not left running."""
        executor = BlockingExecutor()
        service = TaskService(executor, log_dir=tmp_path)

        pending = asyncio.create_task(service.run("t"))
        await executor.started.wait()
        pending.cancel()
        with pytest.raises(asyncio.CancelledError):
            await pending

        run = next(iter(service.runs.values()))
        assert run.status == TaskStatus.CANCELLED
        assert run.finished_at is not None

    @pytest.mark.asyncio
    async def test_oldest_finished_runs_evicted(self, tmp_path):
        service = TaskService(
            TaskExecutor(FakeChat(default=lambda messages: text_reply("ok")), ToolsRegistry(), "system"),
            log_dir=tmp_path,
            max_runs=2,
        )

        runs = [await service.run(f"task {i}") for i in range(3)]

        assert list(service.runs) == [runs[1].task_id, runs[2].task_id]
        assert service.get_run(runs[0].task_id) is None

    @pytest.mark.asyncio
    async def test_runs_in_progress_never_evicted(self, tmp_path):
        executor = BlockingExecutor()
        service = TaskService(executor, log_dir=tmp_path, max_runs=1)

        first = asyncio.create_task(service.run("first"))
        await executor.started.wait()
        second = asyncio.create_task(service.run("second"))
        await asyncio.sleep(0)

        assert len(service.runs) == 2
        first.cancel()
        second.cancel()
        await asyncio.gather(first, second, return_exceptions=True)

    @pytest.mark.asyncio
    async def test_run_writes_task_log(self, tmp_path):
        """Each run gets a JSON-lines log file tagged with its id."""
        service = service_for(FakeChat([text_reply("Hello!")]), tmp_path)

        run = await service.run("say hello")

        [log_file] = list(tmp_path.glob("*.log"))
        assert log_file.name.endswith("_say_hello.log")
        entries = read_log(log_file)
        assert entries
        assert all(entry["task_id"] == run.task_id for entry in entries)
        assert any("completed in 1 iterations" in entry["message"] for entry in entries)


class TestTaskLogSink:
    """Per-task log sink."""

    def test_sanitize_task_name(self):
        assert sanitize_task_name("Open https://example.com now!") == "Open_https___example_com_now_"
        assert sanitize_task_name("a" * 80) == "a" * 50
        assert sanitize_task_name("   ") == "task"

    def test_context_restored(self, tmp_path):
        with task_log_sink("t1", "task", tmp_path):
            assert current_task_id.get() == "t1"
        assert current_task_id.get() is None
        assert logging.getLogger("browser_agent").handlers == []

    @pytest.mark.asyncio
    async def test_concurrent_runs_are_separated(self, tmp_path):
        """Records from one task never land in another task's file."""
        logger = logging.getLogger("browser_agent.tests")
        logger.setLevel(logging.INFO)

        async def run(task_id, name):
            with task_log_sink(task_id, name, tmp_path / task_id) as path:
                for i in range(3):
                    logger.info(f"{task_id} step {i}")
                    await asyncio.sleep(0)
                return path

        first, second = await asyncio.gather(run("one", "first"), run("two", "second"))

        assert [entry["message"] for entry in read_log(first)] == ["one step 0", "one step 1", "one step 2"]
        assert {entry["task_id"] for entry in read_log(second)} == {"two"}
