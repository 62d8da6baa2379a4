"""API endpoints for the browser agent service."""

from datetime import UTC, datetime

from fastapi import APIRouter, Depends, HTTPException

from browser_agent import __version__
from browser_agent.container import get_container
from browser_agent.errors import AgentError, ChatError
from browser_agent.models.task import HealthResponse, TaskRequest, TaskResponse, TaskRunResponse
from browser_agent.services.tasks import TaskService
from browser_agent.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter()


def get_task_service() -> TaskService:
    return get_container().task_service


@router.post("/tasks", response_model=TaskResponse, tags=["Tasks"])
async def run_task(request: TaskRequest, service: TaskService = Depends(get_task_service)) -> TaskResponse:
    """Run a natural-language task to completion and return the final answer."""
    logger.info(f"Received task: {request.task[:50]}...")
    try:
        run = await service.run(request.task)
    except ChatError as e:
        logger.error(f"Language model unavailable: {e}", exc_info=True)
        raise HTTPException(status_code=502, detail=f"Language model error: {e}") from e
    except AgentError as e:
        logger.error(f"Task failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Task failed: {e}") from e

    return TaskResponse(task_id=run.task_id, final_answer=run.final_answer or "", iterations=run.iterations)


@router.get("/tasks/{task_id}", response_model=TaskRunResponse, tags=["Tasks"])
async def get_task(task_id: str, service: TaskService = Depends(get_task_service)) -> TaskRunResponse:
    """Look up a finished or running task by id."""
    run = service.get_run(task_id)
    if run is None:
        raise HTTPException(status_code=404, detail=f"Unknown task: {task_id}")
    return TaskRunResponse.from_run(run)


@router.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check() -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(UTC),
        version=__version__,
    )
