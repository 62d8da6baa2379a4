"""Main FastAPI application."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from browser_agent import __version__
from browser_agent.api.endpoints import router
from browser_agent.config import get_settings
from browser_agent.utils.logging import setup_logging

setup_logging(get_settings().log)

# Create FastAPI application
app = FastAPI(
    title="Browser Agent",
    description=(
        "Runs natural-language tasks with a language model that drives browser tools, "
        "either directly or through specialized sub-agents."
    ),
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    tags_metadata=[
        {
            "name": "Tasks",
            "description": "Submit tasks and inspect task runs.",
        },
        {
            "name": "Health",
            "description": "Service health monitoring and status checks.",
        },
    ],
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("browser_agent.main:app", host="0.0.0.0", port=8000, reload=True, log_level="info")
