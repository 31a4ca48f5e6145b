"""FastAPI application factory for the task-table REST API."""

from pathlib import Path
from typing import Optional

from fastapi import APIRouter, FastAPI

from task_table.api.routes import register_routes


def create_app(store, rules_file: Optional[Path] = None) -> FastAPI:
    """Build and return a FastAPI app wired to the given TaskStore."""
    app = FastAPI(title="task-table", docs_url="/api/docs", openapi_url="/api/openapi.json")

    api = APIRouter(prefix="/api")
    register_routes(api, store, rules_file)
    app.include_router(api)

    return app
