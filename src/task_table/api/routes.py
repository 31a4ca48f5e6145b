"""REST API routes for task-table."""

from pathlib import Path
from typing import Callable, List, Optional

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel

from task_table.api.handlers import (
    handle_cache_status,
    handle_groups,
    handle_rules_get,
    handle_rules_set,
    handle_scan,
    handle_task_create,
    handle_task_delete,
    handle_task_get,
    handle_task_list,
    handle_task_move,
    handle_task_move_to_end,
    handle_task_save,
    handle_task_tree,
)
from task_table.errors import DocumentIOError, NodeNotFoundError, StaleNodeError
from task_table.models.rule import RuleSpec


# ---------------------------------------------------------------------------
# Request body models
# ---------------------------------------------------------------------------


class MoveBody(BaseModel):
    source_id: str
    target_id: str
    position: str = "child"


class MoveToEndBody(BaseModel):
    source_id: str
    dest_path: str
    depth: int = 1


class DeleteBody(BaseModel):
    id: str


class SaveBody(BaseModel):
    id: str
    checked: Optional[bool] = None
    text: Optional[str] = None


class CreateBody(BaseModel):
    path: str
    text: str


class RulesBody(BaseModel):
    rules: List[RuleSpec]


def _run(fn: Callable[[], dict]) -> dict:
    """Call a mutation handler, mapping domain errors to HTTP errors."""
    try:
        return fn()
    except NodeNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except StaleNodeError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except DocumentIOError as e:
        raise HTTPException(status_code=500, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


# ---------------------------------------------------------------------------
# Route registration
# ---------------------------------------------------------------------------


def register_routes(app_router: APIRouter, store, rules_file: Optional[Path] = None) -> None:
    """Attach all REST routes that use the shared store."""

    # --- Views ---

    @app_router.get("/groups")
    def get_groups():
        return handle_groups(store)

    @app_router.post("/scan")
    def scan():
        return _run(lambda: handle_scan(store))

    @app_router.get("/tasks")
    def list_tasks(path: Optional[str] = Query(None)):
        return handle_task_list(store, path=path)

    @app_router.get("/tasks/tree")
    def get_tree(path: str = Query(...)):
        result = handle_task_tree(store, path=path)
        if "error" in result:
            raise HTTPException(status_code=404, detail=result["error"])
        return result

    @app_router.get("/tasks/get")
    def get_task(id: str = Query(...)):
        result = handle_task_get(store, node_id=id)
        if "error" in result:
            raise HTTPException(status_code=404, detail=result["error"])
        return result

    # --- Mutations ---

    @app_router.post("/tasks", status_code=201)
    def create_task(body: CreateBody):
        return _run(lambda: handle_task_create(store, path=body.path, text=body.text))

    @app_router.post("/tasks/move")
    def move_task(body: MoveBody):
        return _run(lambda: handle_task_move(
            store, source_id=body.source_id, target_id=body.target_id, position=body.position,
        ))

    @app_router.post("/tasks/move-to-end")
    def move_task_to_end(body: MoveToEndBody):
        return _run(lambda: handle_task_move_to_end(
            store, source_id=body.source_id, dest_path=body.dest_path, depth=body.depth,
        ))

    @app_router.post("/tasks/delete")
    def delete_task(body: DeleteBody):
        return _run(lambda: handle_task_delete(store, node_id=body.id))

    @app_router.post("/tasks/save")
    def save_task(body: SaveBody):
        return _run(lambda: handle_task_save(
            store, node_id=body.id, checked=body.checked, text=body.text,
        ))

    # --- Rules / status ---

    @app_router.get("/rules")
    def get_rules():
        return handle_rules_get(store)

    @app_router.put("/rules")
    def put_rules(body: RulesBody):
        return _run(lambda: handle_rules_set(
            store, rules=[r.model_dump() for r in body.rules], rules_file=rules_file,
        ))

    @app_router.get("/cache/status")
    def get_cache_status():
        return handle_cache_status(store)
