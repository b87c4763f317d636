"""Run entry endpoints: list/search, submit, edit, remove and clear."""

from __future__ import annotations

from datetime import date
from http import HTTPStatus
from typing import Annotated, Dict, List, Optional, Union

from fastapi import APIRouter, Depends, HTTPException, Path, Query, Response, status
from pydantic import BaseModel, Field

from ...api.dependencies import get_run_store, get_today
from ...domain.runlog import Entry, EntryRejection, RunLogStore
from ...domain.runlog.search import MAX_QUERY_LENGTH, normalize_query
from ...infra.logging import get_logger
from ...infra.metrics import get_metrics_client

router = APIRouter(prefix="/api/runs", tags=["runs"])
logger = get_logger(__name__)
metrics = get_metrics_client()

EntryId = Annotated[str, Path(..., min_length=1, max_length=128)]


class RunSubmission(BaseModel):
    quantity: Union[float, str, None] = Field(
        default=None, description="Distance or amount; must be positive."
    )
    date: Optional[str] = Field(default=None, description="Calendar date YYYY-MM-DD.")
    note: Optional[str] = Field(default=None, description="Free-form annotation.")


class RunItem(BaseModel):
    id: str
    date: str
    quantity: float
    note: str = ""


class RunListResponse(BaseModel):
    items: List[RunItem] = Field(default_factory=list)
    total: int
    query: Optional[str] = None
    search_applied: bool = False


class ClearResponse(BaseModel):
    removed: int


@router.get(
    "",
    response_model=RunListResponse,
    summary="Search entries by date, quantity or note",
)
def list_runs(
    q: Annotated[
        Optional[str],
        Query(
            max_length=MAX_QUERY_LENGTH,
            description="Case-insensitive substring matched against date, quantity and note.",
        ),
    ] = None,
    store: RunLogStore = Depends(get_run_store),
) -> RunListResponse:
    metrics.increment("runs_list_http_total")
    needle = normalize_query(q)
    items = [_serialize_entry(entry) for entry in store.search(needle)]
    return RunListResponse(
        items=items,
        total=len(items),
        query=needle or None,
        search_applied=bool(needle),
    )


@router.post(
    "",
    response_model=RunItem,
    status_code=status.HTTP_201_CREATED,
    summary="Log a new entry",
)
def submit_run(
    payload: RunSubmission,
    store: RunLogStore = Depends(get_run_store),
    today: date = Depends(get_today),
) -> RunItem:
    result = store.add_entry(payload.model_dump(), today=today)
    if result.rejection is not None:
        raise _invalid_entry(result.rejection)
    return _serialize_entry(result.entry)  # type: ignore[arg-type]


@router.get(
    "/{entry_id}",
    response_model=RunItem,
    summary="Retrieve a single entry",
)
def get_run(
    entry_id: EntryId,
    store: RunLogStore = Depends(get_run_store),
) -> RunItem:
    try:
        entry = store.get_entry(entry_id)
    except KeyError as exc:
        raise _not_found(entry_id) from exc
    return _serialize_entry(entry)


@router.put(
    "/{entry_id}",
    response_model=RunItem,
    summary="Edit an entry in place, keeping its id",
)
def update_run(
    entry_id: EntryId,
    payload: RunSubmission,
    store: RunLogStore = Depends(get_run_store),
    today: date = Depends(get_today),
) -> RunItem:
    try:
        store.get_entry(entry_id)
    except KeyError as exc:
        raise _not_found(entry_id) from exc
    result = store.update_entry(entry_id, payload.model_dump(), today=today)
    if result.rejection is not None:
        raise _invalid_entry(result.rejection)
    return _serialize_entry(result.entry)  # type: ignore[arg-type]


@router.delete(
    "/{entry_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove an entry (unknown ids are ignored)",
)
def delete_run(
    entry_id: EntryId,
    store: RunLogStore = Depends(get_run_store),
) -> Response:
    removed = store.remove_entry(entry_id)
    if not removed:
        metrics.increment("runs_delete_noop_total")
        logger.debug("run_delete_noop", extra={"entry_id": entry_id})
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete(
    "",
    response_model=ClearResponse,
    summary="Clear every entry (requires confirm=true)",
)
def clear_runs(
    confirm: bool = Query(False, description="Must be true; clearing cannot be undone."),
    store: RunLogStore = Depends(get_run_store),
) -> ClearResponse:
    if not confirm:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={
                "error_code": "RUNLOG-CONFIRMATION-REQUIRED",
                "message": "Clear all runs? This cannot be undone. Repeat with confirm=true.",
                "details": {"confirm": confirm},
            },
        )
    return ClearResponse(removed=store.clear())


def _serialize_entry(entry: Entry) -> RunItem:
    return RunItem(
        id=entry.entry_id,
        date=entry.date_text,
        quantity=entry.quantity,
        note=entry.note,
    )


def _invalid_entry(rejection: EntryRejection) -> HTTPException:
    metrics.increment("runs_rejected_http_total")
    details: Dict[str, object] = {"reason": rejection.reason.value}
    return HTTPException(
        status_code=HTTPStatus.UNPROCESSABLE_ENTITY,
        detail={
            "error_code": "RUNLOG-INVALID-ENTRY",
            "message": rejection.detail,
            "details": details,
        },
    )


def _not_found(entry_id: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail={
            "error_code": "RUNLOG-NOT-FOUND",
            "message": f"Entry '{entry_id}' not found",
            "details": {"entry_id": entry_id},
        },
    )
