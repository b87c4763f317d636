"""Backup endpoints: download an export file and merge an uploaded one."""

from __future__ import annotations

from datetime import date
from http import HTTPStatus

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from pydantic import BaseModel
from starlette.concurrency import run_in_threadpool

from ...api.dependencies import get_run_store, get_today
from ...domain.runlog import RunLogStore
from ...domain.runlog.store import export_filename
from ...infra.logging import get_logger
from ...infra.metrics import get_metrics_client

router = APIRouter(prefix="/api/backup", tags=["backup"])
logger = get_logger(__name__)
metrics = get_metrics_client()

MAX_IMPORT_BYTES = 5 * 1024 * 1024


class ImportResponse(BaseModel):
    message: str
    added: int
    replaced: int
    unchanged: int
    dropped: int
    total: int


@router.get("/export", summary="Download every entry as an indented JSON file")
def export_runs(
    store: RunLogStore = Depends(get_run_store),
    today: date = Depends(get_today),
) -> Response:
    metrics.increment("backup_export_http_total")
    filename = export_filename(today)
    return Response(
        content=store.export_payload(),
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post(
    "/import",
    response_model=ImportResponse,
    summary="Merge an exported JSON file into the log (imported copies win)",
)
async def import_runs(
    request: Request,
    store: RunLogStore = Depends(get_run_store),
) -> ImportResponse:
    body = await request.body()
    if len(body) > MAX_IMPORT_BYTES:
        raise _invalid_import(
            "Import file is too large.", details={"max_bytes": MAX_IMPORT_BYTES}
        )
    result = await run_in_threadpool(store.import_payload, body)
    if not result.ok or result.merge is None:
        raise _invalid_import(result.message)
    logger.info(
        "backup_import_applied",
        extra={
            "added": result.merge.added,
            "replaced": result.merge.replaced,
            "dropped": result.dropped,
        },
    )
    return ImportResponse(
        message=result.message,
        added=result.merge.added,
        replaced=result.merge.replaced,
        unchanged=result.merge.unchanged,
        dropped=result.dropped,
        total=result.merge.total,
    )


def _invalid_import(message: str, *, details: dict[str, object] | None = None) -> HTTPException:
    metrics.increment("backup_import_rejected_http_total")
    return HTTPException(
        status_code=HTTPStatus.UNPROCESSABLE_ENTITY,
        detail={
            "error_code": "RUNLOG-INVALID-IMPORT",
            "message": message,
            "details": details or {},
        },
    )
