"""
Report API Endpoints.

Tabular sheets as JSON, or as a CSV download.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import Response
from backend.app.core.guards import require_admin
from backend.app.core.timestamps import utc_now
from backend.app.db.document_store import DocumentStore, get_document_store
from backend.app.schemas.reports import ReportResponse, ReportSheet
from backend.app.services.reporting import ReportingService, render_csv

router = APIRouter(prefix="/reports", tags=["Reports"])


@router.get("/{sheet}", response_model=ReportResponse)
async def get_report(
    sheet: ReportSheet,
    admin: dict = Depends(require_admin),
    store: DocumentStore = Depends(get_document_store)
):
    """
    Build one report sheet (admin-only).
    """
    return await ReportingService(store).build(sheet)


@router.get("/{sheet}/download")
async def download_report(
    sheet: ReportSheet,
    admin: dict = Depends(require_admin),
    store: DocumentStore = Depends(get_document_store)
):
    """
    Download one report sheet as CSV (admin-only).
    """
    report = await ReportingService(store).build(sheet)
    filename = f"{sheet.value}-{utc_now().strftime('%Y-%m-%d')}.csv"

    return Response(
        content=render_csv(report),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'}
    )
