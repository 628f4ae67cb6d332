from fastapi import APIRouter, Depends, HTTPException, Path
from geetha_tex import ai_summary
from geetha_tex.ai_summary import SummaryBusy, build_prompt
from geetha_tex.derive import month_batches, shift_month
from geetha_tex.domain import Settings
from geetha_tex.exports import month_csv, month_csv_filename
from geetha_tex.state import AppStore
from geetha_tex.utils import download, get_store, settings_required

router = APIRouter(prefix="/api/reports/{year}/{month}", tags=["reports"])


@router.get("")
def monthly_report(
    year: int = Path(..., ge=1, le=9999),
    month: int = Path(..., ge=1, le=12),
    _: Settings = Depends(settings_required),
    store: AppStore = Depends(get_store),
):
    """Totals, top machine and status counts for batches started in the month."""
    prev_year, prev_month = shift_month(year, month, -1)
    next_year, next_month = shift_month(year, month, 1)
    return {
        "report": store.report(year, month),
        "batches": month_batches(store.calculated_batches(), year, month),
        "summary": store.summary_task(year, month).snapshot(),
        "previous": {"year": prev_year, "month": prev_month},
        "next": {"year": next_year, "month": next_month},
    }


@router.get("/export")
def export_month(
    year: int = Path(..., ge=1, le=9999),
    month: int = Path(..., ge=1, le=12),
    _: Settings = Depends(settings_required),
    store: AppStore = Depends(get_store),
):
    report = store.report(year, month)
    batches = month_batches(store.calculated_batches(), year, month)
    return download(month_csv(batches), month_csv_filename(report.month), "text/csv; charset=utf-8")


@router.post("/summary")
def generate_summary(
    year: int = Path(..., ge=1, le=9999),
    month: int = Path(..., ge=1, le=12),
    settings: Settings = Depends(settings_required),
    store: AppStore = Depends(get_store),
):
    """Ask the AI for a written analysis of the month. One request at a time."""
    report = store.report(year, month)
    prompt = build_prompt(
        settings.company_name, report, month_batches(store.calculated_batches(), year, month)
    )
    task = store.summary_task(year, month)
    try:
        ok = task.run(prompt, ai_summary.generate_summary)
    except SummaryBusy:
        raise HTTPException(409, "A summary is already being generated")
    if not ok:
        store.notify("Error generating AI summary.")
    return task.snapshot()


@router.get("/summary")
def get_summary(
    year: int = Path(..., ge=1, le=9999),
    month: int = Path(..., ge=1, le=12),
    store: AppStore = Depends(get_store),
):
    return store.summary_task(year, month).snapshot()


@router.delete("/summary")
def cancel_summary(
    year: int = Path(..., ge=1, le=9999),
    month: int = Path(..., ge=1, le=12),
    store: AppStore = Depends(get_store),
):
    task = store.summary_task(year, month)
    task.cancel()
    return task.snapshot()
