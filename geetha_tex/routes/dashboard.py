from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, Query
from geetha_tex.derive import calendar_month, shift_month
from geetha_tex.domain import Settings
from geetha_tex.state import AppStore
from geetha_tex.utils import get_store, settings_required

router = APIRouter(prefix="/api/dashboard", tags=["dashboard"])


@router.get("")
def dashboard(settings: Settings = Depends(settings_required), store: AppStore = Depends(get_store)):
    """High-level overview: overall FTotal plus one card per batch, newest first."""
    calculated = store.calculated_batches()
    return {
        "companyName": settings.company_name,
        "overallFtotal": sum(b.ftotal for b in calculated),
        "batches": calculated,
    }


@router.get("/calendar")
def batch_calendar(
    year: Optional[int] = Query(None, ge=1, le=9999),
    month: Optional[int] = Query(None, ge=1, le=12),
    _: Settings = Depends(settings_required),
    store: AppStore = Depends(get_store),
):
    today = date.today()
    year = year or today.year
    month = month or today.month

    data = calendar_month(store.batches, year, month)
    prev_year, prev_month = shift_month(year, month, -1)
    next_year, next_month = shift_month(year, month, 1)
    data["previous"] = {"year": prev_year, "month": prev_month}
    data["next"] = {"year": next_year, "month": next_month}
    data["today"] = today.isoformat()
    return data
