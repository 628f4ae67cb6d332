from fastapi import APIRouter, Depends, HTTPException, Path
from geetha_tex.domain import Settings
from geetha_tex.exports import machine_csv, machine_csv_filename
from geetha_tex.state import AppStore
from geetha_tex.utils import download, get_store, settings_required

router = APIRouter(prefix="/api/machines", tags=["machines"])


@router.get("")
def machines_overview(_: Settings = Depends(settings_required), store: AppStore = Depends(get_store)):
    """One bucket per configured machine (empty ones included) with its latest batch."""
    return store.machine_buckets()


def _bucket(store: AppStore, machine_number: int):
    buckets = store.machine_buckets()
    if machine_number > len(buckets):
        raise HTTPException(404, "Machine not found")
    return buckets[machine_number - 1]


@router.get("/{machine_number}")
def machine_detail(
    machine_number: int = Path(..., ge=1),
    _: Settings = Depends(settings_required),
    store: AppStore = Depends(get_store),
):
    return _bucket(store, machine_number)


@router.get("/{machine_number}/export")
def export_machine(
    machine_number: int = Path(..., ge=1),
    _: Settings = Depends(settings_required),
    store: AppStore = Depends(get_store),
):
    bucket = _bucket(store, machine_number)
    return download(
        machine_csv(machine_number, bucket.batches),
        machine_csv_filename(machine_number),
        "text/csv; charset=utf-8",
    )
