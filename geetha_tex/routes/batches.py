from fastapi import APIRouter, Depends
from geetha_tex.derive import derive_batch
from geetha_tex.domain import Batch, BatchInput, Settings
from geetha_tex.exports import bill_filename, bill_pdf
from geetha_tex.state import AppStore
from geetha_tex.utils import download, get_store, settings_required

router = APIRouter(prefix="/api/batches", tags=["batches"])


@router.get("")
def list_batches(_: Settings = Depends(settings_required), store: AppStore = Depends(get_store)):
    return store.calculated_batches()


@router.post("", status_code=201)
def add_batch(
    data: BatchInput,
    _: Settings = Depends(settings_required),
    store: AppStore = Depends(get_store),
):
    return derive_batch(store.add_batch(data))


@router.get("/{batch_id}")
def get_batch(batch_id: str, store: AppStore = Depends(get_store)):
    return derive_batch(store.get_batch(batch_id))


@router.put("/{batch_id}")
def update_batch(
    batch_id: str,
    data: BatchInput,
    _: Settings = Depends(settings_required),
    store: AppStore = Depends(get_store),
):
    # Status is not editable; the store keeps the stored one. No colour keeps the current one.
    fields = data.model_dump()
    if fields["color"] is None:
        fields["color"] = store.get_batch(batch_id).color
    batch = Batch(**fields, id=batch_id)
    return derive_batch(store.update_batch(batch))


@router.delete("/{batch_id}")
def delete_batch(batch_id: str, store: AppStore = Depends(get_store)):
    store.delete_batch(batch_id)
    return {"message": "Deleted", "id": batch_id}


@router.get("/{batch_id}/bill")
def batch_bill(
    batch_id: str,
    settings: Settings = Depends(settings_required),
    store: AppStore = Depends(get_store),
):
    batch = derive_batch(store.get_batch(batch_id))
    return download(bill_pdf(batch, settings), bill_filename(batch), "application/pdf")
