from fastapi import APIRouter, Depends
from geetha_tex.domain import BatchType, BatchTypeInput
from geetha_tex.state import AppStore
from geetha_tex.utils import get_store

router = APIRouter(prefix="/api/batch-types", tags=["batch-types"])


@router.get("")
def list_batch_types(store: AppStore = Depends(get_store)):
    return store.batch_types


@router.post("", status_code=201)
def add_batch_type(data: BatchTypeInput, store: AppStore = Depends(get_store)):
    return store.add_batch_type(data)


@router.put("/{batch_type_id}")
def update_batch_type(batch_type_id: str, data: BatchTypeInput, store: AppStore = Depends(get_store)):
    """Live colour edits; silent, see /confirm for the notification."""
    return store.update_batch_type(BatchType(id=batch_type_id, **data.model_dump()))


@router.post("/{batch_type_id}/confirm")
def confirm_color(batch_type_id: str, store: AppStore = Depends(get_store)):
    return store.confirm_batch_type_color(batch_type_id)


@router.delete("/{batch_type_id}")
def delete_batch_type(batch_type_id: str, store: AppStore = Depends(get_store)):
    store.delete_batch_type(batch_type_id)
    return {"message": "Deleted", "id": batch_type_id}
