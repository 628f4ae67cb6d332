import json
from fastapi import APIRouter, Body, Depends, HTTPException
from geetha_tex.domain import Settings
from geetha_tex.exports import BACKUP_FILENAME
from geetha_tex.state import AppStore
from geetha_tex.utils import download, get_store, settings_required

router = APIRouter(prefix="/api", tags=["settings"])


class SetupRequest(Settings):
    seed_demo: bool = True


@router.get("/state")
def app_state(store: AppStore = Depends(get_store)):
    """What the shell needs on load: setup mode, settings, theme, notification."""
    return {
        "setupRequired": store.settings is None,
        "settings": store.settings,
        "theme": store.theme.value,
        "notification": store.notification,
        "demoSeeded": store.demo_seeded,
    }


@router.post("/setup", status_code=201)
def complete_setup(data: SetupRequest, store: AppStore = Depends(get_store)):
    if store.settings is not None:
        raise HTTPException(409, "Setup already completed")
    settings = Settings(company_name=data.company_name, number_of_machines=data.number_of_machines)
    store.complete_setup(settings, seed_demo=data.seed_demo)
    return app_state(store=store)


@router.get("/settings")
def get_settings(settings: Settings = Depends(settings_required)):
    return settings


@router.put("/settings")
def update_settings(
    data: Settings,
    _: Settings = Depends(settings_required),
    store: AppStore = Depends(get_store),
):
    store.update_settings(data)
    return store.settings


@router.post("/theme/toggle")
def toggle_theme(store: AppStore = Depends(get_store)):
    return {"theme": store.toggle_theme().value}


@router.get("/notification")
def get_notification(store: AppStore = Depends(get_store)):
    return {"notification": store.notification}


@router.get("/backup")
def backup(store: AppStore = Depends(get_store)):
    """Settings and batches as a downloadable JSON document."""
    document = store.backup()
    store.notify("Data backup downloaded!")
    return download(json.dumps(document, indent=2), BACKUP_FILENAME, "application/json")


@router.post("/restore")
def restore(payload: dict = Body(...), store: AppStore = Depends(get_store)):
    store.restore(payload)
    return {"settings": store.settings, "batches": len(store.batches)}


@router.post("/reset")
def reset(store: AppStore = Depends(get_store)):
    store.reset()
    return {"message": "All data cleared", "setupRequired": True}
