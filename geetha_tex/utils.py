"""Helpers shared by the route modules."""

from fastapi import Depends, HTTPException, Request
from fastapi.responses import Response
from geetha_tex.domain import Settings
from geetha_tex.state import AppStore, NotFoundError, SetupRequired, StoreError, ValidationError


def get_store(request: Request) -> AppStore:
    """The app's single state container, created at startup."""
    return request.app.state.store


def settings_required(store: AppStore = Depends(get_store)) -> Settings:
    if store.settings is None:
        raise HTTPException(409, "Setup required")
    return store.settings


def store_error_status(exc: StoreError) -> int:
    if isinstance(exc, ValidationError):
        return 400
    if isinstance(exc, NotFoundError):
        return 404
    if isinstance(exc, SetupRequired):
        return 409
    return 400


def store_error_detail(exc: StoreError):
    if isinstance(exc, ValidationError):
        return {"field": exc.field, "message": exc.message}
    return str(exc)


def download(content, filename: str, media_type: str) -> Response:
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
