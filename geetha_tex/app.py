import logging
from datetime import datetime, timezone
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from geetha_tex.config import Config
from geetha_tex.database import SessionLocal, init_db
from geetha_tex.routes import batch_types, batches, dashboard, machines, reports, settings
from geetha_tex.state import AppStore, StoreError
from geetha_tex.storage import SqlKeyValueStore
from geetha_tex.utils import store_error_detail, store_error_status

logging.basicConfig(
    level=Config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Geetha Tex Production Dashboard")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register route modules
app.include_router(settings.router)
app.include_router(dashboard.router)
app.include_router(batches.router)
app.include_router(machines.router)
app.include_router(reports.router)
app.include_router(batch_types.router)


@app.exception_handler(StoreError)
async def handle_store_error(request: Request, exc: StoreError):
    return JSONResponse(status_code=store_error_status(exc), content={"detail": store_error_detail(exc)})


@app.on_event("startup")
def on_startup():
    init_db()
    app.state.store = AppStore(SqlKeyValueStore(SessionLocal))
    logger.info("State loaded (setup required: %s)", app.state.store.settings is None)


@app.get("/health")
def health_check():
    """Health check endpoint for uptime monitors"""
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("geetha_tex.app:app", host="0.0.0.0", port=8000, reload=True)
