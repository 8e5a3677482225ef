from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from umkm.api.v1.router import router as v1_router
from umkm.core.config import settings
from umkm.core.log_config import setup_logging
from umkm.core.telemetry import setup_telemetry

setup_logging()

app = FastAPI(title="UMKM Directory API", version="0.1.0")

setup_telemetry(app)
app.include_router(v1_router)

if settings.storage_backend == "local":
    # serves LocalObjectStore objects at settings.local_storage_base_url
    app.mount("/static/storage", StaticFiles(directory=settings.local_storage_dir, check_dir=False), name="storage")
