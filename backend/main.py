from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
import os
import time
import logging

import storage
from routes import audit, config, export, report_views, rosters, sessions, training_units

SERVER_VERSION = "3.5.2"

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Driving Test Report API", version=SERVER_VERSION)

app.add_middleware(
    CORSMiddleware,
    allow_origins=os.environ.get("ROSTER_CORS_ORIGINS", "http://localhost:5173").split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    t0 = time.perf_counter()
    logger.info("REQUEST  %s %s", request.method, request.url.path)
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - t0) * 1000
    logger.info("RESPONSE %s %s - status: %d, time: %.1fms", request.method, request.url.path, response.status_code, elapsed_ms)
    return response

app.include_router(config.router, prefix="/api")
app.include_router(rosters.router, prefix="/api")
app.include_router(sessions.router, prefix="/api")
app.include_router(audit.router, prefix="/api")
app.include_router(report_views.router, prefix="/api")
app.include_router(training_units.router, prefix="/api")
app.include_router(export.router, prefix="/api")


@app.get("/_ping")
def ping():
    return {"status": "ok", "message": "pong", "version": SERVER_VERSION}


@app.get("/api/server-status")
def server_status():
    return {
        "success": True,
        "version": SERVER_VERSION,
        "data_dir": os.path.abspath(storage.DATA_DIR),
        "storage_ready": os.path.isdir(storage.DATA_DIR),
    }
