# backend/jupiter/main.py
import os
from typing import List

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .apps.inventory.router import router as inventory_router
from .apps.rejects.router import router as rejects_router
from .apps.system.router import router as system_router


def _allowed_origins() -> List[str]:
    """
    Parse CORS_ALLOWED_ORIGINS from env.

    Accepts comma-separated origins. If unset, defaults to local dev ports.
    """
    raw = os.getenv("CORS_ALLOWED_ORIGINS", "")
    if raw:
        origins = [origin.strip() for origin in raw.split(",") if origin.strip()]
        if origins:
            return origins
    return [
        "http://127.0.0.1:5173",
        "http://localhost:5173",
        "http://localhost:3000",
    ]


app = FastAPI(title="Jupiter WMS API", version="1.0.0")
cors_origins = _allowed_origins()
allow_credentials = "*" not in cors_origins

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.get("/", tags=["health"])
def read_root():
    return {"status": "Jupiter Backend Online", "version": app.version}

@app.get("/health", tags=["health"])
def health():
    return {"status": "ok"}

app.include_router(inventory_router)
app.include_router(rejects_router)
app.include_router(system_router)
