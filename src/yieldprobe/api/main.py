from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from yieldprobe.api.errors import error_response
from yieldprobe.api.routes_diagnostics import router as diagnostics_router
from yieldprobe.config.settings import settings
from yieldprobe.logging_config import configure_logging


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    yield


app = FastAPI(title="yieldprobe", lifespan=lifespan)


# Registered before CORS so the error envelope still gets CORS and
# cache headers on its way out (last added middleware runs outermost).
@app.middleware("http")
async def error_envelope_middleware(request: Request, call_next):
    try:
        return await call_next(request)
    except Exception as e:
        return error_response(e)


cors_origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials="*" not in cors_origins,
    allow_methods=["GET", "OPTIONS"],
    allow_headers=["*"],
)

app.include_router(diagnostics_router, prefix="/api")


@app.middleware("http")
async def no_cache_middleware(request: Request, call_next):
    response = await call_next(request)
    response.headers["Cache-Control"] = "no-cache"
    return response


@app.get("/api/health")
def health() -> dict:
    return {"status": "ok"}


@app.get("/health")
def health_root() -> dict:
    return health()
