# apps/api/main.py
from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

import config
from csrf import HEADER_NAME, issue_csrf
from errors import StoreUnavailable
from health import collect_health_status
from routes_bookmarks import router as bookmarks_router
from routes_feed import router as feed_router
from routes_videos import router as videos_router
from schemas import CsrfOut

logging.basicConfig(level=getattr(logging, config.settings.log_level.upper(), logging.INFO))

app = FastAPI(title="Tribune Video Feed API")

log = logging.getLogger("api.main")


app.add_middleware(
    CORSMiddleware,
    allow_origins=config.settings.cors_origins or ["http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(feed_router)
app.include_router(videos_router)
app.include_router(bookmarks_router)


@app.exception_handler(StoreUnavailable)
def _store_unavailable(request: Request, exc: StoreUnavailable) -> JSONResponse:
    log.error("store_unavailable path=%s error=%s", request.url.path, exc)
    return JSONResponse(status_code=503, content={"detail": "Store unavailable"})


@app.get("/csrf", response_model=CsrfOut)
def get_csrf(response: Response):
    token = issue_csrf(response)
    return CsrfOut(csrf=token, header=HEADER_NAME)


@app.get("/healthz")
def healthz():
    return collect_health_status()


# Run: uvicorn main:app --reload --port 8000
