"""FastAPI backend for ScrimStats Pro.

Run from the project root:
    uvicorn api.main:app --reload --port 8000

Stat ingestion is authenticated with player API tokens; every other
endpoint expects the caller's Supabase access token.
"""

import sys
import os
import logging

# Make root project importable from api/
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

# Load .env from project root for local dev (no-op if file doesn't exist)
from dotenv import load_dotenv
load_dotenv(os.path.join(ROOT, ".env"))

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

import config
from api.cors import CORS_HEADERS
from api.routers import auth, game_stats, api_config, riot, tokens
from errors import APIError, MethodError
from stats_ingest import MSG_METHOD_NOT_ALLOWED

INGEST_PATH = "/api/game-stats"

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(title="ScrimStats Pro API", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ALLOW_ORIGINS,
    allow_credentials="*" not in config.CORS_ALLOW_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(APIError)
async def handle_api_error(request: Request, err: APIError):
    return JSONResponse(status_code=err.status_code, content=err.to_dict(), headers=CORS_HEADERS)


@app.exception_handler(StarletteHTTPException)
async def handle_http_exception(request: Request, err: StarletteHTTPException):
    # Verbs with no route of their own still get the ingestion endpoint's 405 body
    if err.status_code == 405 and request.url.path.rstrip("/") == INGEST_PATH:
        return await handle_api_error(request, MethodError(MSG_METHOD_NOT_ALLOWED))
    headers = dict(CORS_HEADERS)
    headers.update(err.headers or {})
    return JSONResponse(status_code=err.status_code, content={"error": err.detail}, headers=headers)


@app.exception_handler(RequestValidationError)
async def handle_validation_error(request: Request, err: RequestValidationError):
    return JSONResponse(
        status_code=422,
        content={"error": "Invalid request parameters.", "details": jsonable_encoder(err.errors())},
        headers=CORS_HEADERS,
    )


app.include_router(auth.router,       prefix="/api/auth",       tags=["auth"])
app.include_router(game_stats.router, prefix="/api/game-stats", tags=["game-stats"])
app.include_router(api_config.router, prefix="/api/api-config", tags=["api-config"])
app.include_router(riot.router,       prefix="/api/riot",       tags=["riot"])
app.include_router(tokens.router,     prefix="/api/tokens",     tags=["tokens"])


@app.get("/api/health")
def health():
    return {"status": "ok"}
