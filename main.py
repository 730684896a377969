import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pymongo.errors import PyMongoError

from core.config import ENABLE_TEST_ENDPOINTS, LOG_LEVEL
from core.cors import setup_cors

from credits.router import router as credits_router, test_router
from transform.router import router as transform_router
from payments.router import router as payments_router
from payments.webhooks import router as webhooks_router
from health.router import router as health_router

from mongo import ensure_indexes

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    ensure_indexes()
    yield


app = FastAPI(title="Text Humanizer API", lifespan=lifespan)

setup_cors(app)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    first = exc.errors()[0] if exc.errors() else {}
    field = ".".join(str(p) for p in first.get("loc", ())[1:])
    message = f"Invalid value for '{field}'" if field else "Invalid request body"
    return JSONResponse(status_code=400, content={"detail": message})


@app.exception_handler(PyMongoError)
async def database_error_handler(request: Request, exc: PyMongoError):
    logger.error(f"[Mongo] {request.method} {request.url.path} failed: {exc}")
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


app.include_router(transform_router)
app.include_router(credits_router)
app.include_router(payments_router)
app.include_router(webhooks_router)
app.include_router(health_router)

if ENABLE_TEST_ENDPOINTS:
    app.include_router(test_router)
