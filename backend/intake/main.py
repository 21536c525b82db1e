import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from intake.config import settings
from intake.database import init_db
from intake.dependencies import create_content_store
from intake.routers import objects, submissions
from intake.services.exceptions import IntakeError, SubmissionNotFound
from intake.services.signed_urls import SignedUrlIssuer
from intake.utils.filesystem import ensure_data_dirs

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("intake")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: data dirs, schema, and the store handles shared by requests
    ensure_data_dirs(settings.data_path)
    init_db(settings.db_path)
    store = create_content_store()
    app.state.content_store = store
    app.state.url_issuer = SignedUrlIssuer(store, settings.signed_url_expires_sec)
    logger.info("Submission intake ready, data at %s", settings.data_path)
    yield
    logger.info("Submission intake shutting down")


app = FastAPI(
    title="Submission Intake",
    description="Batch intake of resumption and schedule document packages",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(SubmissionNotFound)
async def submission_not_found_handler(request: Request, exc: SubmissionNotFound):
    return JSONResponse(status_code=404, content={"ok": False, "error": str(exc)})


@app.exception_handler(IntakeError)
async def intake_error_handler(request: Request, exc: IntakeError):
    logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=500, content={"ok": False, "error": str(exc)})


app.include_router(submissions.router, prefix=settings.api_prefix)
app.include_router(submissions.upload_router, prefix=settings.api_prefix)
app.include_router(submissions.schedules_router, prefix=settings.api_prefix)
app.include_router(objects.router, prefix=settings.api_prefix)


@app.get("/health")
async def health():
    return {"status": "ok", "version": "0.1.0"}
