import asyncio
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from .cache import CachedProducer, TTLCache
from .cleanup import purge_stale_attempts
from .db import Base, engine, session_scope
from .errors import ExternalServiceError, ExternalServiceErrorKind, PartitionError, QuestionShapeError
from .settings import settings
from .routers import attempts, chunk, grade, passages, questions

logging.basicConfig(level=settings.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

app = FastAPI(title="Passage Coach API")
app.include_router(passages.router)
app.include_router(chunk.router)
app.include_router(questions.router)
app.include_router(grade.router)
app.include_router(attempts.router)

# Process-wide chunk cache, handed to routers through deps.get_chunk_producer
app.state.chunk_producer = CachedProducer(TTLCache(ttl_seconds=settings.chunk_cache_ttl_seconds))


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
	return JSONResponse(
		status_code=400,
		content={"error": "Invalid request body", "issues": jsonable_encoder(exc.errors())},
	)


@app.exception_handler(ExternalServiceError)
async def external_service_handler(request: Request, exc: ExternalServiceError):
	status = 500 if exc.kind == ExternalServiceErrorKind.MISSING_CREDENTIAL else 502
	logger.warning("%s %s failed: %s", request.method, request.url.path, exc.code)
	return JSONResponse(status_code=status, content={"error": exc.message, "code": exc.code})


@app.exception_handler(PartitionError)
@app.exception_handler(QuestionShapeError)
async def model_output_handler(request: Request, exc):
	# The completion service produced something we refuse to serve.
	logger.warning("%s %s rejected model output: %s", request.method, request.url.path, exc.code)
	return JSONResponse(status_code=502, content={"error": exc.message, "code": exc.code})


@app.get("/info")
def root():
	return {"status": "ok", "gemini_configured": bool(settings.gemini_api_key)}


def _purge_once() -> None:
	with session_scope() as db:
		purge_stale_attempts(db)


async def _cleanup_watcher():
	# Run daily; startup already did the first pass
	while True:
		await asyncio.sleep(24 * 60 * 60)
		try:
			_purge_once()
		except Exception:
			logger.exception("attempt cleanup failed")


@app.on_event("startup")
async def startup_event():
	Base.metadata.create_all(bind=engine)
	try:
		_purge_once()
	except Exception:
		logger.exception("attempt cleanup failed")
	app.state.cleanup_task = asyncio.create_task(_cleanup_watcher())


@app.on_event("shutdown")
async def shutdown_event():
	task = getattr(app.state, "cleanup_task", None)
	if task is None:
		return
	task.cancel()
	try:
		await task
	except asyncio.CancelledError:
		pass
	app.state.cleanup_task = None
