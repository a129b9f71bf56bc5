from __future__ import annotations
from fastapi import HTTPException, Request

from .cache import CachedProducer
from .errors import ExternalServiceError, ExternalServiceErrorKind
from .passages import get_passage
from .schemas import ChunkedPassage, Passage
from .settings import settings


def get_chunk_producer(request: Request) -> CachedProducer[ChunkedPassage]:
	return request.app.state.chunk_producer


def require_passage(passage_id: str) -> Passage:
	passage = get_passage(passage_id)
	if not passage:
		raise HTTPException(status_code=404, detail="Passage not found")
	return passage


def require_credentials() -> None:
	if not settings.gemini_api_key:
		raise ExternalServiceError(
			ExternalServiceErrorKind.MISSING_CREDENTIAL,
			"GEMINI_API_KEY missing. Add it to .env and restart the server.",
		)
