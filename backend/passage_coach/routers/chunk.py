from __future__ import annotations
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import Field

from ..cache import CachedProducer, content_key
from ..chunking import chunk_by_paragraphs, chunks_from_plan, split_paragraphs
from ..deps import get_chunk_producer, require_credentials, require_passage
from ..gemini_client import GeminiClient
from ..generation import chunk_passage, generate_partition
from ..schemas import CamelModel, ChunkedPassage
from ..settings import settings


router = APIRouter(prefix="/chunk", tags=["chunking"])


class ChunkRequest(CamelModel):
	passage_id: str = Field(min_length=1)


class PlanRequest(CamelModel):
	passage_id: str = Field(min_length=1)
	min_paras: Optional[int] = Field(default=None, ge=1)
	max_paras: Optional[int] = Field(default=None, ge=1)


class FallbackRequest(CamelModel):
	passage_id: str = Field(min_length=1)
	paragraphs_per_chunk: int = Field(default=3, ge=1)


@router.post("")
async def chunk(req: ChunkRequest, producer: CachedProducer[ChunkedPassage] = Depends(get_chunk_producer)) -> Dict[str, Any]:
	passage = require_passage(req.passage_id)
	require_credentials()

	async def produce() -> ChunkedPassage:
		client = GeminiClient(model=settings.model_for("chunk"))
		try:
			return await chunk_passage(client, passage.text)
		finally:
			await client.aclose()

	result, cached = await producer.get_or_create(content_key(passage.id, passage.text), produce)
	return {**result.model_dump(by_alias=True), "cached": cached}


@router.post("/plan")
async def chunk_plan(req: PlanRequest) -> Dict[str, Any]:
	passage = require_passage(req.passage_id)
	min_paras = req.min_paras or settings.min_paras_per_chunk
	max_paras = req.max_paras or settings.max_paras_per_chunk
	if min_paras > max_paras:
		raise HTTPException(status_code=400, detail="minParas must be <= maxParas")
	require_credentials()
	paragraphs = split_paragraphs(passage.text)
	client = GeminiClient(model=settings.model_for("chunk"))
	try:
		sections = await generate_partition(client, paragraphs, min_paras, max_paras)
	finally:
		await client.aclose()
	return {
		"paragraphs": paragraphs,
		"plan": {"chunks": [s.model_dump(by_alias=True) for s in sections]},
		"chunks": [c.model_dump(by_alias=True) for c in chunks_from_plan(paragraphs, sections)],
	}


@router.post("/fallback")
async def chunk_fallback(req: FallbackRequest) -> Dict[str, Any]:
	passage = require_passage(req.passage_id)
	chunks = chunk_by_paragraphs(passage.text, req.paragraphs_per_chunk)
	return {"chunks": [c.model_dump(by_alias=True) for c in chunks]}
