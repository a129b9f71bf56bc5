from __future__ import annotations
import time
import uuid
from typing import Dict, List, Optional

from fastapi import APIRouter, HTTPException
from pydantic import Field

from ..deps import require_credentials, require_passage
from ..evidence import resolve_sections
from ..gemini_client import GeminiClient
from ..generation import generate_questions
from ..schemas import CamelModel, QuestionSet, Section
from ..settings import settings


router = APIRouter(prefix="/questions", tags=["questions"])


class QuestionsRequest(CamelModel):
	passage_id: str = Field(min_length=1)
	paragraphs: List[str] = Field(min_length=2)
	count_min: Optional[int] = Field(default=None, ge=5, le=7)
	count_max: Optional[int] = Field(default=None, ge=5, le=7)
	avoid_prompts: List[str] = Field(default_factory=list)


class EvidenceSectionsRequest(CamelModel):
	evidence_paragraphs: List[int]
	sections: List[Section]


@router.post("", response_model=QuestionSet)
async def create_question_set(req: QuestionsRequest) -> QuestionSet:
	passage = require_passage(req.passage_id)
	count_min = req.count_min or settings.question_count_min
	count_max = req.count_max or settings.question_count_max
	if count_min > count_max:
		raise HTTPException(status_code=400, detail="countMin must be <= countMax")
	require_credentials()

	# Each request is a new set; the set id doubles as the variation nonce.
	set_id = uuid.uuid4().hex
	created_at = int(time.time() * 1000)
	client = GeminiClient(model=settings.model_for("questions"))
	try:
		questions = await generate_questions(
			client,
			req.paragraphs,
			count_min=count_min,
			count_max=count_max,
			avoid_prompts=[p for p in req.avoid_prompts if p.strip()],
			variety_token=set_id,
		)
	finally:
		await client.aclose()
	return QuestionSet(set_id=set_id, passage_id=passage.id, created_at=created_at, questions=questions)


@router.post("/evidence-sections")
async def evidence_sections(req: EvidenceSectionsRequest) -> Dict[str, List[str]]:
	return {"labels": resolve_sections(req.evidence_paragraphs, req.sections)}
