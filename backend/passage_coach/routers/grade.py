from __future__ import annotations
import logging
from typing import Dict, List, Optional

from fastapi import APIRouter
from pydantic import Field

from ..deps import require_credentials
from ..gemini_client import GeminiClient
from ..generation import score_short_answers
from ..grading import AnyAnswer, assemble_report, build_short_answer_items
from ..schemas import Answer, CamelModel, GradeReport, Question, ShortAnswerScore
from ..settings import settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/grade-questions", tags=["grading"])


class GradeRequest(CamelModel):
	set_id: Optional[str] = None
	passage_id: str = Field(min_length=1)
	paragraphs: List[str] = Field(min_length=2)
	questions: List[Question] = Field(min_length=1)
	answers: List[Answer] = Field(default_factory=list)


@router.post("", response_model=GradeReport)
async def grade_questions(req: GradeRequest) -> GradeReport:
	answers: Dict[str, AnyAnswer] = {a.question_id: a for a in req.answers}
	items = build_short_answer_items(req.questions, answers, req.paragraphs)

	scores: Dict[str, ShortAnswerScore] = {}
	if items:
		# MCQ-only sets are graded locally and need no credentials.
		require_credentials()
		client = GeminiClient(model=settings.model_for("grade"))
		try:
			scores = await score_short_answers(client, items)
		finally:
			await client.aclose()

	report = assemble_report(req.questions, answers, scores, set_id=req.set_id or "stateless")
	logger.info(
		"graded set %s: %d/%d (%d short, %d scored)",
		report.set_id, report.summary.correct, report.summary.total, len(items), len(scores),
	)
	return report
