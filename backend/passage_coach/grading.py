from __future__ import annotations
import math
from typing import List, Mapping, Optional, Sequence, Union

from .evidence import evidence_text, normalize_evidence
from .schemas import (
	GradeItem,
	GradeReport,
	GradeSummary,
	McqAnswer,
	McqQuestion,
	ShortAnswer,
	ShortAnswerItem,
	ShortAnswerQuestion,
	ShortAnswerScore,
)

AnyQuestion = Union[McqQuestion, ShortAnswerQuestion]
AnyAnswer = Union[McqAnswer, ShortAnswer]

NOT_GRADED_FEEDBACK = "Not graded yet."
NO_ANSWER_FEEDBACK = "No answer selected."


def _percent(correct: int, total: int) -> int:
	if not total:
		return 0
	# half rounds up
	return int(math.floor(correct / total * 100 + 0.5))


def _grade_mcq(q: McqQuestion, answer: Optional[AnyAnswer]) -> GradeItem:
	selected = answer.answer_index if isinstance(answer, McqAnswer) else None
	is_correct = selected is not None and selected == q.correct_option_index
	if selected is None:
		feedback = NO_ANSWER_FEEDBACK
	else:
		feedback = "Correct." if is_correct else "Incorrect."
	correct_text = q.options[q.correct_option_index]
	return GradeItem(
		question_id=q.id,
		is_correct=is_correct,
		score01=1.0 if is_correct else 0.0,
		feedback=feedback,
		correct_answer=correct_text,
		model_answer=correct_text,
		evidence_paragraphs=q.evidence_paragraphs,
		explanation=q.explanation,
	)


def _grade_short(q: ShortAnswerQuestion, score: Optional[ShortAnswerScore]) -> GradeItem:
	item = GradeItem(
		question_id=q.id,
		is_correct=False,
		score01=0.0,
		feedback=NOT_GRADED_FEEDBACK,
		correct_answer=q.model_answer,
		model_answer=q.model_answer,
		evidence_paragraphs=q.evidence_paragraphs,
		explanation=q.explanation,
	)
	if score is None:
		# The scorer skipped this id: keep the placeholder, don't fail the report.
		return item
	return item.model_copy(update={
		"is_correct": score.is_correct,
		"score01": score.score01,
		"feedback": score.feedback,
	})


def assemble_report(
	questions: Sequence[AnyQuestion],
	answers: Mapping[str, AnyAnswer],
	short_answer_scores: Mapping[str, ShortAnswerScore],
	*,
	set_id: str = "stateless",
) -> GradeReport:
	"""Merge exact-match MCQ grading with externally scored short answers.

	One result per question, in question order. Pure: the same inputs always
	give the same report.
	"""
	results: List[GradeItem] = []
	for q in questions:
		if isinstance(q, McqQuestion):
			results.append(_grade_mcq(q, answers.get(q.id)))
		else:
			results.append(_grade_short(q, short_answer_scores.get(q.id)))

	correct = sum(1 for r in results if r.is_correct)
	total = len(questions)
	return GradeReport(
		set_id=set_id,
		summary=GradeSummary(correct=correct, total=total, percent=_percent(correct, total)),
		results=results,
	)


def build_short_answer_items(
	questions: Sequence[AnyQuestion],
	answers: Mapping[str, AnyAnswer],
	paragraphs: Sequence[str],
) -> List[ShortAnswerItem]:
	items: List[ShortAnswerItem] = []
	for q in questions:
		if not isinstance(q, ShortAnswerQuestion):
			continue
		a = answers.get(q.id)
		user_answer = a.answer_text.strip() if isinstance(a, ShortAnswer) else ""
		ev = normalize_evidence(q.evidence_paragraphs, len(paragraphs))
		items.append(ShortAnswerItem(
			question_id=q.id,
			prompt=q.prompt,
			user_answer=user_answer,
			model_answer=q.model_answer,
			rubric=q.rubric,
			evidence_paragraphs=ev,
			evidence_text=evidence_text(paragraphs, ev),
		))
	return items
