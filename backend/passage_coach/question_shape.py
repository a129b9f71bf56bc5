from __future__ import annotations
import logging
from typing import List, Sequence, Union

from .errors import QuestionShapeError, QuestionShapeErrorKind as Kind
from .evidence import normalize_evidence
from .schemas import FlatQuestionCandidate, McqQuestion, ShortAnswerQuestion

logger = logging.getLogger(__name__)

MCQ_OPTION_COUNT = 4
RUBRIC_MIN_ITEMS = 2
RUBRIC_MAX_ITEMS = 5


def _fail(kind: Kind, message: str, ordinal: int) -> QuestionShapeError:
	logger.info("question %d rejected: %s", ordinal + 1, kind.value)
	return QuestionShapeError(kind, message, ordinal=ordinal)


def validate_question(
	candidate: FlatQuestionCandidate,
	para_count: int,
	ordinal: int,
) -> Union[McqQuestion, ShortAnswerQuestion]:
	"""Turn one flat candidate into a tagged question, or raise `QuestionShapeError`.

	Structural checks (types, enum values, difficulty range) have already been done
	by `FlatQuestionCandidate`; this enforces what depends on `format`: which
	nullable fields must be present, which must be null, and how many options or
	rubric items there are.
	"""
	evidence = normalize_evidence(candidate.evidence_paragraphs, para_count)
	if not evidence:
		raise _fail(Kind.NO_VALID_EVIDENCE, "evidenceParagraphs out of bounds", ordinal)

	common = {
		"id": f"q{ordinal + 1}",
		"type": candidate.type,
		"difficulty": candidate.difficulty,
		"prompt": candidate.prompt.strip(),
		"explanation": candidate.explanation.strip(),
		"evidence_paragraphs": evidence,
	}
	if not common["prompt"] or not common["explanation"]:
		raise _fail(Kind.MISSING_REQUIRED_FIELD, "prompt and explanation must not be blank", ordinal)

	if candidate.format == "mcq":
		if candidate.options is None:
			raise _fail(Kind.MISSING_REQUIRED_FIELD, "MCQ options must be present", ordinal)
		if candidate.correct_option_index is None:
			raise _fail(Kind.MISSING_REQUIRED_FIELD, "MCQ correctOptionIndex must be present", ordinal)
		if candidate.model_answer is not None:
			raise _fail(Kind.UNEXPECTED_FIELD, "MCQ modelAnswer must be null", ordinal)
		if candidate.rubric is not None:
			raise _fail(Kind.UNEXPECTED_FIELD, "MCQ rubric must be null", ordinal)

		options = [o.strip() for o in candidate.options]
		if len(options) != MCQ_OPTION_COUNT or not all(options):
			raise _fail(Kind.CARDINALITY_VIOLATION, "MCQ needs exactly 4 non-empty options", ordinal)
		if not 0 <= candidate.correct_option_index < MCQ_OPTION_COUNT:
			raise _fail(Kind.CARDINALITY_VIOLATION, "MCQ correctOptionIndex must be 0..3", ordinal)

		return McqQuestion(**common, options=options, correct_option_index=candidate.correct_option_index)

	if candidate.model_answer is None:
		raise _fail(Kind.MISSING_REQUIRED_FIELD, "short modelAnswer must be present", ordinal)
	if candidate.rubric is None:
		raise _fail(Kind.MISSING_REQUIRED_FIELD, "short rubric must be present", ordinal)
	if candidate.options is not None:
		raise _fail(Kind.UNEXPECTED_FIELD, "short options must be null", ordinal)
	if candidate.correct_option_index is not None:
		raise _fail(Kind.UNEXPECTED_FIELD, "short correctOptionIndex must be null", ordinal)

	model_answer = candidate.model_answer.strip()
	if not model_answer:
		raise _fail(Kind.CARDINALITY_VIOLATION, "short modelAnswer must not be empty", ordinal)
	rubric = [r.strip() for r in candidate.rubric]
	if len(rubric) < RUBRIC_MIN_ITEMS or not all(rubric):
		raise _fail(Kind.CARDINALITY_VIOLATION, "short rubric needs 2-5 non-empty items", ordinal)

	return ShortAnswerQuestion(**common, model_answer=model_answer, rubric=rubric[:RUBRIC_MAX_ITEMS])


def validate_questions(
	candidates: Sequence[FlatQuestionCandidate],
	para_count: int,
) -> List[Union[McqQuestion, ShortAnswerQuestion]]:
	# The first bad question rejects the whole batch.
	return [validate_question(c, para_count, i) for i, c in enumerate(candidates)]
