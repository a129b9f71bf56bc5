from __future__ import annotations
import json
import logging
import re
import uuid
from typing import Any, Dict, List, Optional, Sequence, Type, TypeVar, Union

from pydantic import BaseModel, ValidationError

from .errors import ExternalServiceError, ExternalServiceErrorKind
from .gemini_client import GeminiClient
from .partition import validate_partition
from .question_shape import validate_questions
from .schemas import (
	ChunkedPassage,
	ChunkedPassageCandidate,
	McqQuestion,
	ParagraphWithIdea,
	Section,
	SectionPlanCandidate,
	ShortAnswerQuestion,
	QuestionSetCandidate,
	ShortAnswerItem,
	ShortAnswerScore,
	ShortAnswerScoreSet,
	ThematicChunkPlan,
)

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

MAX_AVOID_PROMPTS = 12


def _no_output(detail: str) -> ExternalServiceError:
	return ExternalServiceError(ExternalServiceErrorKind.NO_PARSED_OUTPUT, detail)


def _extract_json_object(text: str) -> Dict[str, Any]:
	try:
		return json.loads(text)
	except Exception:
		pass
	code_block = re.search(r"```json\s*([\s\S]*?)\s*```", text)
	if code_block:
		candidate = code_block.group(1)
		try:
			return json.loads(candidate)
		except Exception:
			pass
	first = text.find("{")
	last = text.rfind("}")
	if first != -1 and last != -1 and last > first:
		candidate = text[first : last + 1]
		try:
			return json.loads(candidate)
		except Exception:
			pass
	raise _no_output("Model did not return valid JSON.")


def parse_structured(raw: str, model: Type[M]) -> M:
	"""Lenient JSON extraction followed by structural validation against `model`."""
	data = _extract_json_object(raw)
	if not isinstance(data, dict):
		raise _no_output(f"Expected a JSON object for {model.__name__}.")
	try:
		return model.model_validate(data)
	except ValidationError as err:
		logger.info("%s failed structural validation (%d issues)", model.__name__, err.error_count())
		raise _no_output(f"Model output did not match the {model.__name__} schema.") from err


def _numbered(paragraphs: Sequence[str]) -> str:
	return "\n\n".join(f"[{i}] {p}" for i, p in enumerate(paragraphs))


def _sections_from(candidate: SectionPlanCandidate) -> List[Section]:
	return [
		Section(id=c.id, label=c.label, start_para=c.start_para, end_para=c.end_para)
		for c in candidate.chunks
	]


# ---- Chunking ----

_CHUNK_SYSTEM = "\n".join([
	"You are a reading tutor.",
	"Split the passage into clear paragraphs and label the main idea of each paragraph.",
	"Also group consecutive paragraphs into 2-4 thematic sections.",
	"Return ONLY JSON matching this shape:",
	'{"paragraphs": [{"text": string, "idea": string}], '
	'"sections": {"chunks": [{"id": string, "label": string, "startPara": int, "endPara": int}]}}',
	"",
	"Rules:",
	"- Preserve meaning and order.",
	"- Each paragraph's idea should be short (3-6 words).",
	"- Section labels should be short (3-6 words).",
	"- Sections must cover all paragraphs exactly once and be contiguous.",
])


async def chunk_passage(client: GeminiClient, passage_text: str, *, temperature: float = 0.5) -> ChunkedPassage:
	raw = await client.generate(passage_text, system=_CHUNK_SYSTEM, temperature=temperature, json_output=True)
	parsed = parse_structured(raw, ChunkedPassageCandidate)
	para_count = len(parsed.paragraphs)
	sections = validate_partition(_sections_from(parsed.sections), para_count)
	return ChunkedPassage(
		paragraphs=[ParagraphWithIdea(text=p.text.strip(), idea=p.idea.strip()) for p in parsed.paragraphs],
		sections=ThematicChunkPlan(chunks=sections),
	)


def _partition_prompt(paragraphs: Sequence[str], min_size: int, max_size: int) -> str:
	return (
		"Group the numbered paragraphs below into thematic sections.\n"
		f"Each section covers {min_size}-{max_size} consecutive paragraphs. Sections must cover every paragraph "
		f"from 0 to {len(paragraphs) - 1} exactly once, in order, with no gaps or overlaps.\n"
		"Give each section a short label (3-6 words).\n"
		'Return ONLY JSON: {"chunks": [{"id": string, "label": string, "startPara": int, "endPara": int}]}\n\n'
		f"Paragraphs:\n{_numbered(paragraphs)}"
	)


async def generate_partition(
	client: GeminiClient,
	paragraphs: Sequence[str],
	min_size: int,
	max_size: int,
	*,
	temperature: float = 0.5,
) -> List[Section]:
	raw = await client.generate(_partition_prompt(paragraphs, min_size, max_size), temperature=temperature, json_output=True)
	parsed = parse_structured(raw, SectionPlanCandidate)
	return validate_partition(_sections_from(parsed), len(paragraphs), min_size=min_size, max_size=max_size)


# ---- Questions ----

def _question_system(count_min: int, count_max: int, variety_token: str) -> str:
	return "\n".join([
		"You create reading comprehension question sets.",
		"Return ONLY JSON matching the schema.",
		"",
		f"Create {count_min}-{count_max} questions mixing multiple-choice and short-answer.",
		"",
		"CRITICAL OUTPUT RULES:",
		'- Return {"questions": [...]}. Every question MUST include ALL fields: format, type, difficulty, prompt, '
		"explanation, evidenceParagraphs, options, correctOptionIndex, modelAnswer, rubric.",
		"- type is one of: inference, main_idea, detail_with_evidence, vocab_in_context, sequence, why/how.",
		"- difficulty is 1, 2 or 3.",
		"- Use null for fields that don't apply:",
		"  - If format='mcq': options array length 4; correctOptionIndex 0..3; modelAnswer=null; rubric=null.",
		"  - If format='short': modelAnswer string; rubric 2-5 items; options=null; correctOptionIndex=null.",
		"- evidenceParagraphs must be valid 0-based indices into the provided paragraphs.",
		"- explanation should justify the answer using the evidence.",
		"- Include BOTH formats (aim for at least 2 mcq and 2 short).",
		"",
		"ANTI-REPEAT:",
		"- Do NOT repeat or closely paraphrase any prompts listed under 'Previous prompts to avoid'.",
		f"Variation nonce: {variety_token}",
	])


async def generate_questions(
	client: GeminiClient,
	paragraphs: Sequence[str],
	*,
	count_min: int = 5,
	count_max: int = 7,
	avoid_prompts: Optional[Sequence[str]] = None,
	variety_token: Optional[str] = None,
	temperature: float = 0.9,
) -> List[Union[McqQuestion, ShortAnswerQuestion]]:
	"""Ask the model for a question set and validate every question.

	`avoid_prompts` only steers the model; nothing checks the result against it.
	"""
	avoid = list(avoid_prompts or [])[:MAX_AVOID_PROMPTS]
	token = variety_token or uuid.uuid4().hex
	user = "\n".join([
		"Passage paragraphs:",
		_numbered(paragraphs),
		"",
		"Previous prompts to avoid:",
		"\n".join(f"- {p}" for p in avoid) if avoid else "(none)",
	])
	raw = await client.generate(
		user,
		system=_question_system(count_min, count_max, token),
		temperature=temperature,
		json_output=True,
	)
	parsed = parse_structured(raw, QuestionSetCandidate)
	count = len(parsed.questions)
	if count < count_min or count > count_max:
		raise _no_output(f"Expected {count_min}-{count_max} questions, got {count}.")
	return validate_questions(parsed.questions, len(paragraphs))


# ---- Short-answer scoring ----

_GRADE_SYSTEM = "\n".join([
	"You are grading short-answer reading comprehension responses.",
	"You MUST base grading ONLY on the provided evidence text.",
	"Use the rubric and model answer as the marking guide.",
	"If the student's answer is not supported by the evidence text, mark incorrect.",
	'Return ONLY JSON: {"results": [{"questionId": string, "isCorrect": bool, "score01": number 0-1, "feedback": string}]}',
	"Feedback should be concise and actionable.",
])


async def score_short_answers(client: GeminiClient, items: Sequence[ShortAnswerItem]) -> Dict[str, ShortAnswerScore]:
	"""Score short answers against their evidence; returns scores keyed by question id.

	Ids the scorer leaves out are simply missing from the result.
	"""
	if not items:
		return {}
	payload = json.dumps({"items": [i.model_dump(by_alias=True) for i in items]})
	# Grading is a lookup against given evidence; no thinking tokens needed
	raw = await client.generate(payload, system=_GRADE_SYSTEM, json_output=True, thinking_budget=0)
	parsed = parse_structured(raw, ShortAnswerScoreSet)
	wanted = {i.question_id for i in items}
	scores: Dict[str, ShortAnswerScore] = {}
	for r in parsed.results:
		if r.question_id in wanted and r.question_id not in scores:
			scores[r.question_id] = r
	missing = wanted - scores.keys()
	if missing:
		logger.warning("scorer returned no result for %d question(s): %s", len(missing), sorted(missing))
	return scores
