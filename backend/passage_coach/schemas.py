from __future__ import annotations
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


QuestionType = Literal[
	"inference",
	"main_idea",
	"detail_with_evidence",
	"vocab_in_context",
	"sequence",
	"why/how",
]

QuestionFormat = Literal["mcq", "short"]


class CamelModel(BaseModel):
	# snake_case in Python, camelCase on the wire
	model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, protected_namespaces=())


class FrozenCamelModel(CamelModel):
	model_config = ConfigDict(frozen=True)


class Passage(CamelModel):
	id: str
	title: str
	text: str


# ---- Sections / chunk plans ----

class Section(FrozenCamelModel):
	id: str
	label: str
	start_para: int
	end_para: int


class ThematicChunkPlan(FrozenCamelModel):
	chunks: List[Section]


class ParagraphWithIdea(FrozenCamelModel):
	text: str
	idea: str


class ChunkedPassage(FrozenCamelModel):
	paragraphs: List[ParagraphWithIdea]
	sections: ThematicChunkPlan


class Chunk(FrozenCamelModel):
	"""A section laid back onto the joined passage text (character offsets)."""
	id: str
	label: str
	start: int
	end: int
	text: str


# Structural shapes of what the completion service sends back. These only check
# types and lengths; the partition and question-shape validators do the rest.

class SectionCandidate(CamelModel):
	model_config = ConfigDict(extra="forbid")
	id: str = Field(min_length=1)
	label: str = Field(min_length=3, max_length=80)
	start_para: int = Field(ge=0)
	end_para: int = Field(ge=0)


class SectionPlanCandidate(CamelModel):
	model_config = ConfigDict(extra="forbid")
	chunks: List[SectionCandidate] = Field(min_length=1)


class ParagraphCandidate(CamelModel):
	model_config = ConfigDict(extra="forbid")
	text: str = Field(min_length=1)
	idea: str = Field(min_length=3, max_length=80)


class ChunkedPassageCandidate(CamelModel):
	model_config = ConfigDict(extra="forbid")
	paragraphs: List[ParagraphCandidate] = Field(min_length=2)
	sections: SectionPlanCandidate


class FlatQuestionCandidate(CamelModel):
	"""Every field of every question format; null means "not for this format"."""
	model_config = ConfigDict(extra="forbid")
	format: QuestionFormat
	type: QuestionType
	difficulty: int = Field(ge=1, le=3)
	prompt: str = Field(min_length=8)
	explanation: str = Field(min_length=10)
	evidence_paragraphs: List[int] = Field(min_length=1)

	options: Optional[List[str]]
	correct_option_index: Optional[int]
	model_answer: Optional[str]
	rubric: Optional[List[str]]


class QuestionSetCandidate(CamelModel):
	model_config = ConfigDict(extra="forbid")
	questions: List[FlatQuestionCandidate] = Field(min_length=1)


# ---- Questions ----

class QuestionCommon(FrozenCamelModel):
	id: str = Field(min_length=1)
	type: QuestionType
	difficulty: int = Field(ge=1, le=3)
	prompt: str = Field(min_length=1)
	explanation: str = Field(min_length=1)
	evidence_paragraphs: List[int] = Field(min_length=1)


class McqQuestion(QuestionCommon):
	format: Literal["mcq"] = "mcq"
	options: List[str] = Field(min_length=4, max_length=4)
	correct_option_index: int = Field(ge=0, le=3)


class ShortAnswerQuestion(QuestionCommon):
	format: Literal["short"] = "short"
	model_answer: str = Field(min_length=1)
	rubric: List[str] = Field(min_length=2, max_length=5)


Question = Annotated[Union[McqQuestion, ShortAnswerQuestion], Field(discriminator="format")]


class QuestionSet(FrozenCamelModel):
	set_id: str
	passage_id: str
	created_at: int  # epoch milliseconds
	source: Literal["ai"] = "ai"
	questions: List[Question]


# ---- Answers and grading ----

class McqAnswer(FrozenCamelModel):
	question_id: str = Field(min_length=1)
	format: Literal["mcq"] = "mcq"
	answer_index: Optional[int] = Field(default=None, ge=0, le=3)


class ShortAnswer(FrozenCamelModel):
	question_id: str = Field(min_length=1)
	format: Literal["short"] = "short"
	answer_text: str = ""


Answer = Annotated[Union[McqAnswer, ShortAnswer], Field(discriminator="format")]


class ShortAnswerScore(FrozenCamelModel):
	question_id: str
	is_correct: bool
	score01: float = Field(ge=0.0, le=1.0)
	feedback: str


class ShortAnswerItem(FrozenCamelModel):
	"""What the scorer sees for one short-answer question."""
	question_id: str
	prompt: str
	user_answer: str
	model_answer: str
	rubric: List[str]
	evidence_paragraphs: List[int]
	evidence_text: str


class GradeItem(FrozenCamelModel):
	question_id: str
	is_correct: bool
	score01: float
	feedback: str
	correct_answer: str
	model_answer: str
	evidence_paragraphs: List[int]
	explanation: str


class GradeSummary(FrozenCamelModel):
	correct: int
	total: int
	percent: int


class GradeReport(FrozenCamelModel):
	set_id: str
	summary: GradeSummary
	results: List[GradeItem]


class ShortAnswerScoreSet(CamelModel):
	results: List[ShortAnswerScore]
