from __future__ import annotations
from enum import Enum
from typing import Optional


class PartitionErrorKind(str, Enum):
	NOT_STARTING_AT_ZERO = "not_starting_at_zero"
	NOT_ENDING_AT_LAST = "not_ending_at_last"
	INVERTED_RANGE = "inverted_range"
	OUT_OF_BOUNDS = "out_of_bounds"
	GAP_OR_OVERLAP = "gap_or_overlap"
	SIZE_OUT_OF_RANGE = "size_out_of_range"


class QuestionShapeErrorKind(str, Enum):
	NO_VALID_EVIDENCE = "no_valid_evidence"
	MISSING_REQUIRED_FIELD = "missing_required_field"
	UNEXPECTED_FIELD = "unexpected_field"
	CARDINALITY_VIOLATION = "cardinality_violation"


class ExternalServiceErrorKind(str, Enum):
	MISSING_CREDENTIAL = "missing_credential"
	NO_PARSED_OUTPUT = "no_parsed_output"
	UPSTREAM_FAILURE = "upstream_failure"


class PassageCoachError(Exception):
	"""Base error. `kind` is stable and meant for branching; `message` is for people."""

	def __init__(self, kind: Enum, message: str) -> None:
		super().__init__(message)
		self.kind = kind
		self.message = message

	@property
	def code(self) -> str:
		return self.kind.value


class PartitionError(PassageCoachError):
	def __init__(self, kind: PartitionErrorKind, message: str, *, segment_index: Optional[int] = None) -> None:
		super().__init__(kind, message)
		self.segment_index = segment_index


class QuestionShapeError(PassageCoachError):
	def __init__(self, kind: QuestionShapeErrorKind, message: str, *, ordinal: int) -> None:
		super().__init__(kind, f"Question {ordinal + 1}: {message}")
		self.ordinal = ordinal


class ExternalServiceError(PassageCoachError):
	def __init__(self, kind: ExternalServiceErrorKind, message: str) -> None:
		super().__init__(kind, message)
