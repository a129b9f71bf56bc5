from __future__ import annotations
import logging
from typing import List, Optional, Sequence

from .errors import PartitionError, PartitionErrorKind
from .schemas import Section

logger = logging.getLogger(__name__)


def _reject(kind: PartitionErrorKind, message: str, segment_index: Optional[int] = None) -> PartitionError:
	logger.info("partition rejected: %s", kind.value)
	return PartitionError(kind, message, segment_index=segment_index)


def validate_partition(
	segments: Sequence[Section],
	para_count: int,
	*,
	min_size: Optional[int] = None,
	max_size: Optional[int] = None,
) -> List[Section]:
	"""Check that `segments` cover paragraphs 0..para_count-1 exactly once.

	Segments are sorted by start paragraph (stable) and checked in one ascending
	pass; the first violation raises `PartitionError`. When `min_size`/`max_size`
	are given, every segment must span that many paragraphs (inclusive bounds).

	Returns new sections with ids reassigned as c1..ck in sorted order, so the
	result depends only on the final ordering, never on the producer's ids.
	"""
	if not segments:
		raise _reject(PartitionErrorKind.NOT_STARTING_AT_ZERO, "Sections must start at paragraph 0.")

	ordered = sorted(segments, key=lambda s: s.start_para)

	if ordered[0].start_para != 0:
		raise _reject(PartitionErrorKind.NOT_STARTING_AT_ZERO, "Sections must start at paragraph 0.", 0)
	if ordered[-1].end_para != para_count - 1:
		raise _reject(
			PartitionErrorKind.NOT_ENDING_AT_LAST,
			f"Sections must end at the last paragraph ({para_count - 1}).",
			len(ordered) - 1,
		)

	for i, cur in enumerate(ordered):
		if cur.start_para > cur.end_para:
			raise _reject(PartitionErrorKind.INVERTED_RANGE, "Section has startPara > endPara.", i)
		if cur.end_para >= para_count:
			raise _reject(PartitionErrorKind.OUT_OF_BOUNDS, "Section out of bounds.", i)
		size = cur.end_para - cur.start_para + 1
		if (min_size is not None and size < min_size) or (max_size is not None and size > max_size):
			raise _reject(
				PartitionErrorKind.SIZE_OUT_OF_RANGE,
				f"Section spans {size} paragraphs; allowed {min_size or 1}..{max_size if max_size is not None else para_count}.",
				i,
			)
		if i > 0:
			prev = ordered[i - 1]
			# Equal starts are never resolved by input order.
			if cur.start_para == prev.start_para or cur.start_para != prev.end_para + 1:
				raise _reject(
					PartitionErrorKind.GAP_OR_OVERLAP,
					"Sections must be contiguous with no gaps/overlaps.",
					i,
				)

	return [
		Section(id=f"c{idx + 1}", label=s.label.strip(), start_para=s.start_para, end_para=s.end_para)
		for idx, s in enumerate(ordered)
	]
