from __future__ import annotations
import re
from typing import List, Sequence

from .schemas import Chunk, Section

PARAGRAPH_JOINER = "\n\n"
_BLANK_LINE = re.compile(r"\n\s*\n")


def split_paragraphs(text: str) -> List[str]:
	return [p.strip() for p in _BLANK_LINE.split(text) if p.strip()]


def chunk_by_paragraphs(text: str, paragraphs_per_chunk: int = 3) -> List[Chunk]:
	"""Fixed-size sections, used when no thematic plan is available."""
	if paragraphs_per_chunk < 1:
		raise ValueError("paragraphs_per_chunk must be >= 1")
	paras = split_paragraphs(text)
	return chunks_from_plan(paras, sections_for_fixed_size(len(paras), paragraphs_per_chunk))


def sections_for_fixed_size(para_count: int, paragraphs_per_chunk: int = 3) -> List[Section]:
	return [
		Section(
			id=f"c{i // paragraphs_per_chunk + 1}",
			label=f"Section {i // paragraphs_per_chunk + 1}",
			start_para=i,
			end_para=min(i + paragraphs_per_chunk, para_count) - 1,
		)
		for i in range(0, para_count, paragraphs_per_chunk)
	]


def chunks_from_plan(paragraphs: Sequence[str], sections: Sequence[Section]) -> List[Chunk]:
	"""Lay validated sections onto the joined passage text.

	Offsets are computed from paragraph lengths rather than by searching, so
	repeated paragraphs can't map two sections to the same span.
	"""
	offsets: List[int] = []
	pos = 0
	for p in paragraphs:
		offsets.append(pos)
		pos += len(p) + len(PARAGRAPH_JOINER)
	chunks: List[Chunk] = []
	for s in sections:
		body = PARAGRAPH_JOINER.join(paragraphs[s.start_para : s.end_para + 1])
		start = offsets[s.start_para]
		chunks.append(Chunk(id=s.id, label=s.label, start=start, end=start + len(body), text=body))
	return chunks
