from __future__ import annotations
from typing import Iterable, List, Sequence

from .schemas import Section

MAX_EVIDENCE_PARAGRAPHS = 4


def normalize_evidence(evidence: Iterable[int], para_count: int, *, limit: int = MAX_EVIDENCE_PARAGRAPHS) -> List[int]:
	"""Dedupe, drop indices outside [0, para_count), keep the first `limit`, sort ascending."""
	seen: List[int] = []
	for idx in evidence:
		if isinstance(idx, bool) or not isinstance(idx, int):
			continue
		if idx in seen or idx < 0 or idx >= para_count:
			continue
		seen.append(idx)
	return sorted(seen[:limit])


def evidence_text(paragraphs: Sequence[str], indices: Iterable[int]) -> str:
	# "[i] text" blocks, the only passage text the short-answer scorer sees
	return "\n\n".join(f"[{i}] {paragraphs[i]}" for i in indices if 0 <= i < len(paragraphs))


def resolve_sections(evidence_paragraphs: Iterable[int], sections: Sequence[Section]) -> List[str]:
	"""Labels of the sections that contain at least one evidence paragraph.

	Deduplicated and in section order. Indices that fall outside every section
	contribute nothing; sections may come from a different chunking run than the
	questions, so this never raises.
	"""
	unique = sorted(set(evidence_paragraphs))
	labels: List[str] = []
	for section in sections:
		if section.label in labels:
			continue
		if any(section.start_para <= p <= section.end_para for p in unique):
			labels.append(section.label)
	return labels
