from __future__ import annotations
from typing import Any, Dict, List

from fastapi import APIRouter

from ..chunking import split_paragraphs
from ..deps import require_passage
from ..passages import load_passages


router = APIRouter(prefix="/passages", tags=["passages"])


@router.get("")
async def list_passages() -> List[Dict[str, str]]:
	return [{"id": p.id, "title": p.title} for p in load_passages().values()]


@router.get("/{passage_id}")
async def get_passage(passage_id: str) -> Dict[str, Any]:
	passage = require_passage(passage_id)
	return {
		"id": passage.id,
		"title": passage.title,
		"text": passage.text,
		"paragraphs": split_paragraphs(passage.text),
	}
