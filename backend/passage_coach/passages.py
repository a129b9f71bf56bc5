from __future__ import annotations
import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Dict, Optional

from .schemas import Passage

logger = logging.getLogger(__name__)

PASSAGES_DIR = Path(__file__).resolve().parent / "data" / "passages"


@lru_cache(maxsize=1)
def load_passages() -> Dict[str, Passage]:
	passages: Dict[str, Passage] = {}
	for path in sorted(PASSAGES_DIR.glob("*.json")):
		passage = Passage.model_validate(json.loads(path.read_text(encoding="utf-8")))
		passages[passage.id] = passage
	logger.info("loaded %d passage(s)", len(passages))
	return passages


def get_passage(passage_id: str) -> Optional[Passage]:
	return load_passages().get(passage_id)
