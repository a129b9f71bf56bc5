from __future__ import annotations
import json
from datetime import datetime, timezone
import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import Field
from sqlalchemy.orm import Session

from ..db import get_db
from ..deps import require_passage
from ..models import Attempt, AttemptResponse
from ..schemas import CamelModel, GradeItem


router = APIRouter(prefix="/attempts", tags=["attempts"])


class StartAttemptRequest(CamelModel):
	passage_id: str = Field(min_length=1)


class SaveResponseRequest(CamelModel):
	set_id: Optional[str] = None
	user_answer: str = ""
	grade: Optional[GradeItem] = None


class ResponseOut(CamelModel):
	question_id: str
	user_answer: str
	grade: Optional[GradeItem] = None


class AttemptOut(CamelModel):
	attempt_id: str
	passage_id: str
	set_id: Optional[str] = None
	started_at: int
	responses: List[ResponseOut]


def _to_out(attempt: Attempt) -> AttemptOut:
	return AttemptOut(
		attempt_id=attempt.attempt_id,
		passage_id=attempt.passage_id,
		set_id=attempt.set_id,
		started_at=int(attempt.started_at.replace(tzinfo=timezone.utc).timestamp() * 1000),
		responses=[
			ResponseOut(
				question_id=r.question_id,
				user_answer=r.user_answer,
				grade=GradeItem.model_validate(json.loads(r.grade_json)) if r.grade_json else None,
			)
			for r in attempt.responses
		],
	)


def _require_attempt(db: Session, attempt_id: str) -> Attempt:
	attempt = db.get(Attempt, attempt_id)
	if not attempt:
		raise HTTPException(status_code=404, detail="Attempt not found")
	return attempt


@router.post("", response_model=AttemptOut)
def start_attempt(req: StartAttemptRequest, db: Session = Depends(get_db)):
	passage = require_passage(req.passage_id)
	attempt = Attempt(attempt_id=uuid.uuid4().hex, passage_id=passage.id)
	db.add(attempt)
	db.commit()
	db.refresh(attempt)
	return _to_out(attempt)


@router.get("/{attempt_id}", response_model=AttemptOut)
def get_attempt(attempt_id: str, db: Session = Depends(get_db)):
	return _to_out(_require_attempt(db, attempt_id))


@router.put("/{attempt_id}/responses/{question_id}", response_model=AttemptOut)
def save_response(attempt_id: str, question_id: str, req: SaveResponseRequest, db: Session = Depends(get_db)):
	attempt = _require_attempt(db, attempt_id)
	if req.set_id and req.set_id != attempt.set_id:
		# A regenerated question set starts a fresh response list
		attempt.responses.clear()
		attempt.set_id = req.set_id
		db.flush()
	grade_json = json.dumps(req.grade.model_dump(by_alias=True)) if req.grade else None
	existing = next((r for r in attempt.responses if r.question_id == question_id), None)
	if existing:
		existing.user_answer = req.user_answer
		existing.grade_json = grade_json
	else:
		attempt.responses.append(AttemptResponse(
			id=uuid.uuid4().hex,
			question_id=question_id,
			user_answer=req.user_answer,
			grade_json=grade_json,
		))
	# Touch the parent so retention counts from the latest answer
	attempt.updated_at = datetime.utcnow()
	db.commit()
	db.refresh(attempt)
	return _to_out(attempt)


@router.delete("/{attempt_id}", status_code=204)
def reset_attempt(attempt_id: str, db: Session = Depends(get_db)):
	attempt = _require_attempt(db, attempt_id)
	db.delete(attempt)
	db.commit()
