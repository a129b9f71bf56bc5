from __future__ import annotations
from datetime import datetime
from sqlalchemy import Column, String, DateTime, Text, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from .db import Base


class Attempt(Base):
	__tablename__ = "attempts"
	attempt_id = Column(String(64), primary_key=True, index=True)
	passage_id = Column(String(128), nullable=False)
	# Question set the responses belong to; replaced when questions are regenerated
	set_id = Column(String(64), nullable=True)
	started_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

	responses = relationship(
		"AttemptResponse",
		back_populates="attempt",
		cascade="all, delete-orphan",
		order_by="AttemptResponse.created_at",
	)


class AttemptResponse(Base):
	__tablename__ = "attempt_responses"
	__table_args__ = (UniqueConstraint("attempt_id", "question_id", name="uq_attempt_question"),)
	id = Column(String(64), primary_key=True)
	attempt_id = Column(String(64), ForeignKey("attempts.attempt_id", ondelete="CASCADE"), nullable=False, index=True)
	question_id = Column(String(32), nullable=False)
	user_answer = Column(Text, nullable=False, default="")
	grade_json = Column(Text, nullable=True)  # GradeItem JSON snapshot
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

	attempt = relationship("Attempt", back_populates="responses")
