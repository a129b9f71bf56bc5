"""Shared fixtures for the passage-coach test suite."""

import json
from typing import Any, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from passage_coach.db import Base, get_db
from passage_coach.main import app
from passage_coach.schemas import FlatQuestionCandidate, Section
from passage_coach.settings import settings


PARAGRAPHS = [
    "Ten years ago the library roof held nothing but gravel.",
    "Marta Silva noticed the gardens were producing less each year.",
    "Convincing the council took almost two years of meetings.",
    "The first summer brought larger harvests to the gardeners.",
    "School groups began visiting to watch the bees.",
    "A wet spring weakened two colonies and volunteers learned to feed them.",
]


class FakeGeminiClient:
    """Stands in for GeminiClient; returns canned responses in order."""

    def __init__(self, responses: List[str]):
        self.responses = list(responses)
        self.calls: List[Dict[str, Any]] = []
        self.closed = False

    async def generate(self, prompt: str, **kwargs: Any) -> str:
        self.calls.append({"prompt": prompt, **kwargs})
        return self.responses.pop(0)

    async def aclose(self) -> None:
        self.closed = True


def mcq_candidate(**overrides: Any) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "format": "mcq",
        "type": "detail_with_evidence",
        "difficulty": 1,
        "prompt": "  Where were the hives placed?  ",
        "explanation": "Paragraph 0 says the hives sit on the library roof.",
        "evidenceParagraphs": [0],
        "options": ["On the library roof", "In a park", "At a school", "In a garden"],
        "correctOptionIndex": 0,
        "modelAnswer": None,
        "rubric": None,
    }
    data.update(overrides)
    return data


def short_candidate(**overrides: Any) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "format": "short",
        "type": "why/how",
        "difficulty": 2,
        "prompt": "Why did Silva want bees near the gardens?",
        "explanation": "Paragraph 1 links falling harvests to a lack of pollinators.",
        "evidenceParagraphs": [1],
        "options": None,
        "correctOptionIndex": None,
        "modelAnswer": "Because the gardens lacked pollinators.",
        "rubric": ["Mentions pollinators", "Links bees to harvests"],
    }
    data.update(overrides)
    return data


def section(start: int, end: int, label: Optional[str] = None, sid: str = "x") -> Section:
    return Section(id=sid, label=label or f"Part {start}-{end}", start_para=start, end_para=end)


@pytest.fixture
def paragraphs() -> List[str]:
    return list(PARAGRAPHS)


@pytest.fixture
def make_mcq():
    def _make(**overrides: Any) -> FlatQuestionCandidate:
        return FlatQuestionCandidate.model_validate(mcq_candidate(**overrides))
    return _make


@pytest.fixture
def make_short():
    def _make(**overrides: Any) -> FlatQuestionCandidate:
        return FlatQuestionCandidate.model_validate(short_candidate(**overrides))
    return _make


@pytest.fixture
def gemini_key(monkeypatch):
    monkeypatch.setattr(settings, "gemini_api_key", "test-gemini-api-key")
    return "test-gemini-api-key"


@pytest.fixture
def no_gemini_key(monkeypatch):
    monkeypatch.setattr(settings, "gemini_api_key", None)


@pytest.fixture
def db_session():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(bind=engine)
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine, future=True)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def client(db_session) -> TestClient:
    def _override_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_db
    app.state.chunk_producer.cache.clear()
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
        app.state.chunk_producer.cache.clear()


def as_json(data: Any) -> str:
    return json.dumps(data)
