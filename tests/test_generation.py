"""Tests for the completion-service producers, with a fake client."""

import json

import pytest

from passage_coach.errors import (
    ExternalServiceError,
    ExternalServiceErrorKind,
    PartitionError,
    PartitionErrorKind,
    QuestionShapeError,
    QuestionShapeErrorKind,
)
from passage_coach.generation import (
    chunk_passage,
    generate_partition,
    generate_questions,
    parse_structured,
    score_short_answers,
)
from passage_coach.schemas import SectionPlanCandidate, ShortAnswerItem

from conftest import FakeGeminiClient, mcq_candidate, short_candidate


def _chunk(start, end, label="A theme", cid="x"):
    return {"id": cid, "label": label, "startPara": start, "endPara": end}


def _item(qid):
    return ShortAnswerItem(
        question_id=qid,
        prompt="Why?",
        user_answer="Because.",
        model_answer="Because of bees.",
        rubric=["a", "b"],
        evidence_paragraphs=[1],
        evidence_text="[1] text",
    )


class TestParseStructured:
    def test_plain_json(self):
        parsed = parse_structured(json.dumps({"chunks": [_chunk(0, 1)]}), SectionPlanCandidate)
        assert parsed.chunks[0].end_para == 1

    def test_fenced_json_block(self):
        raw = "Here you go:\n```json\n" + json.dumps({"chunks": [_chunk(0, 1)]}) + "\n```"
        assert parse_structured(raw, SectionPlanCandidate).chunks[0].start_para == 0

    def test_braces_inside_prose(self):
        raw = "Sure! " + json.dumps({"chunks": [_chunk(0, 2)]}) + " Hope that helps."
        assert parse_structured(raw, SectionPlanCandidate).chunks[0].end_para == 2

    def test_not_json(self):
        with pytest.raises(ExternalServiceError) as exc_info:
            parse_structured("no json here", SectionPlanCandidate)
        assert exc_info.value.kind == ExternalServiceErrorKind.NO_PARSED_OUTPUT

    def test_json_array_is_rejected(self):
        with pytest.raises(ExternalServiceError) as exc_info:
            parse_structured("[1, 2]", SectionPlanCandidate)
        assert exc_info.value.kind == ExternalServiceErrorKind.NO_PARSED_OUTPUT

    def test_schema_mismatch(self):
        with pytest.raises(ExternalServiceError) as exc_info:
            parse_structured(json.dumps({"chunks": []}), SectionPlanCandidate)
        assert exc_info.value.kind == ExternalServiceErrorKind.NO_PARSED_OUTPUT


class TestChunkPassage:
    @pytest.mark.asyncio
    async def test_valid_plan(self):
        response = {
            "paragraphs": [{"text": f" Para {i} ", "idea": f"Idea number {i}"} for i in range(4)],
            "sections": {"chunks": [_chunk(2, 3, "Later part", "s9"), _chunk(0, 1, "Early part", "s1")]},
        }
        client = FakeGeminiClient([json.dumps(response)])

        result = await chunk_passage(client, "the passage")

        assert [p.text for p in result.paragraphs] == ["Para 0", "Para 1", "Para 2", "Para 3"]
        assert [(c.id, c.label) for c in result.sections.chunks] == [("c1", "Early part"), ("c2", "Later part")]
        assert client.calls[0]["prompt"] == "the passage"
        assert client.calls[0]["json_output"] is True

    @pytest.mark.asyncio
    async def test_gap_rejects_whole_plan(self):
        response = {
            "paragraphs": [{"text": f"P{i}", "idea": "Some idea"} for i in range(5)],
            "sections": {"chunks": [_chunk(0, 1), _chunk(3, 4)]},
        }
        client = FakeGeminiClient([json.dumps(response)])

        with pytest.raises(PartitionError) as exc_info:
            await chunk_passage(client, "text")

        assert exc_info.value.kind == PartitionErrorKind.GAP_OR_OVERLAP


class TestGeneratePartition:
    @pytest.mark.asyncio
    async def test_sizes_enforced(self, paragraphs):
        client = FakeGeminiClient([json.dumps({"chunks": [_chunk(0, 4), _chunk(5, 5)]})])

        with pytest.raises(PartitionError) as exc_info:
            await generate_partition(client, paragraphs, 1, 3)

        assert exc_info.value.kind == PartitionErrorKind.SIZE_OUT_OF_RANGE

    @pytest.mark.asyncio
    async def test_valid_partition(self, paragraphs):
        client = FakeGeminiClient([json.dumps({"chunks": [_chunk(0, 2), _chunk(3, 5)]})])

        sections = await generate_partition(client, paragraphs, 1, 3)

        assert [s.id for s in sections] == ["c1", "c2"]
        assert "[5] " + paragraphs[5] in client.calls[0]["prompt"]


class TestGenerateQuestions:
    @pytest.mark.asyncio
    async def test_valid_set(self, paragraphs):
        questions = [mcq_candidate(), short_candidate(), mcq_candidate(), short_candidate(), mcq_candidate()]
        client = FakeGeminiClient([json.dumps({"questions": questions})])

        result = await generate_questions(client, paragraphs, variety_token="nonce-123", avoid_prompts=["Old prompt?"])

        assert [q.id for q in result] == ["q1", "q2", "q3", "q4", "q5"]
        assert [q.format for q in result] == ["mcq", "short", "mcq", "short", "mcq"]
        call = client.calls[0]
        assert "nonce-123" in call["system"]
        assert "- Old prompt?" in call["prompt"]
        assert call["temperature"] == 0.9

    @pytest.mark.asyncio
    async def test_avoid_prompts_capped(self, paragraphs):
        questions = [mcq_candidate()] * 5
        client = FakeGeminiClient([json.dumps({"questions": questions})])

        await generate_questions(client, paragraphs, avoid_prompts=[f"prompt {i}" for i in range(20)])

        prompt = client.calls[0]["prompt"]
        assert "- prompt 11" in prompt
        assert "- prompt 12" not in prompt

    @pytest.mark.asyncio
    async def test_too_few_questions(self, paragraphs):
        client = FakeGeminiClient([json.dumps({"questions": [mcq_candidate()] * 3})])

        with pytest.raises(ExternalServiceError) as exc_info:
            await generate_questions(client, paragraphs)

        assert exc_info.value.kind == ExternalServiceErrorKind.NO_PARSED_OUTPUT

    @pytest.mark.asyncio
    async def test_one_bad_question_fails_batch(self, paragraphs):
        questions = [mcq_candidate()] * 4 + [short_candidate(evidenceParagraphs=[40])]
        client = FakeGeminiClient([json.dumps({"questions": questions})])

        with pytest.raises(QuestionShapeError) as exc_info:
            await generate_questions(client, paragraphs)

        assert exc_info.value.kind == QuestionShapeErrorKind.NO_VALID_EVIDENCE
        assert exc_info.value.ordinal == 4


class TestScoreShortAnswers:
    @pytest.mark.asyncio
    async def test_no_items_no_call(self):
        client = FakeGeminiClient([])
        assert await score_short_answers(client, []) == {}
        assert client.calls == []

    @pytest.mark.asyncio
    async def test_scoring_runs_without_thinking_budget(self):
        response = {"results": [{"questionId": "q4", "isCorrect": False, "score01": 0.1, "feedback": "Off topic."}]}
        client = FakeGeminiClient([json.dumps(response)])

        await score_short_answers(client, [_item("q4")])

        assert client.calls[0]["thinking_budget"] == 0
        assert client.calls[0]["json_output"] is True

    @pytest.mark.asyncio
    async def test_scores_keyed_by_id_and_unknown_ids_dropped(self):
        response = {"results": [
            {"questionId": "q4", "isCorrect": True, "score01": 0.8, "feedback": "Well supported."},
            {"questionId": "q9", "isCorrect": True, "score01": 1, "feedback": "Not asked for."},
        ]}
        client = FakeGeminiClient([json.dumps(response)])

        scores = await score_short_answers(client, [_item("q4"), _item("q5")])

        assert set(scores) == {"q4"}
        assert scores["q4"].score01 == 0.8
        sent = json.loads(client.calls[0]["prompt"])
        assert [i["questionId"] for i in sent["items"]] == ["q4", "q5"]
        assert sent["items"][0]["evidenceText"] == "[1] text"

    @pytest.mark.asyncio
    async def test_score_out_of_range_is_unparsed(self):
        response = {"results": [{"questionId": "q4", "isCorrect": True, "score01": 1.5, "feedback": "Too generous."}]}
        client = FakeGeminiClient([json.dumps(response)])

        with pytest.raises(ExternalServiceError) as exc_info:
            await score_short_answers(client, [_item("q4")])

        assert exc_info.value.kind == ExternalServiceErrorKind.NO_PARSED_OUTPUT
