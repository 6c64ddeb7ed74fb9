"""Tests for the research result models."""

import pytest
from pydantic import ValidationError

from openrouter_deep_research.core.config import DEFAULT_MODEL
from openrouter_deep_research.models.chat import ChatResult, Citation, GenerationMetadata
from openrouter_deep_research.models.research import (
    DeepResearchResult,
    ResearchThread,
    generate_id,
)


def chat(content: str) -> ChatResult:
    return ChatResult(request_id="gen-1", model_id="m", content=content)


class TestDeepResearchResult:
    def test_single_phase_record_is_backfilled(self):
        stored = {
            "id": "abc",
            "content": "answer",
            "plan_prompt": "plan this",
            "plan_result": chat("<prompt>a</prompt>"),
            "research_plan": "<prompt>a</prompt>",
            "synthesis_prompt": "synthesize",
            "synthesis_result": chat("answer"),
            "models": {"planning": "p/x", "research": "", "refining": None, "synthesis": "s/x"},
        }

        result = DeepResearchResult.model_validate(stored)

        assert result.plan_prompts == ["plan this"]
        assert result.research_plans == ["<prompt>a</prompt>"]
        assert result.synthesis_prompt_strings == ["synthesize"]
        assert [r.content for r in result.plan_results] == ["<prompt>a</prompt>"]
        assert [r.content for r in result.synthesis_results] == ["answer"]
        assert result.models.planning == "p/x"
        assert result.models.research == DEFAULT_MODEL
        assert result.models.refining == DEFAULT_MODEL
        # the stored record is not modified
        assert "plan_prompts" not in stored

    def test_existing_phase_lists_are_kept(self):
        result = DeepResearchResult(plan_prompt="p1", plan_prompts=["p1", "p2"])
        assert result.plan_prompts == ["p1", "p2"]

    def test_is_frozen(self):
        result = DeepResearchResult(content="x")
        with pytest.raises(ValidationError):
            result.content = "y"

    def test_cost_cannot_be_negative(self):
        with pytest.raises(ValidationError):
            DeepResearchResult(total_cost=-0.01)

    def test_round_trips_through_json(self):
        result = DeepResearchResult(
            content="answer",
            annotations=[Citation(url="https://a.b", title="A")],
            research_threads=[ResearchThread(prompt="q", refined=chat("r"))],
        )
        restored = DeepResearchResult.model_validate_json(result.model_dump_json())
        assert restored.annotations[0].url == "https://a.b"
        assert restored.research_threads[0].refined_content == "r"


class TestResearchThread:
    def test_refined_content_empty_until_refined(self):
        assert ResearchThread(prompt="q").refined_content == ""

    def test_runtime_fields_not_serialized(self):
        thread = ResearchThread(prompt="q", on_metadata=lambda m: None)
        dumped = thread.model_dump()
        assert "on_metadata" not in dumped
        assert "pending_metadata_lookups" not in dumped


class TestChatModels:
    def test_citation_from_annotation(self):
        citation = Citation.from_annotation(
            {"type": "url_citation", "url_citation": {"url": "https://x", "title": "X"}}
        )
        assert citation is not None and citation.title == "X"
        assert Citation.from_annotation({"type": "file"}) is None
        assert Citation.from_annotation({"type": "url_citation", "url_citation": {}}) is None

    def test_total_cost_follows_metadata(self):
        result = chat("x")
        assert result.total_cost_usd is None
        result.generation_metadata = GenerationMetadata(request_id="gen-1", total_cost_usd=0.2)
        assert result.total_cost_usd == 0.2

    def test_generation_metadata_from_api(self):
        metadata = GenerationMetadata.from_api(
            {"id": "gen-1", "total_cost": None, "num_search_results": None, "streamed": True}
        )
        assert metadata.total_cost_usd == 0.0
        assert metadata.web_search_result_count == 0
        assert metadata.streamed


def test_generate_id_is_unique():
    ids = {generate_id() for _ in range(1000)}
    assert len(ids) == 1000
