"""Tests for the command-line interface."""

import pytest
from click.testing import CliRunner

from openrouter_deep_research import cli as cli_module
from openrouter_deep_research.core.exceptions import ModelCatalogError
from openrouter_deep_research.models.catalog import ModelInfo, ModelPricing
from openrouter_deep_research.models.research import DeepResearchResult, Resource


@pytest.fixture
def runner(monkeypatch):
    monkeypatch.setattr(cli_module, "configure_logging", lambda **kwargs: None)
    for name in ("OPENROUTER_API_KEY", "DEEP_RESEARCH_PHASES", "DEEP_RESEARCH_CLASSIFY_STRATEGY"):
        monkeypatch.delenv(name, raising=False)
    return CliRunner()


class StubCatalog:
    models = [
        ModelInfo(
            id="deepseek/deepseek-chat-v3-0324:free",
            context_length=64000,
            pricing=ModelPricing(prompt=0.000001, completion=0.000002),
        ),
        ModelInfo(id="other/model"),
    ]

    def __init__(self, gateway, has_api_key=True):
        pass

    async def get_models(self):
        return self.models

    async def pricing_table(self):
        return {m.id: m.pricing for m in self.models}


def test_run_requires_api_key(runner):
    result = runner.invoke(cli_module.cli, ["run", "What is a battery?"])
    assert result.exit_code == 1
    assert "OPENROUTER_API_KEY" in result.output


def test_run_prints_answer(runner, monkeypatch):
    monkeypatch.setenv("OPENROUTER_API_KEY", "sk-test")
    captured = {}

    async def fake_do_deep_research(config, user_message, status_callback=None, **kwargs):
        captured["config"] = config
        captured["question"] = user_message.content
        status_callback("Phase 1/2: planning research...")
        return DeepResearchResult(
            content="Batteries store **energy**.",
            phase_answers=["a", "b"],
            resources=[Resource(url="https://example.com", title="Example")],
            total_cost=0.0123,
        )

    monkeypatch.setattr(cli_module, "do_deep_research", fake_do_deep_research)

    result = runner.invoke(
        cli_module.cli, ["run", "What is a battery?", "--phases", "2", "--no-classify"]
    )

    assert result.exit_code == 0, result.output
    assert captured["question"] == "What is a battery?"
    assert captured["config"].deep_research_phases == 2
    assert not captured["config"].deep_research_classify_strategy
    assert "Batteries store" in result.output
    assert "https://example.com" in result.output
    assert "0.0123" in result.output


def test_run_reports_errors(runner, monkeypatch):
    monkeypatch.setenv("OPENROUTER_API_KEY", "sk-test")

    async def failing(*args, **kwargs):
        raise ModelCatalogError("no network")

    monkeypatch.setattr(cli_module, "do_deep_research", failing)

    result = runner.invoke(cli_module.cli, ["run", "q"])

    assert result.exit_code == 1
    assert "no network" in result.output


def test_estimate(runner, monkeypatch):
    monkeypatch.setenv("OPENROUTER_API_KEY", "sk-test")
    monkeypatch.setattr(cli_module, "ModelCatalog", StubCatalog)

    result = runner.invoke(cli_module.cli, ["estimate", "--phases", "2"])

    assert result.exit_code == 0, result.output
    assert "Total" in result.output
    assert "Web search" in result.output


def test_models_filter(runner, monkeypatch):
    monkeypatch.setenv("OPENROUTER_API_KEY", "sk-test")
    monkeypatch.setattr(cli_module, "ModelCatalog", StubCatalog)

    result = runner.invoke(cli_module.cli, ["models", "--search", "deepseek"])

    assert result.exit_code == 0, result.output
    assert "deepseek" in result.output
    assert "other/model" not in result.output


@pytest.mark.parametrize("option", ["--phases", "--subrequests"])
def test_run_rejects_zero_overrides(runner, monkeypatch, option):
    monkeypatch.setenv("OPENROUTER_API_KEY", "sk-test")
    calls = []

    async def fake_do_deep_research(*args, **kwargs):
        calls.append(args)

    monkeypatch.setattr(cli_module, "do_deep_research", fake_do_deep_research)

    result = runner.invoke(cli_module.cli, ["run", "q", option, "0", "--no-classify"])

    assert result.exit_code == 1
    assert not isinstance(result.exception, IndexError)
    assert "Invalid configuration" in result.output
    assert calls == []
