"""
Tests for JudgePanel.

The panel must return exactly one result per judge, in judge order, no matter
which judges fail.
"""

import asyncio

import pytest

from judgementals.agents.components.llm_utils import LLMUtils
from judgementals.agents.components.prompt_budgeter import DEFAULT_TRUNCATION_MARKER, byte_length
from judgementals.agents.components.result_validator import FALLBACK_LIKES, Fallback, Ok
from judgementals.agents.judge.panel import JudgePanel
from judgementals.agents.judge.prompts import JUDGE_PROJECT_HEADER, JUDGE_RESPONSE_FORMAT

from conftest import ScriptedCompletionService, judge_json


def panel_for(responder, **kwargs) -> JudgePanel:
    service = ScriptedCompletionService(responder)
    return JudgePanel(LLMUtils(service, timeout_seconds=kwargs.pop("timeout", 5.0)), **kwargs)


@pytest.mark.asyncio
class TestJudgePanel:

    async def test_results_follow_judge_order(self, judges):
        scores = {"technical": 9, "product": 6, "user experience": 3}

        def responder(prompt):
            for key, score in scores.items():
                if key in prompt:
                    return judge_json(score=score)
            return judge_json()

        results = await panel_for(responder).evaluate("Alpha", "Project: Alpha", judges)

        assert [r.judge_id for r in results] == ["tech", "product", "design"]
        assert [r.score for r in results] == [9, 6, 3]

    async def test_one_failing_judge_gets_fallback(self, judges):
        def responder(prompt):
            if "product value" in prompt:
                return RuntimeError("provider unavailable")
            return judge_json(score=8)

        results = await panel_for(responder).evaluate("Alpha", "Project: Alpha", judges)

        assert len(results) == 3
        assert [r.score for r in results] == [8, 5, 8]
        assert results[1].judge_id == "product"
        assert results[1].likes == FALLBACK_LIKES
        assert "Alpha" in results[1].summary

    async def test_unparsable_response_gets_fallback(self, judges):
        outcomes = await panel_for(lambda prompt: "I refuse to answer in JSON").evaluate_outcomes(
            "Alpha", "Project: Alpha", judges
        )
        assert all(isinstance(outcome, Fallback) for outcome in outcomes)
        assert all(outcome.result.score == 5 for outcome in outcomes)

    async def test_all_judges_fail(self, judges):
        results = await panel_for(lambda prompt: ValueError("bad")).evaluate("Alpha", "x", judges)
        assert len(results) == len(judges)
        assert all(r.score == 5 for r in results)

    async def test_timeout_gets_fallback(self, judges):
        class HangingService:
            async def complete(self, prompt, seed):
                await asyncio.sleep(10)

        panel = JudgePanel(LLMUtils(HangingService(), timeout_seconds=0.01))
        outcomes = await panel.evaluate_outcomes("Alpha", "x", judges[:1])

        assert isinstance(outcomes[0], Fallback)
        assert "Timeout" in outcomes[0].reason or "timed out" in outcomes[0].reason

    async def test_partial_response_is_normalised(self, judges):
        outcomes = await panel_for(lambda prompt: '{"score": 42}').evaluate_outcomes(
            "Alpha", "x", judges[:1]
        )
        assert isinstance(outcomes[0], Ok)
        assert outcomes[0].result.score == 5

    async def test_empty_panel(self):
        assert await panel_for(lambda prompt: judge_json()).evaluate("Alpha", "x", []) == []


class TestBuildPrompt:

    def test_prompt_layout(self, judges):
        panel = panel_for(lambda prompt: judge_json())
        prompt = panel.build_prompt(judges[0], "Project: Alpha")
        assert prompt == judges[0].prompt + JUDGE_PROJECT_HEADER + "Project: Alpha" + JUDGE_RESPONSE_FORMAT

    def test_prompt_respects_budget(self, judges):
        panel = panel_for(lambda prompt: judge_json(), max_prompt_bytes=2000)
        prompt = panel.build_prompt(judges[0], "y" * 50000)

        assert byte_length(prompt) <= 2000
        assert DEFAULT_TRUNCATION_MARKER in prompt
        assert prompt.endswith(JUDGE_RESPONSE_FORMAT)
