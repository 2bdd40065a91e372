"""
Tests for JudgingService: the end-to-end judging pipeline.
"""

import json
from unittest.mock import AsyncMock, Mock

import pytest

from judgementals.models.config_models import SystemConfig
from judgementals.models.project_models import Project, ProjectFile
from judgementals.services.judging_service import (
    SYSTEM_FALLBACK_JUDGE_NAME,
    JudgingService,
)

from conftest import ScriptedCompletionService, judge_json


def master_or_judge(master_response, judge_response):
    def responder(prompt):
        if prompt.startswith("You are the master judge"):
            return master_response(prompt) if callable(master_response) else master_response
        return judge_response(prompt) if callable(judge_response) else judge_response
    return responder


@pytest.fixture
def config():
    return SystemConfig(judge_timeout_seconds=5.0)


def assert_permutation(evaluations):
    assert sorted(e.final_rank for e in evaluations) == list(range(1, len(evaluations) + 1))


@pytest.mark.asyncio
class TestJudgingService:

    async def test_every_project_gets_every_judge(self, config, projects, judges):
        master = json.dumps({"rankings": [
            {"projectName": "Gamma", "rank": 1},
            {"projectName": "Alpha", "rank": 2},
            {"projectName": "Beta", "rank": 3},
        ]})
        service = JudgingService(
            ScriptedCompletionService(master_or_judge(master, judge_json(score=7))),
            config=config
        )

        evaluations = await service.run(projects, judges)

        assert len(evaluations) == 3
        assert all(len(e.judge_results) == 3 for e in evaluations)
        assert [e.project_name for e in evaluations] == ["Gamma", "Alpha", "Beta"]
        assert_permutation(evaluations)

    async def test_all_calls_failing_still_produces_results(self, config, projects, judges):
        service = JudgingService(
            ScriptedCompletionService(lambda prompt: RuntimeError("provider down")),
            config=config
        )

        evaluations = await service.run(projects, judges)

        assert len(evaluations) == 3
        assert all(r.score == 5 for e in evaluations for r in e.judge_results)
        # Equal means keep insertion order
        assert [e.project_name for e in evaluations] == ["Alpha", "Beta", "Gamma"]
        assert_permutation(evaluations)

    async def test_master_failure_ranks_by_mean_score(self, config, projects, judges):
        scores = {"# Alpha": 8, "# Beta": 5, "# Gamma": 9}

        def judge_response(prompt):
            for marker, score in scores.items():
                if marker in prompt:
                    return judge_json(score=score)
            return judge_json()

        service = JudgingService(
            ScriptedCompletionService(master_or_judge(RuntimeError("master down"), judge_response)),
            config=config
        )

        evaluations = await service.run(projects, judges)

        assert {e.project_name: e.final_rank for e in evaluations} == {"Gamma": 1, "Alpha": 2, "Beta": 3}

    async def test_project_error_yields_error_evaluation(self, config, projects, judges):
        resolver = Mock()

        async def resolve(project):
            if project.name == "Beta":
                raise RuntimeError("storage unreachable")
            return project

        resolver.resolve = resolve
        service = JudgingService(
            ScriptedCompletionService(master_or_judge("{}", judge_json(score=7))),
            config=config,
            content_resolver=resolver
        )

        evaluations = await service.run(projects, judges)
        beta = next(e for e in evaluations if e.project_name == "Beta")

        assert len(beta.judge_results) == 3
        assert all(r.score == 3 for r in beta.judge_results)
        assert beta.judge_results[0].summary == "Error processing project Beta. Unable to complete evaluation."
        assert_permutation(evaluations)

    async def test_callbacks_receive_each_evaluation_and_ranking(self, config, projects, judges):
        on_evaluation = Mock()
        on_ranked = AsyncMock()
        service = JudgingService(
            ScriptedCompletionService(master_or_judge("{}", judge_json())),
            config=config
        )

        evaluations = await service.run(projects, judges, on_evaluation=on_evaluation, on_ranked=on_ranked)

        assert [c.args[0].project_name for c in on_evaluation.call_args_list] == ["Alpha", "Beta", "Gamma"]
        on_ranked.assert_awaited_once_with(evaluations)

    async def test_critical_error_synthesises_placeholders(self, config, projects, judges):
        ranker = Mock()
        ranker.rank = AsyncMock(side_effect=RuntimeError("ranking exploded"))
        service = JudgingService(
            ScriptedCompletionService(lambda prompt: judge_json()),
            config=config,
            ranker=ranker
        )

        evaluations = await service.run(projects, judges)

        assert [e.project_name for e in evaluations] == ["Alpha", "Beta", "Gamma"]
        assert [e.final_rank for e in evaluations] == [1, 2, 3]

    async def test_critical_error_before_any_evaluation(self, config, projects, judges):
        def exploding_callback(evaluation):
            raise RuntimeError("callback failed")

        service = JudgingService(
            ScriptedCompletionService(lambda prompt: judge_json()),
            config=config
        )

        evaluations = await service.run(projects, judges, on_evaluation=exploding_callback)

        assert len(evaluations) == 3
        placeholders = [e for e in evaluations if e.project_name != "Alpha"]
        for evaluation in placeholders:
            assert len(evaluation.judge_results) == 1
            assert evaluation.judge_results[0].judge_name == SYSTEM_FALLBACK_JUDGE_NAME
            assert evaluation.judge_results[0].score == 5
        assert [e.final_rank for e in evaluations] == [1, 2, 3]

    async def test_large_project_prompt_stays_within_budget(self, judges):
        config = SystemConfig(max_project_bytes=4000, max_prompt_bytes=3000)
        completion = ScriptedCompletionService(master_or_judge("{}", judge_json()))
        service = JudgingService(completion, config=config)
        project = Project(
            name="Huge",
            files=[ProjectFile(name=f"f{i}.py", type="text/x-python", content="z" * 900) for i in range(20)],
        )

        await service.run([project], judges)

        assert all(len(prompt.encode("utf-8")) <= 3000 for prompt, _ in completion.calls)

    async def test_empty_batch(self, config, judges):
        service = JudgingService(ScriptedCompletionService(lambda prompt: "{}"), config=config)
        assert await service.run([], judges) == []
