"""
Tests for the execution coordinator.

These tests verify:
- Every directive runs, failures are collected next to successes
- Results come back in plan order
- Per-call timeout and concurrency bound
- Priority ordering of task start
"""

import asyncio
import json

import pytest

from challenge_builder.agents.protocol import AgentInvocation
from challenge_builder.orchestrator.execution import (
    ExecutionCoordinator,
    build_creation_variables,
    build_update_variables,
)
from challenge_builder.orchestrator.schemas import RevisionPlan


class RoutingInvoker:
    """Answers per directive id with canned text or an exception, after an optional delay."""

    def __init__(self, responses, delays=None):
        self.responses = responses
        self.delays = delays or {}
        self.started: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def invoke(self, agent_slug, interaction_type, variables, *, temperature=None, max_output_tokens=None):
        key = variables.get("challenge_id") or variables.get("reference_id")
        self.started.append(key)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delays.get(key, 0))
            response = self.responses[key]
            if isinstance(response, Exception):
                raise response
            return AgentInvocation(
                content=response,
                log_id=f"log-{key}",
                agent_id=agent_slug,
                model_id="mock-model",
                interaction_type=interaction_type,
            )
        finally:
            self.in_flight -= 1


def _update(challenge_id, priority="medium"):
    return {
        "challengeId": challenge_id,
        "challengeTitle": f"Title {challenge_id}",
        "reason": f"Reason {challenge_id}",
        "priority": priority,
        "estimatedChanges": "Refresh",
        "relatedInsightIds": [],
    }


def _creation(reference_id, parent_id=None, priority="medium"):
    return {
        "referenceId": reference_id,
        "suggestedTitle": f"New {reference_id}",
        "reason": f"Reason {reference_id}",
        "priority": priority,
        "suggestedParentId": parent_id,
        "relatedInsightIds": ["i3"],
        "estimatedImpact": "high",
    }


def _plan(updates=(), creations=()):
    return RevisionPlan.model_validate(
        {
            "summary": "Plan",
            "updates": list(updates),
            "creations": list(creations),
            "noChangeNeeded": [],
        }
    )


def _update_response(challenge_id):
    return json.dumps({"challengeId": challenge_id, "summary": f"Updated {challenge_id}"})


def _creation_response(title):
    return json.dumps({"summary": "Created", "newChallenges": [{"title": title}]})


@pytest.mark.asyncio
async def test_one_failure_does_not_block_others(project_context):
    plan = _plan(
        updates=[_update("c1"), _update("c2"), _update("c3")],
        creations=[_creation("n1"), _creation("n2", parent_id="c1")],
    )
    invoker = RoutingInvoker(
        {
            "c1": _update_response("c1"),
            "c2": RuntimeError("upstream returned 502"),
            "c3": _update_response("c3"),
            "n1": _creation_response("Guided tour"),
            "n2": _creation_response("Import wizard"),
        }
    )
    coordinator = ExecutionCoordinator(invoker, project_context)

    outcome = await coordinator.execute(plan)

    assert outcome.success_count == 4
    assert [s.challenge_id for s in outcome.update_suggestions] == ["c1", "c3"]
    assert [s.title for s in outcome.new_challenge_suggestions] == ["Guided tour", "Import wizard"]
    assert outcome.new_challenge_suggestions[1].parent_id == "c1"
    assert len(outcome.errors) == 1
    error = outcome.errors[0]
    assert error.directive_id == "c2"
    assert error.directive_kind == "update"
    assert error.failure == "invocation"
    assert "502" in error.message
    assert sorted(invoker.started) == ["c1", "c2", "c3", "n1", "n2"]


@pytest.mark.asyncio
async def test_invoker_exception_becomes_invocation_error(project_context):
    plan = _plan(updates=[_update("c1")], creations=[_creation("n1")])
    invoker = RoutingInvoker({"c1": RuntimeError("rate limited"), "n1": _creation_response("X")})

    outcome = await ExecutionCoordinator(invoker, project_context).execute(plan)

    assert outcome.errors[0].failure == "invocation"
    assert "rate limited" in outcome.errors[0].message
    assert len(outcome.new_challenge_suggestions) == 1


@pytest.mark.asyncio
async def test_unparseable_response_becomes_decode_error(project_context):
    plan = _plan(updates=[_update("c1"), _update("c3")])
    invoker = RoutingInvoker({"c1": "not json at all", "c3": _update_response("c3")})

    outcome = await ExecutionCoordinator(invoker, project_context).execute(plan)

    assert [s.challenge_id for s in outcome.update_suggestions] == ["c3"]
    assert outcome.errors[0].directive_id == "c1"
    assert outcome.errors[0].failure == "decode"


@pytest.mark.asyncio
async def test_unknown_challenge_is_referential_error(project_context):
    plan = _plan(updates=[_update("ghost")], creations=[_creation("n1", parent_id="ghost")])
    invoker = RoutingInvoker({})

    outcome = await ExecutionCoordinator(invoker, project_context).execute(plan)

    assert [e.failure for e in outcome.errors] == ["referential", "referential"]
    assert [e.directive_kind for e in outcome.errors] == ["update", "creation"]
    assert invoker.started == []


@pytest.mark.asyncio
async def test_schema_error_is_reported(project_context):
    plan = _plan(creations=[_creation("n1")])
    invoker = RoutingInvoker({"n1": json.dumps({"newChallenges": [{"description": "no title"}]})})

    outcome = await ExecutionCoordinator(invoker, project_context).execute(plan)

    assert outcome.errors[0].failure == "schema"
    assert outcome.errors[0].directive_id == "n1"


@pytest.mark.asyncio
async def test_timeout_fails_only_slow_directive(project_context):
    plan = _plan(updates=[_update("c1"), _update("c2")])
    invoker = RoutingInvoker(
        {"c1": _update_response("c1"), "c2": _update_response("c2")},
        delays={"c2": 1.0},
    )
    coordinator = ExecutionCoordinator(invoker, project_context, timeout=0.05)

    outcome = await coordinator.execute(plan)

    assert [s.challenge_id for s in outcome.update_suggestions] == ["c1"]
    assert outcome.errors[0].directive_id == "c2"
    assert outcome.errors[0].failure == "invocation"
    assert "timed out" in outcome.errors[0].message


@pytest.mark.asyncio
async def test_concurrency_bound_and_priority_order(project_context):
    plan = _plan(
        updates=[_update("c1", priority="low"), _update("c2", priority="high")],
        creations=[_creation("n1", priority="critical")],
    )
    invoker = RoutingInvoker(
        {
            "c1": _update_response("c1"),
            "c2": _update_response("c2"),
            "n1": _creation_response("X"),
        },
        delays={"c1": 0.01, "c2": 0.01, "n1": 0.01},
    )
    coordinator = ExecutionCoordinator(invoker, project_context, max_concurrency=1)

    outcome = await coordinator.execute(plan)

    assert invoker.max_in_flight == 1
    assert invoker.started == ["n1", "c2", "c1"]
    # Reported in plan order regardless of start order
    assert [s.challenge_id for s in outcome.update_suggestions] == ["c1", "c2"]


@pytest.mark.asyncio
async def test_unbounded_runs_all_at_once(project_context):
    plan = _plan(updates=[_update("c1"), _update("c2"), _update("c3")])
    invoker = RoutingInvoker(
        {key: _update_response(key) for key in ("c1", "c2", "c3")},
        delays={"c1": 0.02, "c2": 0.02, "c3": 0.02},
    )

    await ExecutionCoordinator(invoker, project_context).execute(plan)

    assert invoker.max_in_flight == 3


@pytest.mark.asyncio
async def test_empty_plan(project_context):
    outcome = await ExecutionCoordinator(RoutingInvoker({}), project_context).execute(_plan())

    assert outcome.success_count == 0
    assert outcome.errors == []


def test_update_variables(project_context):
    challenge = project_context.hierarchy.get("c1")
    directive = _plan(updates=[_update("c1", priority="high")]).updates[0]

    variables = build_update_variables(project_context, challenge, directive)

    assert variables["challenge_title"] == "Slow onboarding"
    assert variables["priority"] == "high"
    scoped = json.loads(variables["challenge_context_json"])
    assert scoped["subChallenges"][0]["id"] == "c2"
    owners = json.loads(variables["available_owner_options_json"])
    assert [o["id"] for o in owners] == ["u1", "u2"]


def test_creation_variables(project_context):
    directive = _plan(creations=[_creation("n1", parent_id="c1")]).creations[0]

    variables = build_creation_variables(
        project_context, directive, project_context.build_global_context()
    )

    assert variables["suggested_parent_id"] == "c1"
    assert variables["estimated_impact"] == "high"
    insights = json.loads(variables["related_insights_json"])
    assert [i["id"] for i in insights] == ["i3"]
