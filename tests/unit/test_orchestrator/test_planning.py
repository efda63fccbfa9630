"""
Tests for the planning step.

These tests verify:
- Unknown challenge and parent ids are dropped with warnings
- Duplicate directives keep their first occurrence
- Unknown evidence ids are pruned
- Invocation and decode failures abort planning
"""

import json

import pytest

from challenge_builder.agents.protocol import AgentInvocation
from challenge_builder.orchestrator.errors import PlanningError
from challenge_builder.orchestrator.planning import (
    RevisionPlanner,
    build_planner_variables,
    validate_plan_references,
)
from challenge_builder.orchestrator.schemas import RevisionPlan


class MockInvoker:
    """Returns a canned response (or raises) for every call."""

    def __init__(self, response):
        self.response = response
        self.calls = []

    async def invoke(self, agent_slug, interaction_type, variables, *, temperature=None, max_output_tokens=None):
        self.calls.append(
            {
                "slug": agent_slug,
                "interaction": interaction_type,
                "variables": variables,
                "temperature": temperature,
                "max_output_tokens": max_output_tokens,
            }
        )
        if isinstance(self.response, Exception):
            raise self.response
        return AgentInvocation(content=self.response, log_id="log-1", agent_id=agent_slug)


def _update(challenge_id, insight_ids=(), priority="high"):
    return {
        "challengeId": challenge_id,
        "challengeTitle": f"Title {challenge_id}",
        "reason": "New evidence",
        "priority": priority,
        "estimatedChanges": "Sharpen description",
        "relatedInsightIds": list(insight_ids),
    }


def _creation(reference_id, parent_id=None, insight_ids=()):
    return {
        "referenceId": reference_id,
        "suggestedTitle": f"New {reference_id}",
        "reason": "Uncovered theme",
        "priority": "medium",
        "suggestedParentId": parent_id,
        "relatedInsightIds": list(insight_ids),
        "estimatedImpact": "high",
    }


def _plan(updates=(), creations=(), no_change=()):
    return {
        "summary": "Two challenges need work",
        "globalRecommendations": "Focus on setup",
        "updates": list(updates),
        "creations": list(creations),
        "noChangeNeeded": list(no_change),
    }


def test_unknown_update_is_dropped(project_context):
    plan = RevisionPlan.model_validate(_plan(updates=[_update("ghost"), _update("c2")]))

    validated = validate_plan_references(plan, project_context)

    assert [u.challenge_id for u in validated.plan.updates] == ["c2"]
    assert len(validated.warnings) == 1
    warning = validated.warnings[0]
    assert warning.directive_kind == "update"
    assert warning.directive_id == "ghost"
    assert "not found" in warning.message


def test_duplicate_claims_keep_first(project_context):
    plan = RevisionPlan.model_validate(
        _plan(
            updates=[_update("c1"), _update("c1", priority="low")],
            no_change=[{"challengeId": "c1", "challengeTitle": "T", "reason": "fine"}],
        )
    )

    validated = validate_plan_references(plan, project_context)

    assert len(validated.plan.updates) == 1
    assert validated.plan.updates[0].priority == "high"
    assert validated.plan.no_change_needed == []
    assert [w.directive_kind for w in validated.warnings] == ["update", "no_change"]


def test_creation_with_unknown_parent_is_dropped(project_context):
    plan = RevisionPlan.model_validate(
        _plan(creations=[_creation("new-1", parent_id="ghost"), _creation("new-2", parent_id="c1")])
    )

    validated = validate_plan_references(plan, project_context)

    assert [c.reference_id for c in validated.plan.creations] == ["new-2"]
    assert validated.warnings[0].directive_id == "new-1"


def test_duplicate_reference_ids_keep_first(project_context):
    plan = RevisionPlan.model_validate(_plan(creations=[_creation("new-1"), _creation("new-1")]))

    validated = validate_plan_references(plan, project_context)

    assert len(validated.plan.creations) == 1
    assert validated.warnings[0].message == "Duplicate reference id; creation dropped"


def test_unknown_insights_are_pruned(project_context):
    plan = RevisionPlan.model_validate(
        _plan(updates=[_update("c1", insight_ids=["i1", "nope", "i1"])])
    )

    validated = validate_plan_references(plan, project_context)

    assert validated.plan.updates[0].related_insight_ids == ["i1"]
    assert validated.warnings[0].message == "Pruned unknown insight ids: nope"


def test_validation_does_not_mutate_input(project_context):
    plan = RevisionPlan.model_validate(_plan(updates=[_update("ghost")]))

    validate_plan_references(plan, project_context)

    assert len(plan.updates) == 1


def test_planner_variables(project_context):
    variables = build_planner_variables(project_context)

    assert variables["project_name"] == "Customer Onboarding"
    context = json.loads(variables["challenge_context_json"])
    assert [c["id"] for c in context["existingChallenges"]] == ["c1", "c2", "c3"]


@pytest.mark.asyncio
async def test_plan_drops_unknown_challenge():
    from challenge_builder.backlog.context import ProjectContext
    from challenge_builder.backlog.models import ProjectRows

    rows = ProjectRows.model_validate(
        {
            "project": {"id": "p", "name": "P"},
            "challenges": [{"id": "c2", "name": "Only challenge"}],
        }
    )
    context = ProjectContext.from_rows(rows)
    invoker = MockInvoker(json.dumps(_plan(updates=[_update("c1"), _update("c2")])))
    planner = RevisionPlanner(invoker, agent_slug="planner-x")

    result = await planner.plan(context, temperature=0.3, max_output_tokens=500)

    assert [u.challenge_id for u in result.plan.updates] == ["c2"]
    assert result.warnings[0].directive_id == "c1"
    assert invoker.calls[0]["slug"] == "planner-x"
    assert invoker.calls[0]["temperature"] == 0.3
    assert invoker.calls[0]["max_output_tokens"] == 500


@pytest.mark.asyncio
async def test_plan_decode_failure_raises_planning_error(project_context):
    planner = RevisionPlanner(MockInvoker("Sorry, I cannot help with that."))

    with pytest.raises(PlanningError) as exc_info:
        await planner.plan(project_context)

    assert exc_info.value.kind == "decode"


@pytest.mark.asyncio
async def test_plan_schema_failure_raises_planning_error(project_context):
    planner = RevisionPlanner(MockInvoker('{"summary": "only a summary"}'))

    with pytest.raises(PlanningError) as exc_info:
        await planner.plan(project_context)

    assert exc_info.value.kind == "schema"


@pytest.mark.asyncio
async def test_plan_invocation_failure_raises_planning_error(project_context):
    planner = RevisionPlanner(MockInvoker(RuntimeError("model unavailable")))

    with pytest.raises(PlanningError) as exc_info:
        await planner.plan(project_context)

    assert exc_info.value.kind == "invocation"
    assert "model unavailable" in str(exc_info.value)
