"""
Tests for mapping agent responses to report suggestions.

These tests verify:
- Status and impact normalisation
- Owner resolution against the roster
- Foundation insight title fallback
- Update and creation mapping fallbacks
- Report assembly
"""

import pytest

from challenge_builder.agents.protocol import AgentInvocation
from challenge_builder.backlog.models import OwnerOption
from challenge_builder.orchestrator.errors import ExecutionError, ReferentialFailure
from challenge_builder.orchestrator.mapping import (
    assemble_report,
    map_detailed_creation,
    map_detailed_update,
    map_foundation_insights,
    normalise_impact,
    normalise_status,
    resolve_owners,
)
from challenge_builder.orchestrator.planning import PlanWarning
from challenge_builder.orchestrator.schemas import (
    DetailedCreation,
    DetailedUpdate,
    FoundationInsight,
    OwnerSuggestion,
    PlanCreation,
    PlanUpdate,
    RevisionPlan,
)


@pytest.fixture
def invocation():
    return AgentInvocation(
        content='{"raw": true}',
        log_id="log-42",
        agent_id="challenge-detailed-updater",
        model_id="mock-model",
    )


@pytest.fixture
def update_directive():
    return PlanUpdate(
        challenge_id="c1",
        challenge_title="Slow onboarding",
        reason="Setup drop-off confirmed in interviews",
        priority="high",
        estimated_changes="Narrow scope",
        related_insight_ids=["i1"],
    )


@pytest.fixture
def creation_directive():
    return PlanCreation(
        reference_id="new-1",
        suggested_title="Guided tour",
        reason="Trial users ask for guidance",
        priority="medium",
        suggested_parent_id="c3",
        related_insight_ids=["i3"],
        estimated_impact="high",
    )


def test_normalise_status():
    assert normalise_status("In Progress") == "in_progress"
    assert normalise_status("in-progress") == "in_progress"
    assert normalise_status("Closed") == "closed"
    assert normalise_status("blocked") is None
    assert normalise_status(None) is None


def test_normalise_impact():
    assert normalise_impact(" HIGH ") == "high"
    assert normalise_impact("severe") is None


def test_resolve_owners_by_id_and_name():
    roster = [OwnerOption(id="u1", name="Alice Martin", role="PM"), OwnerOption(id="u2", name="Bob")]
    suggestions = [
        OwnerSuggestion(id="u2", name="Robert"),
        OwnerSuggestion(name="alice martin"),
        OwnerSuggestion(name="Carol", role="Designer"),
        OwnerSuggestion(name="Alice Martin"),
    ]

    owners = resolve_owners(suggestions, roster)

    assert [(o.id, o.resolved) for o in owners] == [("u2", True), ("u1", True), ("Carol", False)]
    assert owners[0].name == "Bob"
    assert owners[1].role == "PM"
    assert owners[2].role == "Designer"


def test_foundation_title_falls_back_to_evidence(project_context):
    insights = [
        FoundationInsight(insight_id="i1", reason="Primary signal", priority="high"),
        FoundationInsight(insight_id="zzz", reason="Unknown", priority="low"),
        FoundationInsight(insight_id="i3", title="Custom title", reason="Idea", priority="medium"),
    ]

    mapped = map_foundation_insights(insights, project_context)

    assert [m.title for m in mapped] == ["Users drop during setup", "zzz", "Custom title"]


def test_map_detailed_update(project_context, update_directive, invocation):
    response = DetailedUpdate.model_validate(
        {
            "challengeId": "c1",
            "summary": "Focus on the import step",
            "foundationInsights": [{"insightId": "i1", "reason": "Drop-off", "priority": "high"}],
            "updates": {
                "title": "Slow self-serve onboarding",
                "status": "In Progress",
                "impact": "CRITICAL",
                "owners": [{"name": "alice martin"}],
            },
            "subChallenges": {
                "update": [{"id": "c2", "status": "closed", "summary": "Automated"}],
                "create": [{"title": "Import wizard", "impact": "medium"}],
            },
        }
    )
    challenge = project_context.hierarchy.get("c1")

    suggestion = map_detailed_update(response, update_directive, challenge, project_context, invocation)

    assert suggestion.challenge_id == "c1"
    assert suggestion.challenge_title == "Slow onboarding"
    assert suggestion.summary == "Focus on the import step"
    assert suggestion.updates.status == "in_progress"
    assert suggestion.updates.impact == "critical"
    assert suggestion.updates.owners[0].id == "u1"
    assert suggestion.sub_challenge_updates[0].status == "closed"
    assert suggestion.new_sub_challenges[0].parent_id == "c1"
    assert suggestion.foundation_insights[0].title == "Users drop during setup"
    assert suggestion.agent_metadata.log_id == "log-42"
    assert suggestion.raw_response == '{"raw": true}'
    assert suggestion.errors is None


def test_update_targets_directive_challenge(project_context, update_directive, invocation):
    response = DetailedUpdate.model_validate({"challengeId": "c9"})
    challenge = project_context.hierarchy.get("c1")

    suggestion = map_detailed_update(response, update_directive, challenge, project_context, invocation)

    assert suggestion.challenge_id == "c1"
    assert suggestion.summary == update_directive.reason
    assert suggestion.updates is None


def test_map_detailed_creation_fallbacks(project_context, creation_directive, invocation):
    response = DetailedCreation.model_validate(
        {
            "newChallenges": [
                {"title": "Guided product tour", "description": "In-app walkthrough"},
                {"title": "Tour analytics", "referenceId": "new-1b", "parentId": "c1", "impact": "low"},
            ]
        }
    )

    suggestions = map_detailed_creation(response, creation_directive, project_context, invocation)

    first, second = suggestions
    assert first.reference_id == "new-1"
    assert first.parent_id == "c3"
    assert first.impact == "high"
    assert first.summary == creation_directive.reason
    assert first.agent_metadata.agent_id == "challenge-detailed-updater"
    assert second.reference_id == "new-1b"
    assert second.parent_id == "c1"
    assert second.impact == "low"


def test_empty_creation_response(project_context, creation_directive, invocation):
    suggestions = map_detailed_creation(DetailedCreation(), creation_directive, project_context, invocation)

    assert suggestions == []


def test_assemble_report():
    plan = RevisionPlan(summary="Plan", updates=[], creations=[], no_change_needed=[])
    warning = PlanWarning(directive_kind="update", directive_id="ghost", message="dropped")

    clean = assemble_report(plan, [], [], [])
    with_errors = assemble_report(
        plan,
        [],
        [],
        [ExecutionError.from_exception(ReferentialFailure("challenge", "c9"), "c9", "update")],
        warnings=[warning],
    )

    assert clean.errors is None
    assert clean.plan_summary == "Plan"
    assert with_errors.errors[0].failure == "referential"
    assert with_errors.errors[0].message == "Challenge c9 not found"
    assert with_errors.warnings == [warning]


def test_report_serializes_camel_case():
    plan = RevisionPlan(summary="Plan", updates=[], creations=[], no_change_needed=[])

    payload = assemble_report(plan, [], [], []).model_dump(by_alias=True)

    assert set(payload) >= {"challengeSuggestions", "newChallengeSuggestions", "planSummary", "errors"}
