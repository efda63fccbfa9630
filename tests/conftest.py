"""Shared fixtures: a small project with a two-level challenge hierarchy."""

import pytest

from challenge_builder.backlog.context import ProjectContext
from challenge_builder.backlog.models import ProjectRows


def sample_rows_data() -> dict:
    return {
        "project": {
            "id": "proj-1",
            "name": "Customer Onboarding",
            "goal": "Halve time-to-value for new accounts",
            "status": "active",
            "start_date": "2025-01-06",
            "end_date": "2025-06-30",
        },
        "challenges": [
            {
                "id": "c1",
                "name": "Slow onboarding",
                "description": "New accounts take weeks to go live",
                "status": "open",
                "priority": "high",
                "assigned_to": "u1",
            },
            {
                "id": "c2",
                "name": "Manual data entry",
                "status": "in_progress",
                "priority": "medium",
                "parent_challenge_id": "c1",
            },
            {"id": "c3", "name": "Churn after trial", "priority": "Critical"},
        ],
        "insights": [
            {
                "id": "i1",
                "ask_session_id": "a1",
                "summary": "Users drop during setup",
                "content": "Three interviewees abandoned the CSV import step",
                "insight_type": "pain",
            },
            {
                "id": "i2",
                "ask_session_id": "a1",
                "content": "Sales re-keys contract data into the CRM",
                "insight_type": "signal",
                "status": "implemented",
            },
            {"id": "i3", "summary": "Trial users want a guided tour", "insight_type": "idea"},
        ],
        "challenge_insights": [
            {"challenge_id": "c1", "insight_id": "i1"},
            {"challenge_id": "c2", "insight_id": "i2"},
            {"challenge_id": "c2", "insight_id": "missing"},
        ],
        "asks": [
            {"id": "a1", "name": "Onboarding interviews", "question": "Where do you get stuck?"},
        ],
        "owners": [
            {"id": "u1", "full_name": "Alice Martin", "role": "PM"},
            {"id": "u2", "email": "bob@example.com", "role": "Engineer"},
        ],
    }


@pytest.fixture
def rows_data() -> dict:
    return sample_rows_data()


@pytest.fixture
def project_rows(rows_data) -> ProjectRows:
    return ProjectRows.model_validate(rows_data)


@pytest.fixture
def project_context(project_rows) -> ProjectContext:
    return ProjectContext.from_rows(project_rows)
