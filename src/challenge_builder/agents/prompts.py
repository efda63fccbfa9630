"""
Agent definitions and prompt templates.

Provides:
- AgentDefinition: a named prompt configuration addressed by slug
- render_template(): `{{variable}}` substitution used by every agent
- DEFAULT_AGENTS: built-in planner, updater and creator definitions
"""

import logging
import re
from typing import Any

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

PLANNER_SLUG = "challenge-revision-planner"
UPDATER_SLUG = "challenge-detailed-updater"
CREATOR_SLUG = "challenge-detailed-creator"

PLANNING_INTERACTION = "project_challenge_planning"
UPDATE_INTERACTION = "project_challenge_update_detailed"
CREATION_INTERACTION = "project_challenge_creation_detailed"

_PLACEHOLDER = re.compile(r"\{\{\s*([\w.]+)\s*\}\}")


class AgentDefinition(BaseModel):
    """Prompt configuration for one agent."""

    slug: str = Field(..., min_length=1)
    name: str
    description: str = ""
    system_prompt: str
    user_prompt: str
    available_variables: list[str] = Field(default_factory=list)
    temperature: float | None = Field(None, ge=0, le=2)
    max_output_tokens: int | None = Field(None, gt=0)


def _stringify(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def render_template(template: str, variables: dict[str, Any]) -> str:
    """
    Substitute `{{name}}` placeholders.

    Missing and None variables render as empty strings. Whitespace inside the
    braces is ignored and names may contain dots and underscores.
    """
    if not template:
        return ""
    return _PLACEHOLDER.sub(lambda m: _stringify(variables.get(m.group(1))), template)


def extract_template_variables(template: str) -> list[str]:
    """Placeholder names in order of first appearance."""
    names: list[str] = []
    for match in _PLACEHOLDER.finditer(template or ""):
        if match.group(1) not in names:
            names.append(match.group(1))
    return names


PLANNER_SYSTEM_PROMPT = """You are the "Challenge Revision Planner". You review a whole project \
(existing challenges and the insights collected in conversations) and decide which challenges \
need revision and which new challenges should be created.

## Decision criteria

Recommend an UPDATE when a challenge received significant new insights, when its impact or \
status should change, when sub-challenges or owners need work.

Recommend a CREATION when several insights not covered by any challenge converge on the same \
theme, when a recurring pattern appears across conversations, or when a high/critical theme is \
not addressed. Suggest a parent only when it is one of the existing challenges.

Mark a challenge as noChangeNeeded when it is already aligned with the current insights.

## Output format

Answer with JSON only:

{
  "summary": "2-3 sentence analysis of the project",
  "globalRecommendations": "optional strategic recommendations",
  "updates": [
    {
      "challengeId": "existing challenge id",
      "challengeTitle": "current title",
      "reason": "why the update is needed",
      "priority": "low|medium|high|critical",
      "estimatedChanges": "description|status|impact|sub-challenges|owners|foundation-insights",
      "newInsightsCount": 5,
      "relatedInsightIds": ["insight id"]
    }
  ],
  "creations": [
    {
      "referenceId": "new-challenge-1",
      "suggestedTitle": "proposed title",
      "reason": "why the challenge should exist",
      "priority": "low|medium|high|critical",
      "suggestedParentId": "existing challenge id or null",
      "relatedInsightIds": ["insight id"],
      "keyThemes": ["theme"],
      "estimatedImpact": "low|medium|high|critical"
    }
  ],
  "noChangeNeeded": [
    {"challengeId": "existing challenge id", "challengeTitle": "title", "reason": "why"}
  ]
}

## Constraints

- Every challengeId, suggestedParentId and insight id must come from the supplied data.
- A challenge appears in at most one list.
- Return empty lists when nothing needs to change."""

PLANNER_USER_PROMPT = """## Project

Project: {{project_name}}
Goal: {{project_goal}}
Status: {{project_status}}
Timeframe: {{project_timeframe}}

## Full context

{{challenge_context_json}}

Produce the revision plan as JSON."""

UPDATER_SYSTEM_PROMPT = """You are the "Challenge Detailed Updater". You produce a detailed update \
suggestion for ONE challenge based on its linked insights, its current fields, its \
sub-challenges and the related conversations.

Identify 3 to 10 foundation insights: the insights that justify the challenge or its main \
orientation. Propose field changes only when they add value. Owners must be picked from the \
available owners.

## Output format

Answer with JSON only:

{
  "challengeId": "{{challenge_id}}",
  "summary": "2-4 sentence summary of the recommended changes",
  "foundationInsights": [
    {"insightId": "insight id", "reason": "why it is foundational", "priority": "low|medium|high|critical"}
  ],
  "updates": {
    "title": "new title or null",
    "description": "new description or null",
    "status": "open|in_progress|active|closed|archived or null",
    "impact": "low|medium|high|critical or null",
    "owners": [{"id": "owner id", "name": "full name", "role": "role"}]
  },
  "subChallenges": {
    "update": [
      {"id": "sub-challenge id", "title": "...", "description": "...", "status": "...", "impact": "...", "summary": "..."}
    ],
    "create": [
      {"referenceId": "new-sub-1", "parentId": "{{challenge_id}}", "title": "...", "description": "...",
       "status": "open", "impact": "medium", "owners": [], "summary": "...", "foundationInsights": []}
    ]
  },
  "errors": []
}"""

UPDATER_USER_PROMPT = """## Project

Project: {{project_name}}
Goal: {{project_goal}}
Status: {{project_status}}

## Challenge to review

Challenge ID: {{challenge_id}}
Challenge: {{challenge_title}}
Current status: {{challenge_status}}
Current impact: {{challenge_impact}}

## Full context

{{challenge_context_json}}

## Available owners

{{available_owner_options_json}}

## Planner hint

Estimated changes: {{estimated_changes}}
Priority: {{priority}}
Reason: {{reason}}

Produce the update suggestion as JSON."""

CREATOR_SYSTEM_PROMPT = """You are the "Challenge Detailed Creator". You turn a creation decision \
from the planner into a complete, actionable challenge.

Write a clear title and a detailed description (at least 3 sentences), pick an impact that \
reflects the insights, identify 5 to 15 foundation insights, and suggest owners from the \
available owners when the insights allow it. New challenges start with status "open".

## Output format

Answer with JSON only:

{
  "summary": "2-3 sentence summary of the recommendation",
  "newChallenges": [
    {
      "referenceId": "{{reference_id}}",
      "parentId": "existing challenge id or null",
      "title": "clear, actionable title",
      "description": "detailed description",
      "status": "open",
      "impact": "low|medium|high|critical",
      "owners": [{"id": "owner id", "name": "full name", "role": "role"}],
      "summary": "why this challenge should be created",
      "foundationInsights": [
        {"insightId": "insight id", "reason": "how it justifies the challenge", "priority": "low|medium|high|critical"}
      ]
    }
  ]
}"""

CREATOR_USER_PROMPT = """## Project

Project: {{project_name}}
Goal: {{project_goal}}
Status: {{project_status}}

## Challenge to create

Reference ID: {{reference_id}}
Suggested title: {{suggested_title}}
Suggested parent: {{suggested_parent_id}}
Estimated impact: {{estimated_impact}}
Reason: {{reason}}
Key themes: {{key_themes}}

## Related insights

{{related_insights_json}}

## Project context

{{project_context_json}}

## Available owners

{{available_owner_options_json}}

Produce the new challenge as JSON."""


DEFAULT_AGENTS: dict[str, AgentDefinition] = {
    PLANNER_SLUG: AgentDefinition(
        slug=PLANNER_SLUG,
        name="Challenge Revision Planner",
        description="Decides which challenges need updates and which new challenges to create",
        system_prompt=PLANNER_SYSTEM_PROMPT,
        user_prompt=PLANNER_USER_PROMPT,
        available_variables=[
            "project_name",
            "project_goal",
            "project_status",
            "project_timeframe",
            "challenge_context_json",
        ],
    ),
    UPDATER_SLUG: AgentDefinition(
        slug=UPDATER_SLUG,
        name="Challenge Detailed Updater",
        description="Produces a detailed update suggestion for one challenge",
        system_prompt=UPDATER_SYSTEM_PROMPT,
        user_prompt=UPDATER_USER_PROMPT,
        available_variables=[
            "project_name",
            "project_goal",
            "project_status",
            "challenge_id",
            "challenge_title",
            "challenge_status",
            "challenge_impact",
            "challenge_context_json",
            "available_owner_options_json",
            "estimated_changes",
            "priority",
            "reason",
        ],
    ),
    CREATOR_SLUG: AgentDefinition(
        slug=CREATOR_SLUG,
        name="Challenge Detailed Creator",
        description="Turns a creation directive into a complete new challenge",
        system_prompt=CREATOR_SYSTEM_PROMPT,
        user_prompt=CREATOR_USER_PROMPT,
        available_variables=[
            "project_name",
            "project_goal",
            "project_status",
            "reference_id",
            "suggested_title",
            "suggested_parent_id",
            "estimated_impact",
            "reason",
            "key_themes",
            "related_insights_json",
            "project_context_json",
            "available_owner_options_json",
        ],
    ),
}
