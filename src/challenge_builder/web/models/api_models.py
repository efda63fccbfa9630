"""
Pydantic models for API requests and responses.

Bodies are camelCase on the wire, like the report itself.
"""

from datetime import datetime
from typing import Literal

from pydantic import Field

from ...backlog.models import CamelModel
from ...orchestrator.core import AgentOverrides, RunOptions
from ...orchestrator.errors import FailureKind
from ...orchestrator.mapping import ChallengeBuilderReport


class AgentOverridesRequest(CamelModel):
    planner: str | None = Field(default=None, min_length=1)
    updater: str | None = Field(default=None, min_length=1)
    creator: str | None = Field(default=None, min_length=1)


class ChallengeBuilderRequest(CamelModel):
    """Options for one builder run; every field is optional."""

    agents: AgentOverridesRequest = Field(default_factory=AgentOverridesRequest)
    temperature: float | None = Field(default=None, ge=0.0, le=2.0)
    max_output_tokens: int | None = Field(default=None, gt=0)

    def to_run_options(self) -> RunOptions:
        return RunOptions(
            agents=AgentOverrides(
                planner=self.agents.planner,
                updater=self.agents.updater,
                creator=self.agents.creator,
            ),
            temperature=self.temperature,
            max_output_tokens=self.max_output_tokens,
        )


class ChallengeBuilderResponse(CamelModel):
    """Successful run; per-item failures travel inside data.errors."""

    success: Literal[True] = True
    data: ChallengeBuilderReport


class PlanningFailureDetail(CamelModel):
    """HTTP 500 detail when planning fails."""

    message: str
    failure: FailureKind


class SaveResultsRequest(CamelModel):
    report: ChallengeBuilderReport


class StoredResultsResponse(CamelModel):
    """Last stored report; report and lastRunAt are null when nothing was saved."""

    project_id: str
    report: ChallengeBuilderReport | None = None
    last_run_at: datetime | None = None
