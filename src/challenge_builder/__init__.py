"""
Challenge Builder - Plans and drafts backlog challenge revisions from collected insights.

A planner agent reviews a project's challenge hierarchy against its insights
and decides which challenges to update and which to create. One agent call
per directive then drafts the detailed suggestion, and the results are
assembled into a single report with per-directive errors.

Example:
    import asyncio
    from pathlib import Path
    from challenge_builder import ChallengeBuilder, JsonDirectorySource
    from challenge_builder.agents.factory import create_agent_service
    from challenge_builder.config import load_config

    async def main():
        config = load_config(Path("challenge-builder.toml"))
        builder = ChallengeBuilder.from_config(
            config,
            source=JsonDirectorySource(config.storage.data_dir),
            invoker=create_agent_service(config),
        )
        report = await builder.run("proj-1")
        print(report.plan_summary)

    asyncio.run(main())
"""

__version__ = "0.1.0"

# Core exports
from .backlog import JsonDirectorySource, ProjectContext, ProjectNotFoundError
from .orchestrator import ChallengeBuilder, ChallengeBuilderReport, PlanningError, RunOptions

__all__ = [
    "__version__",
    "ChallengeBuilder",
    "ChallengeBuilderReport",
    "JsonDirectorySource",
    "PlanningError",
    "ProjectContext",
    "ProjectNotFoundError",
    "RunOptions",
]
