"""
Challenge builder REST API endpoints.

Provides:
- POST /api/projects/{project_id}/challenge-builder - Run the builder
- GET /api/projects/{project_id}/challenge-builder/results - Last stored report
- POST /api/projects/{project_id}/challenge-builder/results - Store a report
"""

import logging
from pathlib import Path
from typing import Annotated

from fastapi import APIRouter, Body, Depends, HTTPException

from ...backlog.source import ProjectNotFoundError
from ...orchestrator.errors import PlanningError
from ...storage import StoredResult
from ..models.api_models import (
    ChallengeBuilderRequest,
    ChallengeBuilderResponse,
    PlanningFailureDetail,
    SaveResultsRequest,
    StoredResultsResponse,
)
from ..services.builder_service import BuilderService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["challenge-builder"])

_builder_service: BuilderService | None = None


async def init_builder_service(config_path: Path) -> None:
    """Initialize builder service (called by server.py on startup)."""
    global _builder_service
    service = BuilderService.from_config_path(config_path)
    await service.initialize()
    _builder_service = service


async def shutdown_builder_service() -> None:
    """Shutdown builder service (called by server.py on shutdown)."""
    global _builder_service
    if _builder_service:
        await _builder_service.close()
        _builder_service = None


def get_builder_service() -> BuilderService:
    """Get initialized builder service dependency."""
    if _builder_service is None:
        raise HTTPException(status_code=500, detail="Builder service not initialized")
    return _builder_service


def _stored_response(project_id: str, stored: StoredResult | None) -> StoredResultsResponse:
    if stored is None:
        return StoredResultsResponse(project_id=project_id)
    return StoredResultsResponse(
        project_id=project_id,
        report=stored.report,
        last_run_at=stored.last_run_at,
    )


@router.post("/{project_id}/challenge-builder", response_model=ChallengeBuilderResponse)
async def run_challenge_builder(
    project_id: str,
    service: Annotated[BuilderService, Depends(get_builder_service)],
    request: Annotated[ChallengeBuilderRequest | None, Body()] = None,
) -> ChallengeBuilderResponse:
    """
    Run the challenge builder for a project.

    Request Body (optional):
        - agents: {planner, updater, creator} slug overrides
        - temperature: 0-2
        - maxOutputTokens: > 0

    Per-directive failures are returned in data.errors with a 200 status.
    A planning failure returns 500 with {message, failure}.
    """
    options = (request or ChallengeBuilderRequest()).to_run_options()
    try:
        report = await service.run(project_id, options)
    except ProjectNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except PlanningError as e:
        logger.error(f"Challenge builder planning failed for {project_id}: {e}")
        detail = PlanningFailureDetail(message=str(e), failure=e.kind)
        raise HTTPException(status_code=500, detail=detail.model_dump(by_alias=True)) from e
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Challenge builder failed for {project_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=500, detail={"message": str(e), "failure": "unexpected"}
        ) from e

    return ChallengeBuilderResponse(data=report)


@router.get("/{project_id}/challenge-builder/results", response_model=StoredResultsResponse)
async def get_challenge_builder_results(
    project_id: str,
    service: Annotated[BuilderService, Depends(get_builder_service)],
) -> StoredResultsResponse:
    """Get the last stored report for a project."""
    return _stored_response(project_id, await service.get_results(project_id))


@router.post("/{project_id}/challenge-builder/results", response_model=StoredResultsResponse)
async def save_challenge_builder_results(
    project_id: str,
    body: SaveResultsRequest,
    service: Annotated[BuilderService, Depends(get_builder_service)],
) -> StoredResultsResponse:
    """Store a report (e.g. after a reviewer discarded some suggestions)."""
    stored = await service.save_results(project_id, body.report)
    return _stored_response(project_id, stored)
