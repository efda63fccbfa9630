"""
API endpoints for the challenge builder.

Provides REST endpoints for:
- Builder runs (POST /api/projects/{project_id}/challenge-builder)
- Stored results (GET/POST /api/projects/{project_id}/challenge-builder/results)
"""
