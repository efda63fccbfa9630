"""
Markdown export for builder reports.

Produces a human-readable review document with:
- Plan summary and recommendations
- Update suggestions with proposed field changes and foundation evidence
- New challenges
- Plan warnings and execution errors
"""

from datetime import datetime

from ..orchestrator.mapping import (
    ChallengeBuilderReport,
    ChallengeChanges,
    FoundationEvidence,
    NewChallengeSuggestion,
    ResolvedOwner,
    UpdateSuggestion,
)


def _format_owners(owners: list[ResolvedOwner]) -> str:
    parts = []
    for owner in owners:
        label = f"{owner.name} ({owner.role})" if owner.role else owner.name
        if not owner.resolved:
            label += " *(not in roster)*"
        parts.append(label)
    return ", ".join(parts)


def _format_evidence(items: list[FoundationEvidence], indent: str = "") -> list[str]:
    if not items:
        return []
    lines = [f"{indent}**Foundation insights:**\n"]
    for i, item in enumerate(items, 1):
        lines.append(f"{indent}{i}. **{item.title}** [{item.priority}]: {item.reason}\n")
    lines.append("\n")
    return lines


def _format_changes(changes: ChallengeChanges) -> list[str]:
    rows = [
        ("Title", changes.title),
        ("Description", changes.description),
        ("Status", changes.status),
        ("Impact", changes.impact),
        ("Owners", _format_owners(changes.owners) if changes.owners else None),
    ]
    rows = [(field, value) for field, value in rows if value]
    if not rows:
        return ["*No field changes proposed.*\n\n"]

    lines = ["| Field | Proposed |\n", "|---|---|\n"]
    for field, value in rows:
        cell = str(value).replace("\n", " ").replace("|", "\\|")
        lines.append(f"| {field} | {cell} |\n")
    lines.append("\n")
    return lines


def _format_new_challenge(suggestion: NewChallengeSuggestion, heading: str) -> list[str]:
    lines = [f"{heading} {suggestion.title}\n\n"]

    meta = []
    if suggestion.reference_id:
        meta.append(f"Ref: `{suggestion.reference_id}`")
    if suggestion.parent_id:
        meta.append(f"Parent: `{suggestion.parent_id}`")
    if suggestion.impact:
        meta.append(f"Impact: {suggestion.impact}")
    if suggestion.status:
        meta.append(f"Status: {suggestion.status}")
    if meta:
        lines.append(f"*{' | '.join(meta)}*\n\n")

    if suggestion.description:
        lines.append(f"{suggestion.description}\n\n")
    if suggestion.summary:
        lines.append(f"> {suggestion.summary}\n\n")
    if suggestion.owners:
        lines.append(f"**Owners:** {_format_owners(suggestion.owners)}\n\n")
    lines.extend(_format_evidence(suggestion.foundation_insights))
    return lines


def _format_update(suggestion: UpdateSuggestion) -> list[str]:
    lines = [f"### {suggestion.challenge_title} (`{suggestion.challenge_id}`)\n\n"]
    if suggestion.summary:
        lines.append(f"{suggestion.summary}\n\n")

    if suggestion.updates is not None:
        lines.extend(_format_changes(suggestion.updates))
    lines.extend(_format_evidence(suggestion.foundation_insights))

    if suggestion.sub_challenge_updates:
        lines.append("**Sub-challenge updates:**\n\n")
        for sub in suggestion.sub_challenge_updates:
            changed = [
                f"{name}: {value}"
                for name, value in (
                    ("title", sub.title),
                    ("status", sub.status),
                    ("impact", sub.impact),
                )
                if value
            ]
            detail = f" ({', '.join(changed)})" if changed else ""
            note = f": {sub.summary}" if sub.summary else ""
            lines.append(f"- `{sub.id}`{detail}{note}\n")
        lines.append("\n")

    for sub in suggestion.new_sub_challenges:
        lines.extend(_format_new_challenge(sub, "####"))

    if suggestion.errors:
        lines.append("**Agent-reported issues:**\n\n")
        for error in suggestion.errors:
            lines.append(f"- {error}\n")
        lines.append("\n")

    return lines


def render_report_markdown(
    report: ChallengeBuilderReport,
    project_name: str | None = None,
    generated_at: datetime | None = None,
) -> str:
    """
    Render a builder report as markdown.

    Args:
        report: Report to render
        project_name: Optional title suffix
        generated_at: Timestamp shown in the header (defaults to now)

    Returns:
        Markdown document
    """
    timestamp = (generated_at or datetime.now()).strftime("%Y-%m-%d %H:%M")
    title = f"Challenge Builder Report: {project_name}" if project_name else "Challenge Builder Report"

    lines = [f"# {title}\n\n", f"*Generated {timestamp}*\n\n"]

    error_count = len(report.errors or [])
    lines.append(
        f"**{len(report.challenge_suggestions)}** update suggestions | "
        f"**{len(report.new_challenge_suggestions)}** new challenges | "
        f"**{error_count}** errors | **{len(report.warnings)}** warnings\n\n"
    )

    if report.plan_summary:
        lines.append("## Plan Summary\n\n")
        lines.append(f"{report.plan_summary}\n\n")
    if report.global_recommendations:
        lines.append(f"**Recommendations:** {report.global_recommendations}\n\n")

    if report.challenge_suggestions:
        lines.append("## Challenge Updates\n\n")
        for suggestion in report.challenge_suggestions:
            lines.extend(_format_update(suggestion))

    if report.new_challenge_suggestions:
        lines.append("## New Challenges\n\n")
        for suggestion in report.new_challenge_suggestions:
            lines.extend(_format_new_challenge(suggestion, "###"))

    if report.warnings:
        lines.append("## Plan Warnings\n\n")
        for warning in report.warnings:
            lines.append(f"- {warning.directive_kind} `{warning.directive_id}`: {warning.message}\n")
        lines.append("\n")

    if report.errors:
        lines.append("## Errors\n\n")
        for error in report.errors:
            target = f"{error.directive_kind} `{error.directive_id}`" if error.directive_id else "run"
            lines.append(f"- {target} ({error.failure}): {error.message}\n")
        lines.append("\n")

    return "".join(lines)
