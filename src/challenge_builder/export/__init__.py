"""Export functionality for builder reports."""

from .markdown import render_report_markdown

__all__ = ["render_report_markdown"]
