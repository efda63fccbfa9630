"""Agent invocation layer: protocols, prompt templates and model clients."""

from .prompts import AgentDefinition, render_template
from .protocol import AgentInvocation, AgentInvoker, Completion, ModelClient
from .service import TemplateAgentService, UnknownAgentError

__all__ = [
    "AgentDefinition",
    "AgentInvocation",
    "AgentInvoker",
    "Completion",
    "ModelClient",
    "TemplateAgentService",
    "UnknownAgentError",
    "render_template",
]
