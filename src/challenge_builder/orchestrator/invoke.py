"""Single agent call with optional timeout; every failure becomes InvocationFailure."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from ..agents.protocol import AgentInvocation, AgentInvoker
from .errors import InvocationFailure

logger = logging.getLogger(__name__)


async def invoke_agent(
    invoker: AgentInvoker,
    agent_slug: str,
    interaction_type: str,
    variables: dict[str, Any],
    *,
    temperature: float | None = None,
    max_output_tokens: int | None = None,
    timeout: float | None = None,
) -> AgentInvocation:
    """
    Invoke an agent once.

    Args:
        timeout: Seconds before the call is abandoned (None or 0 disables)

    Raises:
        InvocationFailure: The call raised or timed out
    """
    call = invoker.invoke(
        agent_slug,
        interaction_type,
        variables,
        temperature=temperature,
        max_output_tokens=max_output_tokens,
    )
    try:
        if timeout:
            return await asyncio.wait_for(call, timeout)
        return await call
    except asyncio.TimeoutError as e:
        raise InvocationFailure(agent_slug, f"timed out after {timeout:g}s") from e
    except InvocationFailure:
        raise
    except Exception as e:
        raise InvocationFailure(agent_slug, str(e) or e.__class__.__name__) from e
