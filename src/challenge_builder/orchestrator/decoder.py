"""
Structured output decoder for agent responses.

Turns raw agent text into a schema-validated pydantic model, or a typed
failure. Decoding never raises for bad input:

1. Extract a JSON object candidate (fenced block, balanced braces, greedy match)
2. Build parse attempts by running each text transform on the candidate
   independently (not cumulatively), dropping byte-identical duplicates
3. Parse attempts in order with json.loads; the first JSON object wins
4. Validate the object against the expected schema

Known limitations: brace counting does not skip braces inside string literals,
and bare keys are quoted before single-quoted values, so a single-quoted value
containing ", word:" gets quotes inserted around "word".
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Generic, Literal, TypeVar

from json_repair import repair_json
from pydantic import BaseModel, ValidationError

from .errors import ChallengeBuilderError, DecodeFailure, SchemaFailure

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

DecodeStage = Literal["extraction", "parse", "schema"]

_CONTROL_CHARS = re.compile("[\u0000-\u001f\u007f-\u009f]")
_WHITESPACE = re.compile(r"\s+")
_SMART_DOUBLE_QUOTES = re.compile("[“”]")
_SMART_SINGLE_QUOTES = re.compile("[‘’]")
_SINGLE_QUOTED_KEY = re.compile(r"([{,]\s*)'([^']*?)'\s*:")
_BARE_KEY = re.compile(r"([{,]\s*)([A-Za-z_$][\w$-]*)\s*:")
_SINGLE_QUOTED_VALUE = re.compile(r":\s*'([^']*?)'(\s*[},\]])")
_TRAILING_COMMA = re.compile(r",(\s*[}\]])")
_MISSING_COMMA = re.compile(r"([}\]])(\s*)([{\[])")
_GREEDY_OBJECT = re.compile(r"\{[\s\S]*\}")


@dataclass(frozen=True)
class ParseAttempt:
    """One candidate text handed to the JSON parser."""

    strategy: str
    text: str


@dataclass(frozen=True)
class Decoded(Generic[T]):
    """Successful decode."""

    value: T
    strategy: str

    ok: Literal[True] = True


@dataclass(frozen=True)
class DecodeFailed:
    """Failed decode with the stage that could not recover."""

    context: str
    stage: DecodeStage
    error: str
    attempts: tuple[str, ...] = field(default_factory=tuple)

    ok: Literal[False] = False

    def to_exception(self) -> ChallengeBuilderError:
        if self.stage == "schema":
            attempt = self.attempts[-1] if self.attempts else None
            return SchemaFailure(self.context, self.error, attempt=attempt)
        return DecodeFailure(self.context, self.stage, self.error, attempts=list(self.attempts))


DecodeResult = Decoded[T] | DecodeFailed


# Candidate extraction


def _normalise(text: str) -> str:
    return text.lstrip("﻿").strip()


def _balanced_object(text: str, start: int) -> str | None:
    depth = 0
    for index in range(start, len(text)):
        char = text[index]
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return text[start : index + 1]
    return None


def extract_json_candidate(raw: str) -> str | None:
    """
    Locate the JSON object in agent text.

    Returns:
        Candidate text, or None for empty input
    """
    trimmed = _normalise(raw)
    if not trimmed:
        return None

    if trimmed.startswith("```"):
        lines = trimmed.splitlines()
        # Stop at the closing fence so trailing prose is never part of the candidate
        closing = next((i for i in range(1, len(lines)) if lines[i].strip().startswith("```")), len(lines))
        start = next((i for i in range(closing) if lines[i].strip().startswith("{")), -1)
        end = next(
            (i for i in range(closing - 1, -1, -1) if lines[i].strip().endswith("}")),
            -1,
        )
        if start >= 0 and end >= start:
            return "\n".join(lines[start : end + 1])

    first_brace = trimmed.find("{")
    if first_brace == -1:
        return trimmed

    balanced = _balanced_object(trimmed, first_brace)
    if balanced is not None:
        return balanced

    greedy = _GREEDY_OBJECT.search(trimmed)
    if greedy:
        return greedy.group(0)

    # Opening brace without any closing one; let the repair passes try
    return trimmed[first_brace:]


# Text transforms


def keep_raw(text: str) -> str:
    return text


def strip_control_characters(text: str) -> str:
    return _CONTROL_CHARS.sub("", text)


def collapse_whitespace(text: str) -> str:
    return _WHITESPACE.sub(" ", text)


def _double_quote_value(match: re.Match[str]) -> str:
    value = match.group(1).replace('"', '\\"')
    return f': "{value}"{match.group(2)}'


def rule_based_cleanup(text: str) -> str:
    """
    Fix the usual model mistakes with regular expressions.

    Normalises smart quotes, quotes single-quoted and bare keys, turns
    single-quoted values into double-quoted ones, removes trailing commas and
    inserts missing commas between adjacent objects/arrays.
    """
    cleaned = _SMART_DOUBLE_QUOTES.sub('"', text)
    cleaned = _SMART_SINGLE_QUOTES.sub("'", cleaned)
    cleaned = _SINGLE_QUOTED_KEY.sub(r'\1"\2":', cleaned)
    cleaned = _BARE_KEY.sub(r'\1"\2":', cleaned)
    cleaned = _SINGLE_QUOTED_VALUE.sub(_double_quote_value, cleaned)
    cleaned = _TRAILING_COMMA.sub(r"\1", cleaned)
    cleaned = _MISSING_COMMA.sub(r"\1,\2\3", cleaned)
    return cleaned


def structural_repair(text: str) -> str | None:
    """Run the json-repair library; None if it gives up."""
    try:
        repaired = repair_json(text)
    except Exception as e:  # json-repair raises assorted errors on hostile input
        logger.debug(f"Structural repair failed: {e}")
        return None
    return repaired if isinstance(repaired, str) else None


def structural_repair_after_cleanup(text: str) -> str | None:
    return structural_repair(rule_based_cleanup(text))


PARSE_STRATEGIES: tuple[tuple[str, Callable[[str], str | None]], ...] = (
    ("raw", keep_raw),
    ("strip_control_characters", strip_control_characters),
    ("collapse_whitespace", collapse_whitespace),
    ("rule_based_cleanup", rule_based_cleanup),
    ("structural_repair", structural_repair),
    ("structural_repair_after_cleanup", structural_repair_after_cleanup),
)


def build_parse_attempts(candidate: str) -> list[ParseAttempt]:
    """Apply every strategy to the candidate, keeping the first of any duplicates."""
    attempts: list[ParseAttempt] = []
    seen: set[str] = set()

    for name, transform in PARSE_STRATEGIES:
        transformed = transform(candidate)
        if not transformed:
            continue
        normalised = _normalise(transformed)
        if not normalised or normalised in seen:
            continue
        seen.add(normalised)
        attempts.append(ParseAttempt(strategy=name, text=normalised))

    return attempts


def _parse_first_object(
    attempts: list[ParseAttempt],
) -> tuple[dict[str, Any] | None, str | None, str]:
    """Return (object, strategy, last_error) for the first attempt that parses to an object."""
    last_error = "no parse attempts"
    for attempt in attempts:
        try:
            parsed = json.loads(attempt.text)
        except json.JSONDecodeError as e:
            last_error = str(e)
            continue
        if not isinstance(parsed, dict):
            last_error = f"expected a JSON object, got {type(parsed).__name__}"
            continue
        return parsed, attempt.strategy, last_error
    return None, None, last_error


def _describe_validation_error(error: ValidationError) -> str:
    parts = []
    for item in error.errors()[:5]:
        location = ".".join(str(part) for part in item["loc"]) or "<root>"
        parts.append(f"{location}: {item['msg']}")
    remaining = error.error_count() - len(parts)
    if remaining > 0:
        parts.append(f"... and {remaining} more")
    return "; ".join(parts)


def decode(text: str, schema: type[T], context: str = "agent") -> DecodeResult[T]:
    """
    Decode agent text into an instance of `schema`.

    Args:
        text: Raw agent response
        schema: Pydantic model the response must match
        context: Label used in diagnostics (e.g. "planner")

    Returns:
        Decoded(value) or DecodeFailed(stage, error, attempts)
    """
    candidate = extract_json_candidate(text or "")
    if candidate is None:
        logger.warning(f"Empty {context} response")
        return DecodeFailed(context=context, stage="extraction", error="empty response")

    attempts = build_parse_attempts(candidate)
    tried = tuple(attempt.strategy for attempt in attempts)

    parsed, strategy, last_error = _parse_first_object(attempts)
    if parsed is None or strategy is None:
        logger.warning(
            f"Every parse attempt failed for {context} response "
            f"({', '.join(tried) or 'none'}): {last_error}"
        )
        return DecodeFailed(context=context, stage="parse", error=last_error, attempts=tried)

    if strategy != "raw":
        logger.debug(f"Recovered {context} response with {strategy}")

    try:
        value = schema.model_validate(parsed)
    except ValidationError as e:
        message = _describe_validation_error(e)
        logger.warning(f"{context} response failed {schema.__name__} validation: {message}")
        used = tried[: tried.index(strategy) + 1]
        return DecodeFailed(context=context, stage="schema", error=message, attempts=used)

    return Decoded(value=value, strategy=strategy)


def decode_or_raise(text: str, schema: type[T], context: str = "agent") -> T:
    """
    Decode agent text or raise.

    Raises:
        DecodeFailure: No attempt produced a JSON object
        SchemaFailure: The object did not match `schema`
    """
    result = decode(text, schema, context=context)
    if isinstance(result, DecodeFailed):
        raise result.to_exception()
    return result.value
