"""
Structured-Output Repair.

Recovers a StructuredItineraryPlan from a Gemini ``generateContent``
response. For each candidate, in order:

1. ``structured_call``: a ``functionCall`` part whose ``args`` is the plan.
2. ``malformed_call_repair``: the candidate finished with
   MALFORMED_FUNCTION_CALL and its finish message carries the arguments as
   ``summary=<X>, days=<Y>``; X and Y are spliced back into JSON.
3. ``lenient_text``: text parts decoded leniently (fences and prose removed,
   open strings and brackets closed, trailing characters dropped one at a
   time up to a fixed number of attempts).

Both REST (camelCase) and SDK-dump (snake_case) response shapes are read.
"""

import json
import logging
import re
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

from config.settings import settings
from models.itinerary import StructuredItineraryPlan

logger = logging.getLogger(__name__)

STAGE_STRUCTURED_CALL = "structured_call"
STAGE_MALFORMED_CALL_REPAIR = "malformed_call_repair"
STAGE_LENIENT_TEXT = "lenient_text"

MALFORMED_FUNCTION_CALL = "MALFORMED_FUNCTION_CALL"

_LEADING_FENCE = re.compile(r"^```(?:json)?", re.IGNORECASE)
_TRAILING_FENCE = re.compile(r"```$")
_NEWLINES = re.compile(r"[\r\n]+")

_decoder = json.JSONDecoder(strict=False)


class RecoveryExhausted(Exception):
    """No strategy could recover a plan from the model response."""


def _get(data: Any, camel: str, snake: str) -> Any:
    if not isinstance(data, dict):
        return None
    value = data.get(camel)
    return value if value is not None else data.get(snake)


# ----------------------------------------------------------------------
# Lenient JSON decoding
# ----------------------------------------------------------------------

def strip_wrappers(text: str) -> str:
    """Remove code fences and newlines, and any prose before the first ``{``."""
    buffer = _LEADING_FENCE.sub("", text.strip())
    buffer = _TRAILING_FENCE.sub("", buffer.rstrip())
    buffer = _NEWLINES.sub(" ", buffer)
    start = buffer.find("{")
    return buffer[start:] if start >= 0 else ""


def _prefix_states(buffer: str, first_length: int) -> List[Tuple[bool, bool, Any]]:
    """
    Scan ``buffer`` once and record, for every prefix length from
    ``first_length`` to ``len(buffer)``, whether the prefix ends inside a
    string, right after a backslash escape, and its stack of open brackets.
    The stack is a linked tuple ``(closer, parent)`` so snapshots are free.
    """
    states = []
    in_string = escaped = False
    stack = None
    if first_length == 0:
        states.append((in_string, escaped, stack))
    for index, ch in enumerate(buffer):
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
        elif ch == '"':
            in_string = True
        elif ch == "{":
            stack = ("}", stack)
        elif ch == "[":
            stack = ("]", stack)
        elif ch in "}]" and stack is not None and stack[0] == ch:
            stack = stack[1]
        if index + 1 >= first_length:
            states.append((in_string, escaped, stack))
    return states


def _closers(stack: Any) -> str:
    out = []
    while stack is not None:
        out.append(stack[0])
        stack = stack[1]
    return "".join(out)


def rebalance(text: str) -> str:
    """Close an open string and any open brackets, innermost first."""
    in_string, escaped, stack = _prefix_states(text, len(text))[-1]
    if escaped:
        text = text[:-1]
    return text + ('"' if in_string else "") + _closers(stack)


def decode_json_lenient(text: str, max_iterations: Optional[int] = None) -> Optional[Dict[str, Any]]:
    """
    Best-effort decode of a possibly truncated or wrapped JSON object.

    Tries the whole buffer rebalanced, then drops one trailing character at
    a time, for at most ``max_iterations`` attempts. Returns the first
    object that parses, or None.
    """
    if not isinstance(text, str):
        return None
    limit = settings.REPAIR_MAX_ITERATIONS if max_iterations is None else max_iterations
    buffer = strip_wrappers(text)
    if not buffer or limit <= 0:
        return None

    total = len(buffer)
    first_length = max(1, total - limit + 1)
    states = _prefix_states(buffer, first_length)

    for length in range(total, first_length - 1, -1):
        in_string, escaped, stack = states[length - first_length]
        if escaped:
            # a dangling backslash would escape the closing quote
            continue
        candidate = buffer[:length] + ('"' if in_string else "") + _closers(stack)
        try:
            value, _ = _decoder.raw_decode(candidate)
        except (ValueError, RecursionError):
            continue
        if isinstance(value, dict):
            return value
    return None


def splice_malformed_call(message: str) -> Optional[str]:
    """Rebuild ``{"summary":X,"days":Y`` from a ``summary=X, days=Y`` diagnostic."""
    if not isinstance(message, str):
        return None
    summary_pos = message.find("summary=")
    days_pos = message.find(", days=")
    if summary_pos < 0 or days_pos < 0 or days_pos <= summary_pos:
        return None
    summary_text = message[summary_pos + len("summary="):days_pos]
    days_text = message[days_pos + len(", days="):]
    return '{"summary":' + summary_text.strip() + ',"days":' + days_text.strip()


# ----------------------------------------------------------------------
# Candidate traversal
# ----------------------------------------------------------------------

def _candidates(response: Any) -> List[Dict[str, Any]]:
    if isinstance(response, str):
        return [{"content": {"parts": [{"text": response}]}}]
    candidates = _get(response, "candidates", "candidates")
    if not isinstance(candidates, list):
        return []
    return [c for c in candidates if isinstance(c, dict)]


def _parts(candidate: Dict[str, Any]) -> List[Dict[str, Any]]:
    parts = _get(_get(candidate, "content", "content"), "parts", "parts")
    if not isinstance(parts, list):
        return []
    return [p for p in parts if isinstance(p, dict)]


def _looks_like_plan(data: Any) -> bool:
    return isinstance(data, dict) and any(k in data for k in ("summary", "days", "itinerary"))


def _attempts(candidate: Dict[str, Any]) -> Iterator[Tuple[str, Any]]:
    """Yield (stage, decoded dict or None) in strategy order; decoding is lazy."""
    parts = _parts(candidate)

    for part in parts:
        call = _get(part, "functionCall", "function_call")
        args = _get(call, "args", "args")
        if isinstance(args, str):
            args = decode_json_lenient(args)
        yield STAGE_STRUCTURED_CALL, args

    reason = _get(candidate, "finishReason", "finish_reason")
    message = _get(candidate, "finishMessage", "finish_message")
    if reason == MALFORMED_FUNCTION_CALL and message:
        spliced = splice_malformed_call(message)
        yield STAGE_MALFORMED_CALL_REPAIR, decode_json_lenient(spliced) if spliced else None

    for part in parts:
        text = part.get("text")
        if isinstance(text, str) and text.strip():
            yield STAGE_LENIENT_TEXT, decode_json_lenient(text)


def recover_plan(response: Union[Dict[str, Any], str, None]) -> Tuple[StructuredItineraryPlan, str]:
    """
    Return the recovered plan and the stage that produced it.

    Raises:
        RecoveryExhausted: when no candidate yields a plan.
    """
    for index, candidate in enumerate(_candidates(response)):
        for stage, data in _attempts(candidate):
            if not _looks_like_plan(data):
                continue
            plan = StructuredItineraryPlan.from_dict(data)
            logger.debug(
                "Plan recovered",
                extra={"stage": stage, "candidate": index, "days": len(plan.days)},
            )
            return plan, stage
    raise RecoveryExhausted("no candidate contained a recoverable itinerary")


def extract_plan(response: Union[Dict[str, Any], str, None]) -> Optional[StructuredItineraryPlan]:
    """Recover the itinerary plan, or None when every strategy fails."""
    try:
        plan, _ = recover_plan(response)
    except RecoveryExhausted as e:
        logger.info(f"Itinerary recovery failed: {e}")
        return None
    return plan
