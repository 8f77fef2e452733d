"""
Model response sanitizer.

The model backend is asked for JSON but nothing enforces the shape of what
it returns. ``parse_model_response`` turns that text into either a fully
validated ``AnalysisResult`` or a ``MalformedResponse`` carrying the reason.

Leniency policy: the payload as a whole must be a JSON object, but inside it
a bad or missing summary is replaced by a fallback and malformed findings are
dropped without error.
"""

import json
import math
from dataclasses import dataclass
from typing import Any, List, Optional, Union

from review_relay.models.analysis import AnalysisResult, Finding, Severity

FALLBACK_SUMMARY = "Code review completed"

_SEVERITIES = {severity.value for severity in Severity}


@dataclass(frozen=True)
class ParsedResponse:
    """The model reply was usable."""

    result: AnalysisResult


@dataclass(frozen=True)
class MalformedResponse:
    """The model reply could not be used at all."""

    reason: str


ParseResult = Union[ParsedResponse, MalformedResponse]


def _coerce_line(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and math.isfinite(value) and value.is_integer():
        return int(value)
    return None


def sanitize_finding(entry: Any) -> Optional[Finding]:
    """Return a Finding for a well-formed entry, otherwise None."""
    if not isinstance(entry, dict):
        return None

    file_path = entry.get("file")
    line = _coerce_line(entry.get("line"))
    severity = entry.get("severity")
    message = entry.get("message")

    if not isinstance(file_path, str) or line is None:
        return None
    if not isinstance(severity, str) or severity not in _SEVERITIES:
        return None
    if not isinstance(message, str):
        return None

    return Finding(file=file_path, line=line, severity=severity, message=message)


def sanitize_summary(value: Any) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return FALLBACK_SUMMARY


def sanitize_findings(value: Any) -> List[Finding]:
    if not isinstance(value, list):
        return []
    findings = (sanitize_finding(entry) for entry in value)
    return [finding for finding in findings if finding is not None]


def parse_model_response(raw: str) -> ParseResult:
    """
    Parse and sanitize raw model output.

    Args:
        raw: Text returned by the model backend

    Returns:
        ParsedResponse with the sanitized result, or MalformedResponse when
        the text is not a JSON object
    """
    try:
        payload = json.loads(raw)
    except (TypeError, ValueError) as e:
        return MalformedResponse(reason=f"Invalid JSON response from model: {e}")

    if not isinstance(payload, dict):
        return MalformedResponse(reason="Model response is not a JSON object")

    result = AnalysisResult(
        summary=sanitize_summary(payload.get("summary")),
        comments=sanitize_findings(payload.get("comments")),
    )
    return ParsedResponse(result=result)
