"""Extraction of the structured triage block from free model text.

The model may end its reply with::

    TRIAGE_RESULT:
    Risk: <LOW|MEDIUM|HIGH>
    Rationale: <single line>
    Actions:
    - <action>
    Emergency: <true|false>
    Confidence: <0.0-1.0>

The block is scanned line by line with the labels expected in that fixed order.
Risk is the only field that can reject the block on content; the other fields are
normalized. A missing or misplaced label rejects the block as well.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass

from medtriage.errors import MalformedStructuredOutput
from medtriage.schemas import RiskLevel, TriageResult

logger = logging.getLogger(__name__)

TRIAGE_MARKER = "TRIAGE_RESULT:"
DEFAULT_CONFIDENCE = 0.5

_FIELD_ORDER = ("risk", "rationale", "actions", "emergency", "confidence")
_LABEL_RE = re.compile(
    r"^\s*[*_]*(risk|rationale|actions|emergency|confidence)[*_]*\s*:[*_]*\s*(.*)$",
    re.IGNORECASE,
)
_BULLET_RE = re.compile(r"^\s*-\s*")
_NUMERIC_PREFIX_RE = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)")
_EMPHASIS = "*_"
_TOKEN_TRIM = "*_.,;:!"


@dataclass(frozen=True)
class ParsedReply:
    message: str
    triage_result: TriageResult | None


def clean_message(text: str) -> str:
    """Conversational part of a reply: everything before the first marker, trimmed."""
    idx = text.find(TRIAGE_MARKER)
    if idx == -1:
        return text.strip()
    return text[:idx].strip()


def parse_actions(block: str) -> list[str]:
    items: list[str] = []
    for line in block.splitlines():
        cleaned = _BULLET_RE.sub("", line, count=1).strip()
        if cleaned:
            items.append(cleaned)
    return items


def parse_emergency(value: str) -> bool:
    tokens = value.split()
    return bool(tokens) and tokens[0].strip(_TOKEN_TRIM).lower() == "true"


def parse_confidence(value: str) -> float:
    token = value.strip()
    try:
        number = float(token)
    except ValueError:
        match = _NUMERIC_PREFIX_RE.match(token)
        if not match:
            return DEFAULT_CONFIDENCE
        number = float(match.group(0))
    if not math.isfinite(number):
        return DEFAULT_CONFIDENCE
    return min(1.0, max(0.0, number))


def parse_risk_level(value: str) -> RiskLevel:
    # The whole value must be one level; "MEDIUM to HIGH" is rejected, not read as MEDIUM.
    token = value.strip().strip(_EMPHASIS).strip()
    if not token:
        raise MalformedStructuredOutput("risk", "missing risk token")
    try:
        return RiskLevel(token.upper())
    except ValueError:
        raise MalformedStructuredOutput("risk", f"unsupported risk value {token!r}") from None


def _scan_fields(block: str) -> tuple[dict[str, str], list[str]]:
    fields: dict[str, str] = {}
    action_lines: list[str] = []
    position = 0
    current: str | None = None

    for line in block.splitlines():
        if position == len(_FIELD_ORDER):
            # Anything after Confidence is not part of the block.
            break

        match = _LABEL_RE.match(line)
        if match:
            label = match.group(1).lower()
            expected = _FIELD_ORDER[position]
            if label != expected:
                raise MalformedStructuredOutput(expected, f"expected {expected!r} label, found {label!r}")
            value = match.group(2).strip()
            fields[label] = value
            if label == "actions" and value:
                action_lines.append(value)
            current = label
            position += 1
            continue

        if current == "actions":
            action_lines.append(line)
            continue
        if not line.strip():
            continue
        raise MalformedStructuredOutput(_FIELD_ORDER[position], "unexpected text between fields")

    if position < len(_FIELD_ORDER):
        raise MalformedStructuredOutput(_FIELD_ORDER[position], "label missing")
    return fields, action_lines


def parse_block(block: str) -> TriageResult:
    """Parse the text following the marker. Raises ``MalformedStructuredOutput``."""
    fields, action_lines = _scan_fields(block)
    return TriageResult(
        risk_level=parse_risk_level(fields["risk"]),
        rationale=fields["rationale"],
        action_plan=parse_actions("\n".join(action_lines)),
        emergency=parse_emergency(fields["emergency"]),
        confidence=parse_confidence(fields["confidence"]),
    )


def parse_triage_result(text: str) -> TriageResult | None:
    idx = text.find(TRIAGE_MARKER)
    if idx == -1:
        return None
    try:
        return parse_block(text[idx + len(TRIAGE_MARKER) :])
    except MalformedStructuredOutput as exc:
        logger.debug("structured_block_rejected: field=%s detail=%s", exc.field_name, exc.detail)
        return None


def parse_model_reply(text: str) -> ParsedReply:
    return ParsedReply(message=clean_message(text), triage_result=parse_triage_result(text))
