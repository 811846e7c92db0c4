# storycraft/generation/repair.py
"""
Response repair: raw model text -> StructuredRecord.

Responsibility:
- Reject unsafe input before any parsing (size, control characters, nesting depth)
- Try direct decode, then cleanup decode, then field extraction
- Validate every candidate against the same StructuredRecord model
- Return a RepairFailure with the attempt log when nothing validates

Limits are enforced by the model, so all three strategies share them.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Annotated, Any, Callable, List, Optional, Sequence, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, ValidationError

from storycraft.logging_core.logger import get_component_logger, log_event


MAX_INPUT_LENGTH = 50_000
MIN_PITCH_LENGTH = 50
MAX_PITCH_LENGTH = 5_000
MAX_TOPICS = 10
MAX_TOPIC_LENGTH = 100
MAX_RATIONALE_LENGTH = 1_000
MAX_REPAIR_CLOSERS = 5
MAX_NESTING_DEPTH = 32

DEFAULT_SENTIMENT = "neutral"
DEFAULT_CORE_MESSAGE = "Content analysis from AI response"
DEFAULT_TARGET_AUDIENCE = "General audience"

_logger = get_component_logger("repair")

# C0 controls except \t \n \r, DEL, and the replacement character
_FORBIDDEN_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f\ufffd]")
_OPENING_FENCE = re.compile(r"\A\s*```(?:json)?[ \t]*\n?", re.IGNORECASE)
_CLOSING_FENCE = re.compile(r"\n?[ \t]*```\s*\Z")
_HEX4 = re.compile(r"[0-9a-fA-F]{4}")

_NonEmpty = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
_Topic = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=MAX_TOPIC_LENGTH)]


class RepairInputRejected(ValueError):
    """Input failed validation before any parsing was attempted."""


class Analysis(BaseModel):
    key_topics: List[_Topic] = Field(alias="keyTopics", max_length=MAX_TOPICS)
    sentiment: _NonEmpty
    core_message: _NonEmpty = Field(alias="coreMessage")
    target_audience: _NonEmpty = Field(alias="targetAudience")

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)


class StructuredRecord(BaseModel):
    """The only shape handed to callers. camelCase on the wire."""
    analysis: Analysis
    generated_pitch: str = Field(alias="generatedPitch", min_length=MIN_PITCH_LENGTH, max_length=MAX_PITCH_LENGTH)
    rationale: Optional[str] = Field(default=None, max_length=MAX_RATIONALE_LENGTH)

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class RepairFailure(BaseModel):
    error: str
    repair_attempts: List[str] = Field(default_factory=list)
    original_length: int = 0


RepairOutcome = Union[StructuredRecord, RepairFailure]


def _nesting_depth(text: str) -> int:
    """Deepest bracket nesting outside string literals."""
    depth = deepest = 0
    in_string = escaped = False
    for char in text:
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
        elif char == '"':
            in_string = True
        elif char in "{[":
            depth += 1
            deepest = max(deepest, depth)
        elif char in "}]" and depth:
            depth -= 1
    return deepest


def validate_input(raw_text: Any) -> str:
    if not isinstance(raw_text, str):
        raise RepairInputRejected("Input must be a string")
    if not raw_text.strip():
        raise RepairInputRejected("Input must be a non-empty string")
    if len(raw_text) > MAX_INPUT_LENGTH:
        raise RepairInputRejected(f"Input exceeds maximum length of {MAX_INPUT_LENGTH} characters")
    if _FORBIDDEN_CHARS.search(raw_text):
        raise RepairInputRejected("Input contains invalid control characters")
    if _nesting_depth(raw_text) > MAX_NESTING_DEPTH:
        raise RepairInputRejected(f"Input nests deeper than {MAX_NESTING_DEPTH} levels")
    return raw_text


def _describe(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors()[:3]:
        location = ".".join(str(item) for item in error.get("loc", ()))
        parts.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    return "; ".join(parts)


def _validate(data: Any) -> StructuredRecord:
    if not isinstance(data, dict):
        raise ValueError(f"expected a JSON object, got {type(data).__name__}")
    return StructuredRecord.model_validate(data)


# ---------------------------------------------------------------- cleanup


def _closes_string(text: str, index: int) -> bool:
    """A quote ends a string only if the next non-space char is a delimiter."""
    length = len(text)
    while index < length and text[index] in " \t\r\n":
        index += 1
    return index >= length or text[index] in ",:}]"


def _drop_trailing_comma(out: List[str]) -> None:
    index = len(out) - 1
    while index >= 0 and out[index].isspace():
        index -= 1
    if index >= 0 and out[index] == ",":
        del out[index]


def clean_json_text(text: str) -> str:
    """
    Make near-JSON parseable without touching valid JSON.

    Works on the first top-level object. Inside strings, literal control
    characters and stray quotes are escaped; outside, trailing commas are
    dropped. An unterminated string is closed and up to MAX_REPAIR_CLOSERS
    missing closers are appended.
    """
    stripped = _CLOSING_FENCE.sub("", _OPENING_FENCE.sub("", text)).strip()
    start = stripped.find("{")
    if start == -1:
        raise ValueError("no JSON object found")
    source = stripped[start:]

    out: List[str] = []
    closers: List[str] = []
    in_string = False
    escaped = False
    length = len(source)

    for index, char in enumerate(source):
        if in_string:
            if escaped:
                out.append(char)
                escaped = False
            elif char == "\\":
                following = source[index + 1] if index + 1 < length else ""
                if following and following in '"\\/bfnrt':
                    out.append(char)
                    escaped = True
                elif following == "u" and _HEX4.match(source, index + 2):
                    out.append(char)
                    escaped = True
                else:
                    out.append("\\\\")
            elif char == '"':
                if _closes_string(source, index + 1):
                    in_string = False
                    out.append(char)
                else:
                    out.append('\\"')
            elif char == "\n":
                out.append("\\n")
            elif char == "\r":
                out.append("\\r")
            elif char == "\t":
                out.append("\\t")
            elif ord(char) < 0x20:
                out.append(f"\\u{ord(char):04x}")
            else:
                out.append(char)
            continue

        if char == '"':
            in_string = True
            out.append(char)
        elif char in "{[":
            closers.append("}" if char == "{" else "]")
            out.append(char)
        elif char in "}]":
            if not closers:
                break
            _drop_trailing_comma(out)
            out.append(closers.pop())
            if not closers:
                # Top-level object complete; ignore trailing prose
                break
        else:
            out.append(char)

    if in_string:
        if escaped:
            out.pop()
        out.append('"')
    if len(closers) > MAX_REPAIR_CLOSERS:
        raise ValueError(f"{len(closers)} unclosed brackets exceeds repair limit of {MAX_REPAIR_CLOSERS}")
    while closers:
        _drop_trailing_comma(out)
        out.append(closers.pop())

    return "".join(out)


# ------------------------------------------------------------- extraction


def _string_field(name: str) -> re.Pattern[str]:
    # Stops at the first unescaped quote or at end of input (truncation)
    return re.compile(r'"' + name + r'"\s*:\s*"((?:[^"\\]|\\.)*)', re.DOTALL)


_PITCH = _string_field("generatedPitch")
_SENTIMENT = _string_field("sentiment")
_CORE_MESSAGE = _string_field("coreMessage")
_TARGET_AUDIENCE = _string_field("targetAudience")
_RATIONALE = _string_field("rationale")
_TOPICS = re.compile(r'"keyTopics"\s*:\s*\[([^\]]*)', re.DOTALL)
_QUOTED = re.compile(r'"((?:[^"\\]|\\.)*)"', re.DOTALL)


def unescape(value: str) -> str:
    try:
        return json.loads(f'"{value}"')
    except json.JSONDecodeError:
        return (
            value.replace("\\n", "\n")
            .replace("\\r", "\r")
            .replace("\\t", "\t")
            .replace('\\"', '"')
            .replace("\\\\", "\\")
        )


def _extract(pattern: re.Pattern[str], text: str) -> Optional[str]:
    match = pattern.search(text)
    if not match:
        return None
    value = unescape(match.group(1)).strip()
    return value or None


def _extract_topics(text: str) -> List[str]:
    match = _TOPICS.search(text)
    if not match:
        return []
    body = match.group(1)
    items = [unescape(item) for item in _QUOTED.findall(body)] or body.split(",")
    topics = []
    for item in items:
        topic = item.strip().strip("'\"").strip()
        if topic:
            topics.append(topic[:MAX_TOPIC_LENGTH])
        if len(topics) == MAX_TOPICS:
            break
    return topics


def extract_fields(text: str) -> dict:
    """Rebuild a record dict from individually matched fields."""
    pitch = _extract(_PITCH, text)
    if pitch is None:
        raise ValueError("generatedPitch not found")
    pitch = pitch[:MAX_PITCH_LENGTH]
    if len(pitch) < MIN_PITCH_LENGTH:
        raise ValueError(f"generatedPitch shorter than {MIN_PITCH_LENGTH} characters")

    rationale = _extract(_RATIONALE, text)
    return {
        "analysis": {
            "keyTopics": _extract_topics(text),
            "sentiment": _extract(_SENTIMENT, text) or DEFAULT_SENTIMENT,
            "coreMessage": _extract(_CORE_MESSAGE, text) or DEFAULT_CORE_MESSAGE,
            "targetAudience": _extract(_TARGET_AUDIENCE, text) or DEFAULT_TARGET_AUDIENCE,
        },
        "generatedPitch": pitch,
        "rationale": rationale[:MAX_RATIONALE_LENGTH] if rationale else None,
    }


# ----------------------------------------------------------------- parser


RepairStrategy = Tuple[str, Callable[[str], StructuredRecord]]


class ResponseRepairParser:
    """Stateless; one instance may be shared across threads."""

    def __init__(self) -> None:
        self.strategies: Sequence[RepairStrategy] = (
            ("direct", lambda text: _validate(json.loads(text))),
            ("cleanup", lambda text: _validate(json.loads(clean_json_text(text)))),
            ("extraction", lambda text: _validate(extract_fields(text))),
        )

    def parse(self, raw_text: str) -> RepairOutcome:
        """
        Return a validated record or a RepairFailure.

        Raises RepairInputRejected when the input fails validation.
        """
        outcome, _ = self.parse_with_strategy(raw_text)
        return outcome

    def parse_with_strategy(self, raw_text: str) -> Tuple[RepairOutcome, Optional[str]]:
        """Like parse(), also naming the strategy that succeeded."""
        text = validate_input(raw_text)
        attempts: List[str] = []

        for name, strategy in self.strategies:
            try:
                record = strategy(text)
            except ValidationError as exc:
                attempts.append(f"{name}: schema error: {_describe(exc)}")
                continue
            except (ValueError, TypeError, RecursionError) as exc:
                # json.JSONDecodeError is a ValueError
                attempts.append(f"{name}: {exc}")
                continue

            log_event(
                _logger,
                logging.INFO if name == "direct" else logging.WARNING,
                "Model response parsed",
                event_type="repair_success",
                metadata={"strategy": name, "attempts": attempts, "length": len(text)},
            )
            return record, name

        log_event(
            _logger,
            logging.WARNING,
            "All repair strategies failed",
            event_type="repair_failure",
            metadata={"attempts": attempts, "length": len(text)},
        )
        return RepairFailure(error="All parsing strategies failed", repair_attempts=attempts, original_length=len(text)), None


_default_parser = ResponseRepairParser()


def repair_to_structured_record(raw_text: str) -> RepairOutcome:
    return _default_parser.parse(raw_text)


# High-Level Intent
# repair.py is the boundary between untrusted model text and the rest of the
# system. Nothing leaves it unless StructuredRecord validated it.

# Edge Cases
# Oversize or control-character input -> RepairInputRejected, nothing parsed.
# Already-valid JSON -> direct wins; cleanup would yield the same text.
# Truncated output -> cleanup closes the string and brackets (bounded).
# Pitch under MIN_PITCH_LENGTH -> every strategy fails -> RepairFailure.
# Pitch over MAX_PITCH_LENGTH -> direct/cleanup fail validation, extraction clamps.
