"""
Candidate Extractor for generative model output.

Model output is not guaranteed to be well-formed: it may open with a
reasoning block, wrap the answer in a code fence, stop halfway through a
JSON array, or mix prose with objects. Extraction is an ordered chain of
pure functions, each ``text -> Optional[list]``; the first one that yields
items wins, and a per-object regex salvage pass runs last.
"""

import json
import re
from typing import Any, Callable, Optional

from .domain_utils import normalize_extension, parse_domain_input
from .enums import ExtractionErrorCode, LogLevel
from .exceptions import ExtractionError
from .models import SuggestionCandidate


THINK_OPEN = "<think>"
THINK_CLOSE = "</think>"

_CODE_FENCE = re.compile(r"```[a-zA-Z0-9_-]*")
# A list of flat objects: no nested braces inside each object
_FLAT_OBJECT_LIST = re.compile(r"\[\s*(?:\{[^{}]*\}\s*,?\s*)+\]", re.DOTALL)
_GREEDY_LIST = re.compile(r"\[.*\]", re.DOTALL)
_DOMAIN_OBJECT = re.compile(r"\{[^{}]*?[\"']domain[\"']\s*:\s*[\"'][^\"']+[\"'][^{}]*?\}", re.DOTALL)

ParseStep = Callable[[str], Optional[list]]


def strip_reasoning(text: str) -> str:
    """
    Remove a reasoning preamble.

    Everything up to and including the closing marker is dropped. If the
    opening marker is present without a closing one, the reasoning ran to
    the end of the output, so everything from the opening marker on is
    dropped instead.
    """
    close_index = text.find(THINK_CLOSE)
    if close_index != -1:
        return text[close_index + len(THINK_CLOSE):].strip()

    open_index = text.find(THINK_OPEN)
    if open_index != -1:
        return text[:open_index].strip()

    return text


def strip_code_fences(text: str) -> str:
    """Remove fenced code-block markers, keeping their content."""
    return _CODE_FENCE.sub("", text).strip()


def _load_list(fragment: str) -> Optional[list]:
    try:
        value = json.loads(fragment)
    except (json.JSONDecodeError, ValueError):
        return None
    if isinstance(value, list) and value:
        return value
    return None


def parse_bracket_span(text: str) -> Optional[list]:
    """
    Parse the outermost ``[`` ... ``]`` span.

    The span is only attempted when its opening and closing bracket/brace
    counts balance.
    """
    start = text.find("[")
    end = text.rfind("]")
    if start == -1 or end == -1 or end <= start:
        return None

    span = text[start:end + 1]
    opening = span.count("[") + span.count("{")
    closing = span.count("]") + span.count("}")
    if opening != closing:
        return None

    return _load_list(span)


def parse_flat_object_list(text: str) -> Optional[list]:
    """Find the first list of flat objects anywhere in the text."""
    for match in _FLAT_OBJECT_LIST.finditer(text):
        items = _load_list(match.group(0))
        if items is not None:
            return items
    return None


def parse_greedy_list(text: str) -> Optional[list]:
    """Treat everything from the first ``[`` to the last ``]`` as one list."""
    match = _GREEDY_LIST.search(text)
    if not match:
        return None
    return _load_list(match.group(0))


def salvage_domain_objects(text: str) -> Optional[list]:
    """
    Recover individual ``{"domain": ...}`` objects one at a time.

    Fragments that do not parse on their own are discarded.
    """
    recovered = []
    for match in _DOMAIN_OBJECT.finditer(text):
        fragment = match.group(0)
        try:
            item = json.loads(fragment)
        except (json.JSONDecodeError, ValueError):
            try:
                item = json.loads(fragment.replace("'", '"'))
            except (json.JSONDecodeError, ValueError):
                continue
        if isinstance(item, dict):
            recovered.append(item)
    return recovered or None


PRIMARY_STEPS: tuple[ParseStep, ...] = (
    parse_bracket_span,
    parse_flat_object_list,
    parse_greedy_list,
)


def run_chain(text: str, steps: tuple[ParseStep, ...]) -> Optional[list]:
    """Return the first non-empty result from ``steps``."""
    for step in steps:
        items = step(text)
        if items:
            return items
    return None


def to_candidate(item: Any) -> Optional[SuggestionCandidate]:
    """
    Convert one parsed item into a candidate.

    Accepts objects with a ``domain`` (or ``name``) field and optional
    ``extension``/``reason``, or bare strings.
    """
    reason = None
    suggested_extension = None

    if isinstance(item, str):
        raw = item
    elif isinstance(item, dict):
        raw = item.get("domain") or item.get("name")
        if not isinstance(raw, str):
            return None
        extension = item.get("extension")
        if isinstance(extension, str):
            suggested_extension = normalize_extension(extension)
        if isinstance(item.get("reason"), str):
            reason = item["reason"].strip() or None
    else:
        return None

    raw = raw.strip().lower()
    if not raw:
        return None

    if "." in raw.strip("."):
        name, extension = parse_domain_input(raw)
        if extension and name:
            return SuggestionCandidate(
                name=name,
                extension=extension,
                reason=reason,
                explicit_extension=True,
            )

    name = raw.strip(".")
    if not name:
        return None
    return SuggestionCandidate(
        name=name,
        extension=suggested_extension,
        reason=reason,
        explicit_extension=False,
    )


class CandidateExtractor:
    """Turns raw model text into suggestion candidates."""

    def __init__(self, salvage_enabled: bool = True, logger=None) -> None:
        self._salvage_enabled = salvage_enabled
        self._logger = logger

    def extract(self, raw_text: str) -> list[SuggestionCandidate]:
        """
        Extract candidates from model output.

        Raises:
            ExtractionError: Nothing recoverable was found
        """
        if not raw_text or not raw_text.strip():
            raise ExtractionError(
                code=ExtractionErrorCode.EMPTY_OUTPUT.value,
                message="Model returned no output",
            )

        text = strip_code_fences(strip_reasoning(raw_text))

        items = run_chain(text, PRIMARY_STEPS)
        if items is None and self._salvage_enabled:
            items = salvage_domain_objects(text)
            if items:
                self._log(LogLevel.WARN, "Recovered candidates by salvage", {"recovered": len(items)})

        candidates = []
        seen = set()
        for item in items or []:
            candidate = to_candidate(item)
            if candidate is None:
                continue
            key = (candidate.name, candidate.extension)
            if key in seen:
                continue
            seen.add(key)
            candidates.append(candidate)

        if not candidates:
            raise ExtractionError(
                code=ExtractionErrorCode.NO_CANDIDATES.value,
                message="No domain candidates found in model output",
                details={"snippet": raw_text[:300]},
            )

        return candidates

    def _log(self, level: LogLevel, message: str, data: dict) -> None:
        if self._logger:
            self._logger.log(level, "CandidateExtractor", message, data)
