"""Recovers per-question result objects from raw model output.

Model output is only loosely structured: it may be a bare JSON array, an
object with a ``results`` array, a single result object, JSON wrapped in
prose or code fences, or a truncated document. Recovery is layered and each
layer only runs when the one before it produced nothing usable:

1. Structural parse of the whole text (``parse_structure``).
2. Object scan: every ``{"question_id": "..."`` opener is bounded by brace
   depth and parsed on its own (``scan_objects``).
3. Field salvage: a scanned candidate that is not valid JSON is rebuilt from
   regex matches of its individual fields (``salvage_fields``).

Nothing here raises. An empty list is a valid outcome; the orchestrator
fills defaults for whatever is missing.

Known limitation: ``find_object_end`` counts every brace, including braces
inside quoted string values, so a string such as ``"feedback": "use {x}"``
with unbalanced braces can shift the detected object boundary.
"""

import enum
import json
import re
from dataclasses import dataclass, field
from typing import Any, List, Optional

from utils.logger import get_logger

logger = get_logger()

REGEX_FALLBACK_FEEDBACK = "Extracted via regex fallback."
REGEX_FALLBACK_IMPROVEMENT = "N/A"

_OBJECT_OPENER = re.compile(r'\{\s*"question_id"\s*:\s*"([^"]+)"')
_SCORE_FIELD = re.compile(r'"total_score"\s*:\s*(\d+(\.\d+)?)')
_FEEDBACK_FIELD = re.compile(r'"feedback"\s*:\s*"([^"]+)"')
_IMPROVEMENT_FIELD = re.compile(r'"improvement"\s*:\s*"([^"]+)"')


def _reject_constant(name: str):
    raise ValueError(f"Non-finite number {name} is not valid JSON")


def _loads(text: str) -> Any:
    """json.loads that rejects NaN/Infinity and treats excessive nesting as a decode error."""
    try:
        return json.loads(text, parse_constant=_reject_constant)
    except RecursionError as e:
        raise ValueError("JSON nested too deeply") from e


class Shape(enum.Enum):
    """What the whole-text structural parse found."""
    ARRAY = "array"
    RESULTS_OBJECT = "results_object"
    SINGLE_RESULT = "single_result"
    UNRECOGNIZED = "unrecognized"
    MALFORMED = "malformed"


@dataclass(frozen=True)
class StructuralParse:
    shape: Shape
    results: List[Any] = field(default_factory=list)

    @property
    def usable(self) -> bool:
        return self.shape in (Shape.ARRAY, Shape.RESULTS_OBJECT, Shape.SINGLE_RESULT)


def _try_array(text: str, first_bracket: int) -> StructuralParse:
    candidate = text[first_bracket:text.rfind("]") + 1]
    try:
        parsed = _loads(candidate)
    except ValueError:
        return StructuralParse(Shape.MALFORMED)
    if isinstance(parsed, list):
        return StructuralParse(Shape.ARRAY, parsed)
    return StructuralParse(Shape.UNRECOGNIZED)


def _try_object(text: str, first_brace: int) -> StructuralParse:
    candidate = text[first_brace:text.rfind("}") + 1]
    try:
        parsed = _loads(candidate)
    except ValueError:
        return StructuralParse(Shape.MALFORMED)
    if not isinstance(parsed, dict):
        return StructuralParse(Shape.UNRECOGNIZED)
    if isinstance(parsed.get("results"), list):
        return StructuralParse(Shape.RESULTS_OBJECT, parsed["results"])
    if parsed.get("question_id"):
        return StructuralParse(Shape.SINGLE_RESULT, [parsed])
    return StructuralParse(Shape.UNRECOGNIZED)


def parse_structure(text: str) -> StructuralParse:
    """Sniffs the overall shape of `text` and parses it.

    The array attempt runs first when a ``[`` appears before any ``{``. A
    decode failure in either attempt ends the structural parse as MALFORMED;
    the object attempt is skipped after a failed array attempt.
    """
    first_bracket = text.find("[")
    first_brace = text.find("{")

    if first_bracket != -1 and (first_brace == -1 or first_bracket < first_brace):
        outcome = _try_array(text, first_bracket)
        if outcome.shape in (Shape.ARRAY, Shape.MALFORMED):
            return outcome

    if first_brace != -1:
        return _try_object(text, first_brace)

    return StructuralParse(Shape.UNRECOGNIZED)


def find_object_end(text: str, start: int) -> Optional[int]:
    """Index of the brace closing the object that opens at `start`, or None.

    Plain brace-depth counting; see the module docstring for the string
    literal limitation.
    """
    depth = 0
    for i in range(start, len(text)):
        char = text[i]
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
        if depth == 0:
            return i
    return None


def salvage_fields(candidate: str, question_id: str) -> dict:
    """Rebuilds a result object from regex matches of its fields."""
    score_match = _SCORE_FIELD.search(candidate)
    feedback_match = _FEEDBACK_FIELD.search(candidate)
    improvement_match = _IMPROVEMENT_FIELD.search(candidate)

    score: float | int = 0
    if score_match:
        score = float(score_match.group(1)) if score_match.group(2) else int(score_match.group(1))

    return {
        "question_id": question_id,
        "total_score": score,
        "feedback": feedback_match.group(1) if feedback_match else REGEX_FALLBACK_FEEDBACK,
        "improvement": improvement_match.group(1) if improvement_match else REGEX_FALLBACK_IMPROVEMENT,
        "criteria_results": [],
    }


def scan_objects(text: str) -> List[Any]:
    """Extracts every brace-bounded object that opens with a question_id key.

    Candidates that are not valid JSON are replaced by their salvaged
    fields. Results keep the order in which the openers appear.
    """
    results: List[Any] = []
    for match in _OBJECT_OPENER.finditer(text):
        start = match.start()
        end = find_object_end(text, start)
        if end is None:
            logger.debug(f"Unterminated object for question_id {match.group(1)!r} at offset {start}.")
            continue
        candidate = text[start:end + 1]
        try:
            results.append(_loads(candidate))
        except ValueError:
            logger.debug(f"Salvaging fields for question_id {match.group(1)!r}.")
            results.append(salvage_fields(candidate, match.group(1)))
    return results


def recover_results(text: Optional[str], expected_count: int = 0) -> List[Any]:
    """Best-effort list of result objects parsed from raw model output.

    Args:
        text: Raw model output.
        expected_count: Number of questions in the chunk. Only used for
            diagnostics; the returned list may be shorter, longer or contain
            duplicate ids.

    Returns:
        Parsed result objects in order of appearance. Empty when nothing
        could be recovered.
    """
    if not text:
        return []
    logger.debug(f"Parsing model output of length {len(text)}.")

    structural = parse_structure(text)
    if structural.usable:
        logger.debug(f"Structural parse found {structural.shape.value} with {len(structural.results)} entries.")
        results = structural.results
    else:
        logger.info(f"Structural parse gave {structural.shape.value}; scanning for result objects.")
        results = scan_objects(text)

    if expected_count and len(results) != expected_count:
        logger.warning(f"Recovered {len(results)} results, expected {expected_count}.")
    else:
        logger.info(f"Recovered {len(results)} results.")
    return results
