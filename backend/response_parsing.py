"""Turns a raw model completion into a list of generic question objects.

Three steps, each usable on its own:

* extraction pulls the JSON array out of surrounding prose or fencing,
* escape repair fixes backslashes left bare by LaTeX or code notation,
* parsing enforces that the payload is a JSON array.
"""

import json
import logging
import re
from typing import Any, List

from generation_errors import ParseError, SchemaError


logger = logging.getLogger(__name__)

ARRAY_OF_OBJECTS_PATTERN = re.compile(r"\[\s*\{.*\}\s*\]", re.DOTALL)
# A backslash plus the escape it starts; group 1 is None for a bare backslash.
BACKSLASH_ESCAPE_PATTERN = re.compile(r'\\(["\\/bfnrt]|u[0-9a-fA-F]{4})?')
QUADRUPLE_BACKSLASH = "\\" * 4
DOUBLE_BACKSLASH = "\\" * 2


class ResponseShapeAdapter:
    """Finds the structured payload inside a raw completion.

    Subclass this to plug in another response mode (for example a
    structured-output request whose body is already the bare array).
    """

    def extract(self, raw_text: str) -> str:
        raise NotImplementedError


class BracketArrayExtractor(ResponseShapeAdapter):
    """Greedy match from the first ``[{`` to the last ``}]``."""

    def extract(self, raw_text: str) -> str:
        match = ARRAY_OF_OBJECTS_PATTERN.search(raw_text)
        if match:
            return match.group(0)
        logger.info("No JSON array found in model output, using the raw text")
        return raw_text.strip()


class PassthroughExtractor(ResponseShapeAdapter):
    """For responses that are known to be bare JSON."""

    def extract(self, raw_text: str) -> str:
        return raw_text.strip()


def extract_candidate(raw_text: str) -> str:
    return BracketArrayExtractor().extract(raw_text)


def _escape_bare_backslash(match: "re.Match[str]") -> str:
    if match.group(1) is not None:
        return match.group(0)
    return DOUBLE_BACKSLASH


def repair_escapes(candidate: str) -> str:
    """Make backslash sequences legal inside JSON string literals.

    Bare backslashes (``\\(``, ``\\frac`` ...) are doubled, existing JSON
    escapes are left alone, then runs of four backslashes are folded back to
    two. The rewrite is lexical and does not track string boundaries.
    """
    repaired = BACKSLASH_ESCAPE_PATTERN.sub(_escape_bare_backslash, candidate)
    while QUADRUPLE_BACKSLASH in repaired:
        repaired = repaired.replace(QUADRUPLE_BACKSLASH, DOUBLE_BACKSLASH)
    return repaired


def parse_question_array(repaired: str) -> List[Any]:
    try:
        parsed = json.loads(repaired)
    except ValueError as exc:
        raise ParseError(f"Candidate is not valid JSON: {exc}", candidate=repaired) from exc

    if not isinstance(parsed, list):
        value_type = type(parsed).__name__
        raise SchemaError(f"Expected a JSON array, got {value_type}.", value_type=value_type)
    return parsed
