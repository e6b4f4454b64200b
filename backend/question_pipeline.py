"""Wires prompt synthesis, generation, parsing and normalization together."""

import hashlib
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from generation_errors import InputValidationError
from generation_gateway import request_completion
from question_normalizer import ValidationIssue, normalize_questions
from question_prompts import TEST_TYPES, build_generation_prompt
from response_parsing import (
    BracketArrayExtractor,
    ResponseShapeAdapter,
    parse_question_array,
    repair_escapes,
)


logger = logging.getLogger(__name__)

DEFAULT_TEST_TYPE = "mcq"
DEFAULT_QUESTION_COUNT = 1
DEFAULT_DIFFICULTY = "intermediate"


@dataclass
class GenerationRequest:
    topic: str
    test_type: str = DEFAULT_TEST_TYPE
    question_count: int = DEFAULT_QUESTION_COUNT
    difficulty: str = DEFAULT_DIFFICULTY
    include_issues: bool = False

    def fingerprint(self) -> str:
        key = json.dumps(
            [self.topic, self.test_type, self.question_count, self.difficulty],
            ensure_ascii=False,
        )
        return hashlib.sha256(key.encode("utf-8")).hexdigest()


@dataclass
class PipelineResult:
    questions: List[Dict[str, Any]]
    issues: List[ValidationIssue] = field(default_factory=list)


def _parse_question_count(value: Any) -> int:
    if isinstance(value, bool):
        raise InputValidationError("questionCount must be an integer.")
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if isinstance(value, str):
        try:
            value = int(value.strip())
        except ValueError:
            raise InputValidationError("questionCount must be an integer.") from None
    if not isinstance(value, int):
        raise InputValidationError("questionCount must be an integer.")
    if value < 1:
        raise InputValidationError("questionCount must be a positive integer.")
    return value


def validate_generation_request(body: Any) -> GenerationRequest:
    if not isinstance(body, dict):
        raise InputValidationError("Invalid request body.")

    topic = body.get("topic")
    if not isinstance(topic, str) or not topic.strip():
        raise InputValidationError("Topic is required and must be a non-empty string")

    test_type = body.get("testType", DEFAULT_TEST_TYPE)
    if test_type not in TEST_TYPES:
        raise InputValidationError("testType must be one of: mcq, frq, full.")

    question_count = _parse_question_count(body.get("questionCount", DEFAULT_QUESTION_COUNT))

    difficulty = body.get("difficulty")
    if difficulty is None or (isinstance(difficulty, str) and not difficulty.strip()):
        difficulty = DEFAULT_DIFFICULTY
    if not isinstance(difficulty, str):
        raise InputValidationError("difficulty must be a string.")

    include_issues = body.get("includeIssues", False)
    if not isinstance(include_issues, bool):
        raise InputValidationError("includeIssues must be a boolean.")

    return GenerationRequest(
        topic=topic.strip(),
        test_type=test_type,
        question_count=question_count,
        difficulty=difficulty.strip(),
        include_issues=include_issues,
    )


def run_pipeline(
    generation_request: GenerationRequest,
    extractor: Optional[ResponseShapeAdapter] = None,
) -> PipelineResult:
    extractor = extractor or BracketArrayExtractor()
    prompt = build_generation_prompt(
        generation_request.topic,
        generation_request.test_type,
        generation_request.question_count,
        generation_request.difficulty,
    )
    logger.debug("Generated prompt (first 500 chars): %s", prompt[:500])

    raw_text = request_completion(prompt)
    logger.debug("Raw model response: %s", raw_text)

    candidate = extractor.extract(raw_text)
    repaired = repair_escapes(candidate)
    logger.debug("Repaired candidate: %s", repaired)

    items = parse_question_array(repaired)
    questions, issues = normalize_questions(items, generation_request.test_type)
    logger.info(
        "Generated %s question(s) (%s requested, %s issue(s)) for topic %r",
        len(questions),
        generation_request.question_count,
        len(issues),
        generation_request.topic[:80],
    )
    return PipelineResult(questions=questions, issues=issues)


def generate_question_batch(
    topic: Any,
    test_type: Any = DEFAULT_TEST_TYPE,
    question_count: Any = DEFAULT_QUESTION_COUNT,
    difficulty: Any = DEFAULT_DIFFICULTY,
    *,
    extractor: Optional[ResponseShapeAdapter] = None,
) -> PipelineResult:
    """Validate parameters, then run every stage for one batch.

    Raises ``InputValidationError`` before any upstream call when the
    parameters are bad. Upstream, parse and schema failures abort the whole
    batch; per-question problems come back in ``PipelineResult.issues``.
    """
    generation_request = validate_generation_request(
        {
            "topic": topic,
            "testType": test_type,
            "questionCount": question_count,
            "difficulty": difficulty,
        }
    )
    return run_pipeline(generation_request, extractor=extractor)
