"""Maps parsed model output onto the canonical question record shape.

Records are JSON-ready dicts with camelCase keys. Normalization never raises
for a bad item: problems are returned as ``ValidationIssue`` values next to a
defaulted record, so one malformed question cannot discard its siblings.
"""

import logging
import re
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Tuple


logger = logging.getLogger(__name__)

DEFAULT_SUBJECT = "Unknown Subject"
DEFAULT_DIFFICULTY = "Medium"
ANSWER_PATTERN = re.compile(r"^[A-D]$")
RUBRIC_PLACEHOLDER_CRITERION = "Rubric not available"
MAX_RUBRIC_POINTS = 1000


@dataclass
class ValidationIssue:
    index: int
    field: str
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class NormalizedItem:
    question: Dict[str, Any]
    issues: List[ValidationIssue] = field(default_factory=list)


def placeholder_rubric() -> Dict[str, Any]:
    return {"points": 0, "criteria": [RUBRIC_PLACEHOLDER_CRITERION]}


def _non_empty_string(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def _scalar_text(value: Any) -> bool:
    # bool is an int subclass but never a meaningful label or option text.
    return isinstance(value, (str, int, float)) and not isinstance(value, bool)


def normalize_correct_answer(value: Any) -> Tuple[Any, str]:
    """Return (letter or None, problem description or "")."""
    if value is None or value == "":
        return None, "Missing correctAnswer."
    candidate = str(value).strip().upper()
    if ANSWER_PATTERN.match(candidate):
        return candidate, ""
    return None, f"Invalid correctAnswer {value!r}; expected one of A, B, C, D."


def normalize_options(value: Any) -> Tuple[List[Dict[str, str]], str]:
    if not isinstance(value, list):
        return [], "Missing options list."

    options = [
        {"label": str(opt["label"]).strip(), "text": str(opt["text"])}
        for opt in value
        if isinstance(opt, dict)
        and _scalar_text(opt.get("label"))
        and _scalar_text(opt.get("text"))
    ]
    if not options:
        return options, "No usable options."
    if len(options) != len(value):
        return options, f"Dropped {len(value) - len(options)} malformed option(s)."
    return options, ""


def _rubric_points(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if not isinstance(value, int) or not 0 <= value <= MAX_RUBRIC_POINTS:
        return None
    return value


def normalize_rubric(value: Any) -> Tuple[Dict[str, Any], str]:
    if not isinstance(value, dict):
        return placeholder_rubric(), "Missing rubric."

    points = _rubric_points(value.get("points"))
    criteria = value.get("criteria")
    if (
        points is None
        or not isinstance(criteria, list)
        or not criteria
        or not all(isinstance(item, str) for item in criteria)
    ):
        return placeholder_rubric(), "Malformed rubric; using placeholder."

    rubric: Dict[str, Any] = {"points": points, "criteria": list(criteria)}
    recommended_length = value.get("recommendedLength")
    if isinstance(recommended_length, int) and not isinstance(recommended_length, bool) and recommended_length > 0:
        rubric["recommendedLength"] = recommended_length
    return rubric, ""


def normalize_question(raw: Any, index: int, default_type: str) -> NormalizedItem:
    issues: List[ValidationIssue] = []

    def flag(field_name: str, message: str) -> None:
        issues.append(ValidationIssue(index=index, field=field_name, message=message))

    if not isinstance(raw, dict):
        flag("item", f"Expected an object, got {type(raw).__name__}.")
        raw = {}

    question_type = raw.get("type") or default_type
    if not isinstance(question_type, str):
        question_type = str(question_type)
    question_type = question_type.strip().lower()

    content = raw.get("content")
    if not _non_empty_string(content):
        flag("content", "Missing content.")
        content = f"Error: Content missing for question {index + 1}"

    subject = raw.get("subject")
    difficulty = raw.get("difficulty")
    question: Dict[str, Any] = {
        "id": index,
        "type": question_type,
        "content": content.strip(),
        "subject": subject.strip() if _non_empty_string(subject) else DEFAULT_SUBJECT,
        "difficulty": difficulty.strip() if _non_empty_string(difficulty) else DEFAULT_DIFFICULTY,
    }

    documents = raw.get("documents")
    if isinstance(documents, list):
        question["documents"] = [doc for doc in documents if isinstance(doc, str)]

    if question_type == "mcq":
        options, problem = normalize_options(raw.get("options"))
        question["options"] = options
        if problem:
            flag("options", problem)

        answer, problem = normalize_correct_answer(raw.get("correctAnswer"))
        if answer is not None:
            question["correctAnswer"] = answer
        else:
            flag("correctAnswer", problem)

        if _non_empty_string(raw.get("explanation")):
            question["explanation"] = raw["explanation"].strip()

    elif question_type == "frq":
        rubric, problem = normalize_rubric(raw.get("rubric"))
        question["rubric"] = rubric
        if problem:
            flag("rubric", problem)

        if _non_empty_string(raw.get("sampleResponse")):
            question["sampleResponse"] = raw["sampleResponse"].strip()

    else:
        flag("type", f"Unknown question type '{question_type}'.")
        question["content"] = f"Error: Unknown question type '{question_type}'"

    for issue in issues:
        logger.warning("Question %s: %s %s", issue.index, issue.field, issue.message)
    return NormalizedItem(question=question, issues=issues)


def normalize_questions(items: List[Any], default_type: str) -> Tuple[List[Dict[str, Any]], List[ValidationIssue]]:
    """Normalize every parsed element, keeping input order and length."""
    questions: List[Dict[str, Any]] = []
    issues: List[ValidationIssue] = []
    for index, raw in enumerate(items):
        item = normalize_question(raw, index, default_type)
        questions.append(item.question)
        issues.extend(item.issues)
    return questions, issues
