"""Builds the instruction text sent to the generation model."""

import re
from typing import Tuple


SYSTEM_INSTRUCTION = (
    "You are an expert AP teacher. Your task is to create authentic AP-style questions "
    "following strict format requirements. Your entire response must be valid JSON."
)

TEST_TYPES = ("mcq", "frq", "full")

MATH_SCIENCE_KEYWORDS = (
    "calculus", "algebra", "geometry", "derivative", "integral", "limit", "math",
    "mathematics", "statistics", "statistical", "probability", "probabilities",
    "distribution", "regression", "physics", "chemistry", "biology", "photosynthesis",
    "molecule", "molecular", "bond", "bonding", "reaction", "equation", "force",
    "energy", "cell", "cellular", "genetics", "environmental", "ecosystem",
)
PROGRAMMING_KEYWORDS = (
    "java", "python", "code", "coding", "program", "programming", "algorithm", "array",
    "arraylist", "recursion", "class", "method", "loop", "computer science",
    "inheritance", "string",
)
HUMANITIES_KEYWORDS = (
    "history", "war", "revolution", "empire", "government", "politics", "literature",
    "poetry", "poem", "novel", "rhetoric", "essay", "psychology", "economics",
    "geography", "art", "civilization", "constitution",
)

MATH_SCIENCE_NOTATION = (
    "- **Math/Science subjects**: Use LaTeX with \\( ... \\) for inline and \\[ ... \\] for display math\n"
    "- Use proper LaTeX for fractions (\\frac{num}{den}), integrals (\\int), derivatives (\\frac{d}{dx}), etc.\n"
)
PROGRAMMING_NOTATION = (
    "- **Programming subjects**: Use proper syntax highlighting with ```language blocks\n"
    "- Include necessary import statements when relevant\n"
)
HUMANITIES_NOTATION = (
    "- **History/Literature**: Include specific dates, names, locations, and proper citations\n"
)
GENERAL_NOTATION = "- **All subjects**: Use clear, precise academic language\n"

MCQ_FORMAT = """{
  "content": "The question text with proper notation",
  "type": "mcq",
  "subject": "Biology",
  "difficulty": "Medium",
  "options": [
    {"label": "A", "text": "First option"},
    {"label": "B", "text": "Second option"},
    {"label": "C", "text": "Third option"},
    {"label": "D", "text": "Fourth option"}
  ],
  "correctAnswer": "A",
  "explanation": "Detailed explanation of why the correct answer is right and others are wrong"
}"""

FRQ_FORMAT = """{
  "content": "Multi-part question text with proper notation",
  "type": "frq",
  "subject": "Biology",
  "difficulty": "Hard",
  "rubric": {
    "points": 6,
    "criteria": [
      "Part (a): 2 points - Description of what earns points",
      "Part (b): 4 points - Description of what earns points"
    ]
  },
  "sampleResponse": "Detailed sample response showing full-point answer"
}"""

FIELD_DEMAND = (
    'CRITICAL: You MUST include the "subject" field with the course name (Biology, Chemistry, '
    'Physics, Psychology, etc.) and "difficulty" field with Easy, Medium, or Hard.'
)

SUBJECT_DETECTION_EXAMPLES = (
    '- "Generate an AP Biology question about photosynthesis" -> AP Biology\n'
    '- "Create a calculus problem about derivatives" -> AP Calculus AB/BC\n'
    '- "Make a chemistry question about molecular bonding" -> AP Chemistry\n'
    '- "Java programming question about arrays" -> AP Computer Science A\n'
    '- "Statistics problem about normal distribution" -> AP Statistics\n'
    '- "World War II question" -> AP World History or AP US History\n'
    '- "Poetry analysis question" -> AP English Literature\n'
    '- "Psychology question about memory" -> AP Psychology\n'
    '- "Environmental science question about ecosystems" -> AP Environmental Science\n'
)


def _count_keyword_hits(text: str, keywords: Tuple[str, ...]) -> int:
    # Whole words only, with an optional plural "s" or "es".
    return sum(1 for word in keywords if re.search(rf"\b{re.escape(word)}(?:e?s)?\b", text))


def detect_subject_domain(topic: str) -> str:
    """Guess which notation family the topic needs.

    Returns one of ``math_science``, ``programming``, ``humanities`` or
    ``general`` when no family clearly wins.
    """
    text = topic.strip().lower()
    if not text:
        return "general"

    hits = {
        "math_science": _count_keyword_hits(text, MATH_SCIENCE_KEYWORDS),
        "programming": _count_keyword_hits(text, PROGRAMMING_KEYWORDS),
        "humanities": _count_keyword_hits(text, HUMANITIES_KEYWORDS),
    }
    best = max(hits.values())
    if best == 0:
        return "general"
    winners = [domain for domain, count in hits.items() if count == best]
    if len(winners) > 1:
        return "general"
    return winners[0]


def split_full_test_counts(question_count: int) -> Tuple[int, int]:
    """Return (mcq_count, frq_count) as ceil(0.7 n) and floor(0.3 n)."""
    mcq_count = -(-7 * question_count // 10)
    frq_count = 3 * question_count // 10
    return mcq_count, frq_count


def build_notation_rules(domain: str) -> str:
    if domain == "math_science":
        return MATH_SCIENCE_NOTATION + GENERAL_NOTATION
    if domain == "programming":
        return PROGRAMMING_NOTATION + GENERAL_NOTATION
    if domain == "humanities":
        return HUMANITIES_NOTATION + GENERAL_NOTATION
    return MATH_SCIENCE_NOTATION + PROGRAMMING_NOTATION + HUMANITIES_NOTATION + GENERAL_NOTATION


def build_format_section(test_type: str, question_count: int) -> str:
    if test_type == "mcq":
        return (
            "**MCQ FORMAT** - Each question must be in this EXACT JSON format (include ALL fields):\n"
            f"{MCQ_FORMAT}\n\n{FIELD_DEMAND}\n"
        )
    if test_type == "frq":
        return (
            "**FRQ FORMAT** - Each question must be in this EXACT JSON format (include ALL fields):\n"
            f"{FRQ_FORMAT}\n\n{FIELD_DEMAND}\n"
        )

    mcq_count, frq_count = split_full_test_counts(question_count)
    return (
        "**FULL TEST FORMAT** - Generate a full AP-style test with:\n"
        f"- {mcq_count} multiple-choice question(s)\n"
        f"- {frq_count} free-response question(s)\n\n"
        "Each multiple-choice question must be in this EXACT JSON format (include ALL fields):\n"
        f"{MCQ_FORMAT}\n\n"
        "Each free-response question must be in this EXACT JSON format (include ALL fields):\n"
        f"{FRQ_FORMAT}\n\n"
        "Combine all questions into a single JSON array, with MCQs first followed by FRQs.\n\n"
        f"{FIELD_DEMAND}\n"
    )


def build_generation_prompt(
    topic: str,
    test_type: str,
    question_count: int,
    difficulty: str,
) -> str:
    domain = detect_subject_domain(topic)
    return (
        "You are an expert AP teacher with deep knowledge of ALL AP subjects. "
        "Based on the user's request below, you need to:\n\n"
        "1. **IDENTIFY THE SUBJECT**: Analyze the topic to determine which AP subject this "
        "relates to (e.g., AP Biology, AP Chemistry, AP Physics, AP Calculus, AP Statistics, "
        "AP Computer Science A, AP World History, AP US History, AP English Literature, "
        "AP Psychology, AP Environmental Science, etc.)\n\n"
        f"2. **CREATE APPROPRIATE QUESTIONS**: Generate {question_count} high-quality "
        f"{test_type.upper()} question(s) at {difficulty} difficulty level that match the "
        "identified subject and specific topic.\n\n"
        f'**USER\'S REQUEST**: "{topic}"\n\n'
        "**IMPORTANT REQUIREMENTS**:\n"
        "- Create UNIQUE questions that are different from typical examples\n"
        "- Vary the contexts, problem setups, and examples to ensure originality\n"
        "- Make questions appropriate for AP exam level\n"
        "- Ensure questions test deep understanding, not just memorization\n\n"
        "**NOTATION GUIDELINES**:\n"
        f"{build_notation_rules(domain)}\n"
        f"{build_format_section(test_type, question_count)}\n"
        "**RESPONSE FORMAT**: Your response must be a valid JSON array containing exactly "
        f"{question_count} question object(s). Do not include any text before or after the JSON array.\n\n"
        "**EXAMPLES OF SUBJECT DETECTION**:\n"
        f"{SUBJECT_DETECTION_EXAMPLES}\n"
        "Now analyze the user's request and create the appropriate question(s).\n\n"
        'REMEMBER: Every question object MUST include both "subject" and "difficulty" fields '
        "or the response will be rejected!"
    )
