"""Error taxonomy for the question generation pipeline."""

from typing import Optional


PARSE_FAILURE_MESSAGE = "Failed to parse AI response. The AI did not return valid JSON."


class QuestionGenerationError(Exception):
    status_code = 500
    public_message = "Failed to generate questions due to an internal error."

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.public_message)

    def to_response_message(self) -> str:
        return self.public_message


class InputValidationError(QuestionGenerationError, ValueError):
    """Bad request parameters. Raised before any upstream call is made."""

    status_code = 400

    def to_response_message(self) -> str:
        # Validation messages are safe to show the caller verbatim.
        return str(self)


class UpstreamGenerationError(QuestionGenerationError, RuntimeError):
    """The generation service was unreachable, rejected the call, or returned nothing."""

    public_message = "Failed to generate questions from the AI service."

    def __init__(self, message: str = "", upstream_status: Optional[int] = None) -> None:
        super().__init__(message)
        self.upstream_status = upstream_status


class ParseError(QuestionGenerationError, ValueError):
    """The repaired candidate is not valid JSON."""

    public_message = PARSE_FAILURE_MESSAGE

    def __init__(self, message: str, candidate: str) -> None:
        super().__init__(message)
        self.candidate = candidate


class SchemaError(QuestionGenerationError, ValueError):
    """The parsed candidate is valid JSON but its top level is not an array."""

    public_message = PARSE_FAILURE_MESSAGE

    def __init__(self, message: str, value_type: str) -> None:
        super().__init__(message)
        self.value_type = value_type
