"""Backend API for generating exam practice questions from a free-form topic."""

import logging
import os
from pathlib import Path
from typing import Dict, Tuple

from flask import Flask, jsonify, request
from flask_cors import CORS
from dotenv import load_dotenv

from generation_errors import ParseError, QuestionGenerationError, SchemaError
from question_pipeline import PipelineResult, run_pipeline, validate_generation_request
from single_flight import SingleFlight


# Load env vars from project .env and user home .env if present.
load_dotenv(Path(__file__).resolve().parent / ".env")
load_dotenv(Path.home() / ".env")

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").strip().upper() or "INFO"
DEDUPLICATE_REQUESTS = os.environ.get("DEDUPLICATE_REQUESTS", "true").strip().lower() not in {"0", "false", "no", "off"}
INTERNAL_ERROR_MESSAGE = "Failed to generate questions due to an internal error."

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = Flask(__name__)
CORS(app)

in_flight_generations = SingleFlight()


def generate_with_dedup(generation_request) -> PipelineResult:
    if not DEDUPLICATE_REQUESTS:
        return run_pipeline(generation_request)
    return in_flight_generations.do(
        generation_request.fingerprint(),
        lambda: run_pipeline(generation_request),
    )


@app.route("/")
def root() -> str:
    return "Hello"


@app.route("/api/health")
def health() -> Dict:
    return jsonify({"ok": True})


@app.route("/api/generate-questions", methods=["POST"])
def generate_questions() -> Tuple[Dict, int]:
    body = request.get_json(silent=True)
    try:
        generation_request = validate_generation_request(body)
        result = generate_with_dedup(generation_request)

        payload: Dict = {"questions": result.questions}
        if generation_request.include_issues:
            payload["issues"] = [issue.to_dict() for issue in result.issues]
        return jsonify(payload), 200
    except (ParseError, SchemaError) as exc:
        logger.error("Parsing model output failed: %s", exc)
        if isinstance(exc, ParseError):
            logger.error("Problematic JSON string: %s", exc.candidate)
        return jsonify({"error": exc.to_response_message()}), exc.status_code
    except QuestionGenerationError as exc:
        logger.warning("Question generation failed (%s): %s", type(exc).__name__, exc)
        return jsonify({"error": exc.to_response_message()}), exc.status_code
    except Exception:
        logger.exception("Unexpected error in /api/generate-questions")
        return jsonify({"error": INTERNAL_ERROR_MESSAGE}), 500


if __name__ == "__main__":
    app.run(host="localhost", port=8080, debug=True)
