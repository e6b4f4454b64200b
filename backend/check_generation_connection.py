"""Direct connectivity check against the configured generation provider.

Usage:
  python3 check_generation_connection.py [openai|openrouter]
"""

import sys
from pathlib import Path

from dotenv import load_dotenv

from generation_errors import UpstreamGenerationError
from generation_gateway import get_model, get_provider, request_completion

PROJECT_ENV = Path(__file__).resolve().parent / ".env"
HOME_ENV = Path.home() / ".env"

project_loaded = load_dotenv(PROJECT_ENV)
home_loaded = load_dotenv(HOME_ENV)


def main() -> int:
    provider = sys.argv[1].strip().lower() if len(sys.argv) > 1 else get_provider()
    model = get_model(provider)
    print(f"Loaded .env status: project={project_loaded}, home={home_loaded}")
    print(f"Provider: {provider}, model: {model}")

    try:
        output_text = request_completion(
            "Reply with exactly OK",
            provider=provider,
            model=model,
            max_retries=0,
        )
    except UpstreamGenerationError as exc:
        print(f"ERROR: {exc}")
        if exc.upstream_status is None:
            print(f"Checked env files: {PROJECT_ENV}, {HOME_ENV}")
            return 1
        return 3

    print(f"Output: {output_text!r}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
