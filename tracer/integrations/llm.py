"""Commit message generation via a local LLM (Ollama-compatible API)."""

import json
import logging
from urllib.error import HTTPError, URLError
from urllib.parse import urlparse
from urllib.request import Request, urlopen

from tracer.lib.errors import ExternalServiceError, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_LLM_URL = "http://localhost:11434/api/generate"
DEFAULT_MODEL = "llama3"
LLM_TIMEOUT_SECONDS = 120

PROMPT = """Please analyze the following code changes and generate a commit message following the conventional commit format.
The first line should be the type and description, followed by a blank line and then a detailed description of the changes.

The commit message should follow this format:
<type>(<scope>): <description>

<body>

Where:
- type: feat, fix, docs, style, refactor, test, chore
- scope: optional, what part of the codebase is affected
- description: short description of the change
- body: detailed description of what and why the change was made

Here are the changes to analyze:
"""


def build_prompt(diffs: list[str]) -> str:
    return PROMPT + "".join(f"\n{diff}\n" for diff in diffs)


def check_url(url: str) -> str:
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValidationError(f"invalid LLM API URL: {url}")
    return url


def generate_commit_message(
    diffs: list[str],
    url: str = DEFAULT_LLM_URL,
    model: str = DEFAULT_MODEL,
    timeout: float = LLM_TIMEOUT_SECONDS,
) -> str:
    """Ask the LLM for a conventional commit message describing `diffs`.

    A response without a "type:" prefix is returned as a feat commit.

    Raises:
        ExternalServiceError: on transport errors, non-200 responses or an
            unexpected response body.
    """
    check_url(url)
    payload = {
        "model": model,
        "prompt": build_prompt(diffs),
        "stream": False,
        "options": {"num_predict": 500, "temperature": 0.7},
    }
    req = Request(
        url,
        data=json.dumps(payload).encode(),
        method="POST",
        headers={"Content-Type": "application/json"},
    )

    logger.debug(f"Requesting commit message from {url} ({len(diffs)} diff(s))")
    try:
        with urlopen(req, timeout=timeout) as response:
            body = response.read()
    except HTTPError as e:
        raise ExternalServiceError(f"LLM API returned status code {e.code}") from e
    except (URLError, TimeoutError, OSError) as e:
        raise ExternalServiceError(f"failed to call LLM API: {e}") from e

    try:
        result = json.loads(body)
    except json.JSONDecodeError as e:
        raise ExternalServiceError("failed to decode LLM API response") from e

    if not isinstance(result, dict) or "response" not in result:
        raise ExternalServiceError("missing response field in LLM API response")
    message = result["response"]
    if not isinstance(message, str):
        raise ExternalServiceError("invalid response field type in LLM API response")

    message = message.strip()
    if ":" not in message:
        message = f"feat: {message}"
    return message
