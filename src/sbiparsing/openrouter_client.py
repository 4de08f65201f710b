"""
OpenRouter API client for AI-powered category suggestions.
"""

import json
import logging
from pathlib import Path
from typing import Any

from openai import OpenAI

logger = logging.getLogger(__name__)

OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"


class OpenRouterError(Exception):
    """Exception raised when OpenRouter API call fails."""


def _read_prompt(prompt_file: Path, kind: str) -> str:
    try:
        with open(prompt_file, encoding="utf-8") as f:
            return f.read()
    except OSError as e:
        raise OpenRouterError(
            f"Failed to read {kind} prompt file {prompt_file}: {e}",
        ) from e


def call_openrouter(
    api_key: str,
    system_prompt_file: Path,
    categories: list[dict[str, Any]],
    uncategorized_transactions: list[dict[str, Any]],
    user_prompt_file: Path,
) -> str:
    """
    Ask OpenRouter to suggest categories for uncategorized transactions.

    Args:
        api_key: OpenRouter API key
        system_prompt_file: Path to file containing system prompt
        categories: Category configuration (ids, names, subcategories)
        uncategorized_transactions: Transactions to categorize
        user_prompt_file: Path to file containing user prompt template.
            The template should contain placeholders {categories} and
            {uncategorized_transactions} which will be replaced with JSON data.

    Returns:
        Response text from OpenRouter API

    Raises:
        OpenRouterError: If API call fails
    """
    system_prompt = _read_prompt(system_prompt_file, "system").strip()
    user_prompt_template = _read_prompt(user_prompt_file, "user")

    user_message = user_prompt_template.replace(
        "{categories}",
        json.dumps(categories, indent=2, ensure_ascii=False),
    ).replace(
        "{uncategorized_transactions}",
        json.dumps(uncategorized_transactions, indent=2, ensure_ascii=False),
    )

    try:
        logger.info(
            f"Requesting category suggestions for {len(uncategorized_transactions)} transactions...",
        )
        client = OpenAI(
            api_key=api_key,
            base_url=OPENROUTER_BASE_URL,
            default_headers={"X-Title": "SBI Parsing"},
        )

        response = client.chat.completions.create(
            model="openrouter/auto",
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_message},
            ],
            timeout=120.0,
        )
    except Exception as e:
        raise OpenRouterError(f"OpenRouter API request failed: {e}") from e

    if not response.choices or not response.choices[0].message.content:
        raise OpenRouterError("Invalid response from OpenRouter API: empty content")

    logger.info("OpenRouter API call successful")
    return response.choices[0].message.content
