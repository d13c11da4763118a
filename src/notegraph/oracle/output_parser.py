"""
JSON extraction from hosted-model output.

Handles:
- <think>...</think> reasoning blocks around the answer
- Markdown code fences
- Prose before/after the JSON object
"""

import json
import logging
import re
from typing import Any

logger = logging.getLogger(__name__)


class OutputParser:
    """Robust JSON parser for model replies. Only strips complete tag pairs."""

    THINKING_PATTERNS = [
        re.compile(r'<think>[\s\S]*?</think>', re.DOTALL),
        re.compile(r'<thinking>[\s\S]*?</thinking>', re.DOTALL),
    ]

    CODE_PATTERNS = [
        re.compile(r'```json\s*([\s\S]*?)\s*```', re.DOTALL),
        re.compile(r'```\s*([\s\S]*?)\s*```', re.DOTALL),
    ]

    JSON_PATTERNS = [
        re.compile(r'(\{[\s\S]*\})', re.DOTALL),
        re.compile(r'(\[[\s\S]*\])', re.DOTALL),
    ]

    @classmethod
    def strip_thinking(cls, text: str) -> str:
        """Remove reasoning blocks and orphan tags, keep everything else."""
        if not text:
            return ""
        result = text
        for pattern in cls.THINKING_PATTERNS:
            result = pattern.sub('', result)
        result = re.sub(r'</?think(?:ing)?>', '', result)
        return result.strip()

    @classmethod
    def parse_json(cls, raw_output: str | None, fallback: Any = None) -> Any:
        """
        Parse JSON from model output.

        Tries, in order: the whole text, fenced code blocks, then the
        outermost object or array found in the text.
        """
        if not raw_output:
            return fallback

        text = cls.strip_thinking(raw_output)
        if not text:
            return fallback

        try:
            return json.loads(text)
        except json.JSONDecodeError:
            pass

        for pattern in cls.CODE_PATTERNS + cls.JSON_PATTERNS:
            match = pattern.search(text)
            if match:
                try:
                    return json.loads(match.group(1))
                except json.JSONDecodeError:
                    continue

        logger.warning(f"Failed to parse JSON from output: {text[:200]}...")
        return fallback
