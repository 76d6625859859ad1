"""
JSON Normalizer - Extract and repair JSON from LLM output.

Gemini often wraps its JSON in prose or Markdown fences, swaps in
typographic quotes, or stops mid-object when it hits the output token
limit. The normalizer rescues a JSON object from all of these.

Flow:
1. Strip Markdown fences and normalize curly quotes
2. Locate the first "{"
3. Balance brackets from there; on truncation, cut at the last complete
   value and close every open container
4. Parse, applying basic repairs (trailing commas, unquoted keys) before
   giving up
"""

import json
import re
from dataclasses import dataclass
from typing import Any

from kisanmitra.core.models import NormalizationFailure


@dataclass
class NormalizerResult:
    """Result of JSON normalization attempt."""

    success: bool
    data: dict[str, Any] | None = None
    error: str | None = None
    failure: NormalizationFailure | None = None
    repairs_applied: list[str] | None = None


class JSONNormalizer:
    """Extract and repair a JSON object from model output."""

    CODE_FENCE_PATTERN = re.compile(r"```(?:json)?", re.IGNORECASE)
    QUOTE_TRANSLATION = str.maketrans(
        {
            "\u201c": '"',
            "\u201d": '"',
            "\u2018": "'",
            "\u2019": "'",
        }
    )
    TRAILING_COMMA_PATTERN = re.compile(r",(\s*[}\]])")
    UNQUOTED_KEY_PATTERN = re.compile(r"([{,]\s*)([a-zA-Z_][a-zA-Z0-9_]*)(\s*:)")

    OPENERS = {"{": "}", "[": "]"}
    STRUCTURAL = set('{}[],:"')

    def normalize(self, raw_output: str) -> NormalizerResult:
        """
        Attempt to extract a JSON object from raw model output.

        Never raises: every failure is reported on the result with one of
        the NormalizationFailure conditions.

        Args:
            raw_output: Raw string output from model

        Returns:
            NormalizerResult with success status and parsed data or error
        """
        text, repairs = self._strip_noise(raw_output or "")

        start = text.find("{")
        if start == -1:
            return NormalizerResult(
                success=False,
                error="No JSON object found in response",
                failure=NormalizationFailure.NO_JSON_FOUND,
                repairs_applied=repairs or None,
            )

        candidate, truncated = self._balance(text, start)
        if truncated:
            repairs.append("closed_truncated_json")
        elif start > 0 or len(candidate) < len(text):
            repairs.append("extracted_json_structure")

        result = self._try_parse(candidate)
        if not result.success:
            repaired, repair_list = self._apply_repairs(candidate)
            if repair_list:
                repairs.extend(repair_list)
                result = self._try_parse(repaired)

        if result.success and truncated and not result.data:
            return NormalizerResult(
                success=False,
                error="Truncated JSON held no complete value",
                failure=NormalizationFailure.TRUNCATED_JSON,
                repairs_applied=repairs,
            )

        if result.success:
            result.repairs_applied = repairs or None
            return result

        failure = (
            NormalizationFailure.TRUNCATED_JSON
            if truncated
            else NormalizationFailure.MALFORMED_JSON
        )
        return NormalizerResult(
            success=False,
            error=f"Failed to normalize JSON after repairs {repairs}: {result.error}",
            failure=failure,
            repairs_applied=repairs or None,
        )

    def _strip_noise(self, text: str) -> tuple[str, list[str]]:
        """Remove code fence markers and typographic quotes."""
        repairs: list[str] = []

        if self.CODE_FENCE_PATTERN.search(text):
            text = self.CODE_FENCE_PATTERN.sub("", text)
            repairs.append("stripped_code_fences")

        translated = text.translate(self.QUOTE_TRANSLATION)
        if translated != text:
            repairs.append("normalized_quotes")

        return translated.strip(), repairs

    def _balance(self, text: str, start: int) -> tuple[str, bool]:
        """
        Scan from the opening brace to its matching closer.

        Brackets inside string literals are ignored. If the input ends with
        containers still open, the text is cut back to the last point where
        a value was complete and the open containers are closed in reverse.
        Complete array elements survive the cut; a trailing partial token
        (unterminated string, possibly cut number, dangling key) does not,
        and neither does a container opened with no complete member.

        Returns:
            (candidate JSON text, whether the input was truncated)
        """
        stack: list[str] = []
        in_string = False
        escaped = False
        string_is_key = False
        in_scalar = False
        expecting_key = False

        # Last cut point that yields closable JSON, and the open containers there
        safe_end = start + 1
        safe_stack = ["{"]

        for i in range(start, len(text)):
            ch = text[i]

            if in_string:
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_string = False
                    if not string_is_key:
                        safe_end, safe_stack = i + 1, list(stack)
                continue

            if in_scalar and (ch.isspace() or ch in self.STRUCTURAL):
                in_scalar = False
                if ch.isspace():
                    safe_end, safe_stack = i, list(stack)

            if ch == '"':
                in_string = True
                string_is_key = expecting_key and stack[-1] == "{"
            elif ch in self.OPENERS:
                # Not a cut point: a container with no complete member is dropped
                stack.append(ch)
                expecting_key = ch == "{"
            elif ch in "}]":
                stack.pop()
                if not stack:
                    return text[start : i + 1], False
                expecting_key = False
                safe_end, safe_stack = i + 1, list(stack)
            elif ch == ",":
                safe_end, safe_stack = i, list(stack)
                expecting_key = stack[-1] == "{"
            elif ch == ":":
                expecting_key = False
            elif not ch.isspace() and not expecting_key:
                in_scalar = True

        closers = "".join(self.OPENERS[opener] for opener in reversed(safe_stack))
        return text[start:safe_end].rstrip() + closers, True

    def _try_parse(self, text: str) -> NormalizerResult:
        """Attempt to parse text as a JSON object."""
        try:
            data = json.loads(text.strip())
        except (ValueError, RecursionError) as e:
            return NormalizerResult(success=False, error=str(e))

        if isinstance(data, dict):
            return NormalizerResult(success=True, data=data)
        return NormalizerResult(
            success=False, error=f"Unexpected JSON type: {type(data).__name__}"
        )

    def _apply_repairs(self, text: str) -> tuple[str, list[str]]:
        """Apply common JSON repairs."""
        repairs: list[str] = []
        result = text

        # Remove trailing commas before } or ]
        if self.TRAILING_COMMA_PATTERN.search(result):
            result = self.TRAILING_COMMA_PATTERN.sub(r"\1", result)
            repairs.append("removed_trailing_commas")

        # Fix unquoted keys (simple cases)
        if self.UNQUOTED_KEY_PATTERN.search(result):
            result = self.UNQUOTED_KEY_PATTERN.sub(r'\1"\2"\3', result)
            repairs.append("quoted_keys")

        # Fix single quotes to double quotes (careful with nested)
        if "'" in result and '"' not in result:
            result = result.replace("'", '"')
            repairs.append("single_to_double_quotes")

        return result, repairs
