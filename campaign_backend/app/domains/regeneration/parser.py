import json
import re
from typing import Any

from pydantic import ValidationError

from campaign_backend.app.domains.regeneration.errors import (
    CandidateShapeError,
    ResponseParseError,
)
from campaign_backend.app.domains.regeneration.schemas import CandidateDocument
from campaign_backend.app.logging_config import get_logger

logger = get_logger("app.domains.regeneration.parser")


class ResponseParser:
    """
    Turn completion text into a candidate document.

    Strict JSON is tried first. Otherwise the outermost brace-delimited
    block is extracted, a fixed sequence of conservative repairs is applied
    (missing commas across line breaks, trailing commas) and parsing is
    retried once.
    """

    OBJECT_PATTERN = re.compile(r"\{[\s\S]*\}")
    REPAIRS: tuple[tuple[re.Pattern[str], str], ...] = (
        (re.compile(r'"\s*\n\s*"'), '",\n"'),
        (re.compile(r'\]\s*\n\s*"'), '],\n"'),
        (re.compile(r"\}\s*\n\s*\{"), "},\n{"),
        (re.compile(r"\]\s*\n\s*\{"), "],\n{"),
        (re.compile(r",\s*\]"), "]"),
        (re.compile(r",\s*\}"), "}"),
    )

    def parse(self, text: str) -> dict[str, Any]:
        try:
            return self._expect_object(json.loads(text))
        except json.JSONDecodeError as strict_error:
            match = self.OBJECT_PATTERN.search(text)
            if not match:
                raise ResponseParseError(
                    "No JSON structure found in AI response",
                    parser_error=str(strict_error),
                ) from strict_error

            repaired = self.repair(match.group(0))
            try:
                data = json.loads(repaired)
            except json.JSONDecodeError as repair_error:
                logger.warning(f"JSON repair failed: {repair_error}")
                raise ResponseParseError(
                    f"Invalid JSON response from AI. Error: {strict_error}",
                    parser_error=str(strict_error),
                ) from repair_error

            logger.info("Completion text parsed after extraction and repair")
            return self._expect_object(data)

    def repair(self, json_text: str) -> str:
        for pattern, replacement in self.REPAIRS:
            json_text = pattern.sub(replacement, json_text)
        return json_text

    def to_candidate(self, data: dict[str, Any]) -> CandidateDocument:
        try:
            return CandidateDocument.model_validate(data)
        except ValidationError as e:
            first = e.errors()[0] if e.errors() else {}
            location = ".".join(str(part) for part in first.get("loc", ()))
            raise CandidateShapeError(
                f"{location}: {first.get('msg', 'invalid value')}" if location else str(e)
            ) from e

    def parse_candidate(self, text: str) -> CandidateDocument:
        return self.to_candidate(self.parse(text))

    @staticmethod
    def _expect_object(data: Any) -> dict[str, Any]:
        if not isinstance(data, dict):
            raise ResponseParseError(
                "No JSON structure found in AI response",
                parser_error=f"top-level JSON value is {type(data).__name__}, expected object",
            )
        return data
