"""Recover a JSON object from free-form model output.

The extraction is a pipeline of total functions. Each stage takes the text
produced so far and returns a StageResult, so a failure always names the
stage where it happened:

    strip_fences -> slice_outer_braces -> try_parse -> repair_and_retry

After a successful parse an explicit ``error`` field is raised as
ContentRefusedError, and the shape's normaliser fills every expected field.
"""
import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Optional

from healthcare_pro.utils.exceptions import ContentRefusedError, ParseError

logger = logging.getLogger("healthcare_pro")

STRIP_FENCES = "strip_fences"
SLICE_OUTER_BRACES = "slice_outer_braces"
TRY_PARSE = "try_parse"
REPAIR_AND_RETRY = "repair_and_retry"

_OPEN_FENCE = re.compile(r"^```[a-zA-Z]*\s*")
_CLOSE_FENCE = re.compile(r"\s*```$")
_TRAILING_COMMA_OBJ = re.compile(r",\s*}")
_TRAILING_COMMA_ARR = re.compile(r",\s*]")
_SMART_QUOTES = {"“": '"', "”": '"', "„": '"', "‘": "'", "’": "'"}


@dataclass(frozen=True)
class StageResult:
    stage: str
    ok: bool
    text: str = ""
    value: Any = None
    error: Optional[str] = None


def strip_fences(text: str) -> StageResult:
    cleaned = (text or "").strip()
    if cleaned.startswith("```"):
        cleaned = _CLOSE_FENCE.sub("", _OPEN_FENCE.sub("", cleaned, count=1))
    return StageResult(STRIP_FENCES, True, text=cleaned)


def slice_outer_braces(text: str) -> StageResult:
    first = text.find("{")
    last = text.rfind("}")
    if first == -1 or last == -1 or last < first:
        return StageResult(SLICE_OUTER_BRACES, False, text=text, error="no JSON object found")
    return StageResult(SLICE_OUTER_BRACES, True, text=text[first:last + 1])


def try_parse(text: str) -> StageResult:
    try:
        value = json.loads(text)
    except json.JSONDecodeError as exc:
        return StageResult(TRY_PARSE, False, text=text, error=str(exc))
    if not isinstance(value, dict):
        return StageResult(TRY_PARSE, False, text=text, error="top-level JSON value is not an object")
    return StageResult(TRY_PARSE, True, text=text, value=value)


def repair(text: str) -> str:
    fixed = _TRAILING_COMMA_OBJ.sub("}", text)
    fixed = _TRAILING_COMMA_ARR.sub("]", fixed)
    for smart, plain in _SMART_QUOTES.items():
        fixed = fixed.replace(smart, plain)
    return fixed


def repair_and_retry(text: str) -> StageResult:
    result = try_parse(repair(text))
    return StageResult(REPAIR_AND_RETRY, result.ok, text=result.text, value=result.value, error=result.error)


def extract_json(raw_text: str) -> StageResult:
    """Run the extraction stages and return the last result."""
    result = strip_fences(raw_text)
    result = slice_outer_braces(result.text)
    if not result.ok:
        return result
    parsed = try_parse(result.text)
    if parsed.ok:
        return parsed
    return repair_and_retry(result.text)


def parse(raw_text: str, shape, source_text: Optional[str] = None) -> dict:
    """Parse ``raw_text`` into the normalised dict for ``shape``.

    Raises ParseError(stage) when nothing can be recovered and the shape has
    no fallback for that stage, and ContentRefusedError when the model sent an
    ``error`` field instead of an answer.
    """
    result = extract_json(raw_text)
    if not result.ok:
        logger.warning({"function": "parse", "shape": shape.name, "stage": result.stage, "error": result.error})
        logger.debug({"function": "parse", "raw_response": raw_text})
        if shape.fallback is not None and result.stage in shape.fallback_stages:
            return shape.fallback(raw_text, source_text)
        raise ParseError(result.stage)

    obj = result.value
    refusal = obj.get("error")
    if refusal:
        raise ContentRefusedError(str(refusal), {"shape": shape.name})
    return shape.normalize(obj, source_text)
