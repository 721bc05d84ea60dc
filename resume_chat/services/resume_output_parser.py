import json
import logging
import re

from pydantic import ValidationError

from resume_chat.errors import ResumeParseError
from resume_chat.schemas.resume import ResumeSnapshot

logger = logging.getLogger(__name__)

_LEADING_FENCE_RE = re.compile(r"^```(?:json)?", re.IGNORECASE)


def strip_code_fences(text: str) -> str:
    clean = (text or "").strip()
    clean = _LEADING_FENCE_RE.sub("", clean, count=1)
    if clean.endswith("```"):
        clean = clean[:-3]
    return clean.strip()


def extract_json_object(text: str) -> str:
    """Slice from the first `{` to the last `}`."""
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end == -1 or end <= start:
        raise ResumeParseError("No valid JSON found in AI response")
    return text[start:end + 1]


def _strip_comments_and_trailing_commas(raw: str) -> str:
    """Drop // and /* */ comments and trailing commas, leaving string literals alone."""
    out: list[str] = []
    i, n = 0, len(raw)
    in_string = False
    while i < n:
        ch = raw[i]
        if in_string:
            out.append(ch)
            if ch == "\\" and i + 1 < n:
                out.append(raw[i + 1])
                i += 2
                continue
            if ch == '"':
                in_string = False
            i += 1
            continue
        if ch == '"':
            in_string = True
            out.append(ch)
            i += 1
        elif raw.startswith("//", i):
            nl = raw.find("\n", i)
            i = n if nl == -1 else nl
        elif raw.startswith("/*", i):
            close = raw.find("*/", i + 2)
            i = n if close == -1 else close + 2
        elif ch == ",":
            j = i + 1
            while j < n and raw[j].isspace():
                j += 1
            if j < n and raw[j] in "}]":
                i += 1
            else:
                out.append(ch)
                i += 1
        else:
            out.append(ch)
            i += 1
    return "".join(out)


def parse_resume(text: str) -> ResumeSnapshot:
    """Read a ResumeSnapshot out of raw model output. Raises ResumeParseError."""
    candidate = extract_json_object(strip_code_fences(text))
    try:
        # second pass catches commas that sat in front of a comment
        cleaned = _strip_comments_and_trailing_commas(_strip_comments_and_trailing_commas(candidate))
        obj = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise ResumeParseError(f"Failed to parse enhanced resume: {e}") from e
    if not isinstance(obj, dict):
        raise ResumeParseError("AI response JSON is not an object")
    try:
        return ResumeSnapshot.model_validate(obj)
    except ValidationError as e:
        raise ResumeParseError(f"Resume JSON has an invalid shape: {e.error_count()} errors") from e
