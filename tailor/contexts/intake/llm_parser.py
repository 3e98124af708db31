"""
LLM-backed element extraction for job postings and resumes.

These are the default parsing collaborators. Any callable with the same
signature (JobPosting or Resume in, ParsedJob or ParsedResume out) can be
injected in their place.

Extracted elements are normalized, their categories coerced to a known
value, their importance clamped to [0, 1], and duplicates (same
normalized_text) merged: tags are unioned, contexts joined and the highest
importance kept.
"""

from typing import Any, Dict, List, Optional

from tailor.contexts.intake.data_structures import (
    Element,
    ElementCategory,
    JobPosting,
    ParsedJob,
    ParsedResume,
    Resume,
    TaggedElement,
)
from tailor.contexts.intake.logger import _log_debug, _log_warning, log_parse_result
from tailor.contexts.intake.normalizer import normalize_text, prepare_for_parsing
from tailor.utils.errors import TailorError
from tailor.utils.llm import LLMProvider, parse_json_response
from tailor.utils.timestamp import now_exact

MAX_PROMPT_CHARS = 16000

# =============================================================================
# PROMPT TEMPLATES
# =============================================================================

_JOB_SYSTEM_PROMPT = """\
You are an ATS (Applicant Tracking System) parser that analyzes job descriptions.
Extract keywords, skills, attributes, experience requirements and concepts.
Keep multi-word phrases together ("machine learning", not "machine" and "learning").
Preserve acronyms and technical names exactly ("CI/CD", "React.js").

For every element give an importance between 0.0 and 1.0:
- 0.95 for "required", "must have", "essential", "mandatory", "critical", "necessary"
- 0.75 for "strongly preferred", "highly desired", "important"
- 0.4 for "preferred", "nice to have", "bonus", "plus", "optional"
- 0.5 when there is no explicit indicator
When indicators conflict, use the highest importance.

Return ONLY a JSON object:
{"elements": [{"text": "...", "category": "keyword|skill|attribute|experience|concept",
  "tags": ["..."], "context": "surrounding sentence", "importance": 0.0}]}"""

_RESUME_SYSTEM_PROMPT = """\
You are an ATS (Applicant Tracking System) parser that analyzes resumes.
Extract skills, technologies, accomplishments, roles, attributes and experience.
Keep multi-word phrases together and preserve technical names exactly.

Return ONLY a JSON object:
{"elements": [{"text": "...", "category": "keyword|skill|attribute|experience|concept",
  "tags": ["..."], "context": "surrounding sentence"}]}"""

_USER_PROMPT_TEMPLATE = """\
Extract all important elements from this {kind}.

---
{content}"""


# =============================================================================
# RESPONSE HANDLING
# =============================================================================


def _raw_elements(content: str, kind: str) -> List[Dict[str, Any]]:
    """Pull the list of raw element dicts out of an LLM response."""
    if not content or not content.strip():
        return []

    parsed = parse_json_response(content)
    if isinstance(parsed, dict):
        parsed = parsed.get("elements")
    if not isinstance(parsed, list):
        raise TailorError.parsing_failed(kind, "Invalid response structure: missing elements array")

    return [item for item in parsed if isinstance(item, dict) and str(item.get("text", "")).strip()]


def _clamp_importance(value: Any) -> Optional[float]:
    try:
        importance = float(value)
    except (TypeError, ValueError):
        return None
    if importance != importance:  # NaN
        return None
    return max(0.0, min(1.0, importance))


def _locate(text: str, raw_text: str) -> Optional[tuple]:
    """Character offsets of the first case-insensitive occurrence of text, if any."""
    start = raw_text.lower().find(text.lower())
    if start == -1:
        return None
    return (start, start + len(text))


def _sentence_around(position: Optional[tuple], raw_text: str) -> str:
    """The sentence-like span ('.'/newline delimited) containing position."""
    if position is None:
        return ""
    start, end = position
    left = max(raw_text.rfind(".", 0, start), raw_text.rfind("\n", 0, start)) + 1
    right_candidates = [i for i in (raw_text.find(".", end), raw_text.find("\n", end)) if i != -1]
    right = min(right_candidates) if right_candidates else len(raw_text)
    return raw_text[left:right].strip()


def _build_element(item: Dict[str, Any], raw_text: str) -> Dict[str, Any]:
    text = str(item["text"]).strip()
    position = _locate(text, raw_text)
    tags = item.get("tags")
    return {
        "text": text,
        "normalized_text": normalize_text(text),
        "tags": tuple(str(tag) for tag in tags) if isinstance(tags, list) else (),
        "context": str(item.get("context") or "") or _sentence_around(position, raw_text),
        "position": position,
    }


def deduplicate_elements(elements: List[Element]) -> List[Element]:
    """
    Merge elements sharing a normalized_text, keeping first-seen order.

    Tags are unioned (order preserved), distinct non-empty contexts joined
    with " | ", and for TaggedElements the highest importance is kept.
    """
    groups: Dict[str, List[Element]] = {}
    for element in elements:
        groups.setdefault(element.normalized_text, []).append(element)

    merged = []
    for group in groups.values():
        if len(group) == 1:
            merged.append(group[0])
            continue

        base = group[0]
        tags = tuple(dict.fromkeys(tag for element in group for tag in element.tags))
        contexts = dict.fromkeys(e.context.strip() for e in group if e.context.strip())
        fields = {"tags": tags, "context": " | ".join(contexts)}

        if isinstance(base, TaggedElement):
            importances = [
                e.importance for e in group if isinstance(e, TaggedElement) and e.importance is not None
            ]
            fields["importance"] = max(importances) if importances else None

        merged.append(type(base)(**{**_element_fields(base), **fields}))
    return merged


def _element_fields(element: Element) -> Dict[str, Any]:
    fields = {
        "text": element.text,
        "normalized_text": element.normalized_text,
        "tags": element.tags,
        "context": element.context,
        "position": element.position,
    }
    if isinstance(element, TaggedElement):
        fields["importance"] = element.importance
        fields["category"] = element.category
    return fields


# =============================================================================
# PARSING FUNCTIONS
# =============================================================================


def parse_job_description(job: JobPosting, provider: LLMProvider) -> ParsedJob:
    """
    Extract tagged elements from a job posting.

    Args:
        job: Validated job posting
        provider: Anything with generate(system_prompt, user_prompt) -> LLMResponse

    Returns:
        ParsedJob whose elements are TaggedElements

    Raises:
        TailorError: JOB_PARSING_FAILED if the LLM call fails or its output is malformed
    """
    sections = [
        ("Title", job.title),
        ("Description", job.description),
        ("Requirements", job.requirements),
        ("Qualifications", job.qualifications),
    ]
    raw_text = "\n\n".join(
        f"[{label}]\n{prepare_for_parsing(text)}" for label, text in sections if text and text.strip()
    )

    try:
        response = provider.generate(
            _JOB_SYSTEM_PROMPT,
            _USER_PROMPT_TEMPLATE.format(kind="job description", content=raw_text[:MAX_PROMPT_CHARS]),
        )
    except Exception as e:
        raise TailorError.parsing_failed("job", str(e), {"job_id": job.id}) from e

    elements = []
    for item in _raw_elements(response.content, "job"):
        category = item.get("category")
        if not ElementCategory.is_valid(category):
            _log_debug(f"Unknown category {category!r} for {item['text']!r}, using keyword")
            category = ElementCategory.KEYWORD
        elements.append(
            TaggedElement(
                **_build_element(item, raw_text),
                importance=_clamp_importance(item.get("importance")),
                category=category,
            )
        )

    deduplicated = deduplicate_elements(elements)
    log_parse_result("job", job.id, len(deduplicated), len(elements) - len(deduplicated))
    if not deduplicated:
        _log_warning(f"No elements extracted from job {job.id}")

    return ParsedJob(
        job_id=job.id,
        title=job.title,
        elements=deduplicated,
        raw_text=raw_text,
        metadata={
            **job.metadata,
            "element_count": len(deduplicated),
            "parsed_at": now_exact(),
        },
    )


def parse_resume(resume: Resume, provider: LLMProvider) -> ParsedResume:
    """
    Extract elements from a resume draft.

    Args:
        resume: Resume draft
        provider: Anything with generate(system_prompt, user_prompt) -> LLMResponse

    Returns:
        ParsedResume whose elements are plain Elements

    Raises:
        TailorError: RESUME_PARSING_FAILED if the LLM call fails or its output is malformed
    """
    raw_text = prepare_for_parsing(resume.content)

    try:
        response = provider.generate(
            _RESUME_SYSTEM_PROMPT,
            _USER_PROMPT_TEMPLATE.format(kind="resume", content=raw_text[:MAX_PROMPT_CHARS]),
        )
    except Exception as e:
        raise TailorError.parsing_failed("resume", str(e), {"resume_id": resume.id}) from e

    elements = [Element(**_build_element(item, raw_text)) for item in _raw_elements(response.content, "resume")]
    deduplicated = deduplicate_elements(elements)
    log_parse_result("resume", resume.id, len(deduplicated), len(elements) - len(deduplicated))

    return ParsedResume(
        resume_id=resume.id,
        elements=deduplicated,
        raw_text=raw_text,
        metadata={
            **resume.metadata,
            "format": resume.format,
            "element_count": len(deduplicated),
            "parsed_at": now_exact(),
        },
    )
