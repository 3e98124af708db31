"""
Default semantic-matching collaborator for the Targeting context.

Matching runs in three passes over the job elements:
1. Exact: same normalized_text as some resume element (confidence 1.0)
2. Synonym: listed together in SYNONYM_GROUPS (confidence 0.95)
3. LLM: one batched call for whatever is still unmatched (only when a
   provider is configured); matches below 0.5 confidence or with invalid
   indices are dropped, unknown match types become "semantic"

A failure of the LLM pass is logged and the deterministic matches are
returned on their own.
"""

import json
from dataclasses import replace
from typing import Dict, List, Optional, Sequence

from tailor.contexts.intake.data_structures import Element
from tailor.contexts.targeting.logger import _log_debug, _log_warning, log_matches_found
from tailor.contexts.targeting.match_data_structures import MatchType, SemanticMatch
from tailor.utils.degradation import handle_semantic_analysis_failure, with_graceful_degradation_sync
from tailor.utils.errors import TailorError
from tailor.utils.event_logging import EventLog
from tailor.utils.llm import LLMProvider, parse_json_response

EXACT_CONFIDENCE = 1.0
SYNONYM_CONFIDENCE = 0.95
MIN_LLM_CONFIDENCE = 0.5
FALLBACK_TAGS = ["general"]

# Terms in the same group are treated as synonyms (normalized form)
SYNONYM_GROUPS = (
    ("javascript", "js", "ecmascript"),
    ("typescript", "ts"),
    ("python", "py"),
    ("react", "reactjs", "react.js"),
    ("vue", "vuejs", "vue.js"),
    ("angular", "angularjs"),
    ("postgresql", "postgres", "psql"),
    ("mongodb", "mongo"),
    ("leadership", "led team", "managed team", "team lead"),
    ("communication", "communicate", "communicating"),
    ("problem solving", "problem-solving", "troubleshooting"),
    ("senior", "sr", "lead", "principal"),
    ("junior", "jr", "entry level", "entry-level"),
)


def build_synonym_dictionary(groups=SYNONYM_GROUPS) -> Dict[str, set]:
    """Map each term to the set of its synonyms (excluding itself)."""
    dictionary: Dict[str, set] = {}
    for group in groups:
        for term in group:
            dictionary.setdefault(term, set()).update(t for t in group if t != term)
    return dictionary


# =============================================================================
# PROMPT TEMPLATES
# =============================================================================

_MATCH_SYSTEM_PROMPT = """\
You are an ATS semantic matcher. Return JSON only.
Match job elements to the best resume element when they mean the same thing.

Match types:
- "synonym": different words with the same meaning (JavaScript / JS)
- "related": same category or close concept (Python / programming)
- "semantic": contextually similar concepts

Confidence: 0.95 strong synonym, 0.7-0.9 related, 0.5-0.7 semantic. Omit anything below 0.5.

Response format:
{"matches": [{"jobIndex": 0, "resumeIndex": 1, "matchType": "related", "confidence": 0.8}]}"""

_MATCH_USER_PROMPT_TEMPLATE = """\
Match each job element to the best resume element if a meaningful match exists.
Only include matches with confidence >= 0.5. Use the provided indices.

Resume elements (JSON):
{resume_json}

Job elements to match (JSON):
{job_json}"""

_TAG_SYSTEM_PROMPT = """\
You assign semantic tags to elements extracted from job descriptions and resumes.
Assign at least one tag. For technical terms include related concept tags
(e.g. "Python" -> ["programming", "software development"]).
Response format: {"tags": ["tag1", "tag2"]}"""

_TAG_USER_PROMPT_TEMPLATE = """\
Element: "{text}"
Normalized: "{normalized}"
Context: "{context}\""""


def _element_payload(index: int, element: Element) -> dict:
    return {
        "index": index,
        "text": element.text,
        "tags": list(element.tags),
        "category": getattr(element, "category", None) or "keyword",
        "context": element.context,
    }


class SemanticMatcher:
    """
    Finds SemanticMatches between resume and job elements.

    Args:
        provider: Optional LLM provider for the batched semantic pass
        event_log: Optional EventLog for LLM-pass failures
    """

    def __init__(self, provider: Optional[LLMProvider] = None, event_log: Optional[EventLog] = None):
        self.provider = provider
        self.event_log = event_log
        self.synonyms = build_synonym_dictionary()

    def is_synonym(self, term1: str, term2: str) -> bool:
        return term2 in self.synonyms.get(term1, ()) or term1 in self.synonyms.get(term2, ())

    def _find_synonym(self, job_element: Element, resume_elements: Sequence[Element]) -> Optional[Element]:
        if not job_element.normalized_text:
            return None
        for resume_element in resume_elements:
            if resume_element.normalized_text and self.is_synonym(
                job_element.normalized_text, resume_element.normalized_text
            ):
                return resume_element
        return None

    def find_semantic_matches(
        self, resume_elements: Sequence[Element], job_elements: Sequence[Element]
    ) -> List[SemanticMatch]:
        """
        Match job elements against resume elements.

        Returns:
            At most one deterministic match per job element, plus whatever the
            LLM pass accepted for the rest
        """
        if not resume_elements or not job_elements:
            return []

        resume_by_text: Dict[str, Element] = {}
        for element in resume_elements:
            if element.normalized_text:
                resume_by_text.setdefault(element.normalized_text, element)

        matches = []
        remaining = []
        for index, job_element in enumerate(job_elements):
            exact = resume_by_text.get(job_element.normalized_text)
            if job_element.normalized_text and exact is not None:
                matches.append(SemanticMatch(exact, job_element, MatchType.EXACT, EXACT_CONFIDENCE))
                continue
            synonym = self._find_synonym(job_element, resume_elements)
            if synonym is not None:
                matches.append(SemanticMatch(synonym, job_element, MatchType.SYNONYM, SYNONYM_CONFIDENCE))
                continue
            remaining.append(index)

        _log_debug(f"{len(matches)} exact/synonym matches, {len(remaining)} job elements left")

        if remaining and self.provider is not None:
            try:
                matches.extend(self._match_with_llm(resume_elements, job_elements, remaining))
            except Exception as e:
                _log_warning(f"LLM matching failed, keeping deterministic matches: {e}")
                if self.event_log is not None:
                    self.event_log.log_error(
                        "semantic_matching_llm", e, fallback="deterministic_matches_only"
                    )

        log_matches_found(len(matches), len(job_elements))
        return matches

    def _match_with_llm(
        self,
        resume_elements: Sequence[Element],
        job_elements: Sequence[Element],
        remaining: List[int],
    ) -> List[SemanticMatch]:
        user_prompt = _MATCH_USER_PROMPT_TEMPLATE.format(
            resume_json=json.dumps([_element_payload(i, e) for i, e in enumerate(resume_elements)]),
            job_json=json.dumps([_element_payload(i, job_elements[i]) for i in remaining]),
        )
        response = self.provider.generate(_MATCH_SYSTEM_PROMPT, user_prompt)
        result = parse_json_response(response.content)
        raw_matches = result.get("matches") if isinstance(result, dict) else result
        if not isinstance(raw_matches, list):
            return []

        allowed_jobs = set(remaining)
        matches = []
        for raw in raw_matches:
            if not isinstance(raw, dict):
                continue
            try:
                job_index = int(raw.get("jobIndex"))
                resume_index = int(raw.get("resumeIndex"))
                confidence = float(raw.get("confidence"))
            except (TypeError, ValueError):
                continue
            if job_index not in allowed_jobs or not 0 <= resume_index < len(resume_elements):
                continue
            if not confidence >= MIN_LLM_CONFIDENCE:
                continue

            match_type = raw.get("matchType")
            if match_type not in (MatchType.SYNONYM, MatchType.RELATED, MatchType.SEMANTIC):
                match_type = MatchType.SEMANTIC
            matches.append(
                SemanticMatch(
                    resume_elements[resume_index],
                    job_elements[job_index],
                    match_type,
                    min(confidence, 1.0),
                )
            )
        return matches

    def analyze_tags(self, element: Element, context: str = "") -> List[str]:
        """
        Semantic tags for an element.

        Returns ["general"] without a provider or when the LLM answers with no
        usable tags.

        Raises:
            TailorError: SEMANTIC_ANALYSIS_FAILED if the provider call fails
        """
        if self.provider is None:
            return list(FALLBACK_TAGS)
        try:
            response = self.provider.generate(
                _TAG_SYSTEM_PROMPT,
                _TAG_USER_PROMPT_TEMPLATE.format(
                    text=element.text, normalized=element.normalized_text, context=context
                ),
            )
        except Exception as e:
            raise TailorError.semantic_analysis_failed(
                str(e), context={"element": element.text}
            ) from e

        result = parse_json_response(response.content)
        tags = result.get("tags") if isinstance(result, dict) else None
        if not isinstance(tags, list) or not tags:
            return list(FALLBACK_TAGS)
        return [str(tag) for tag in tags]

    def tag_elements(self, elements: Sequence[Element]) -> List[Element]:
        """
        Fill in tags for elements that have none.

        Elements that already carry tags are kept as they are. If analysis of
        one element fails, that element falls back to basic keyword tagging
        and the rest are unaffected.
        """
        tagged = []
        for element in elements:
            if element.tags:
                tagged.append(element)
                continue
            tagged.append(
                with_graceful_degradation_sync(
                    lambda el=element: replace(el, tags=tuple(self.analyze_tags(el, el.context))),
                    lambda error, el=element: handle_semantic_analysis_failure(
                        el, error, self.event_log
                    ),
                    "semantic_analysis",
                    report=False,
                )
            )
        _log_debug(f"Tagged {sum(1 for e in elements if not e.tags)} of {len(elements)} elements")
        return tagged
