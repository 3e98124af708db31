"""
Data structures for the Intake context.

Raw inputs (JobPosting, Resume) come in from the caller; parsed outputs
(ParsedJob, ParsedResume) hold the Elements extracted from them.

Only job-side elements carry importance and category, so they are modelled
as a separate TaggedElement type rather than optional fields on Element.
"""

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from tailor.contexts.intake.normalizer import normalize_text


class ElementCategory:
    """Enum-like class for job element categories"""

    KEYWORD = "keyword"
    SKILL = "skill"
    ATTRIBUTE = "attribute"
    EXPERIENCE = "experience"
    CONCEPT = "concept"

    @classmethod
    def get_all_types(cls) -> List[str]:
        return [cls.KEYWORD, cls.SKILL, cls.ATTRIBUTE, cls.EXPERIENCE, cls.CONCEPT]

    @classmethod
    def is_valid(cls, category: Optional[str]) -> bool:
        return category in cls.get_all_types()


class ResumeFormat:
    """Enum-like class for accepted resume formats"""

    TEXT = "text"
    MARKDOWN = "markdown"
    OBSIDIAN = "obsidian"

    @classmethod
    def get_all_types(cls) -> List[str]:
        return [cls.TEXT, cls.MARKDOWN, cls.OBSIDIAN]


# =============================================================================
# ELEMENTS
# =============================================================================


@dataclass(frozen=True)
class Element:
    """
    Atomic unit of meaning extracted from text.

    Attributes:
        text: Original substring
        normalized_text: Lowercase canonical form, used as a join key
            (computed from text when left empty)
        tags: Free-form labels
        context: Surrounding text, used for importance inference
        position: (start, end) character offsets in the source text
    """

    text: str
    normalized_text: str = ""
    tags: Tuple[str, ...] = ()
    context: str = ""
    position: Optional[Tuple[int, int]] = None

    def __post_init__(self):
        if not self.normalized_text:
            object.__setattr__(self, "normalized_text", normalize_text(self.text))
        if not isinstance(self.tags, tuple):
            object.__setattr__(self, "tags", tuple(self.tags))


@dataclass(frozen=True)
class TaggedElement(Element):
    """
    Job-side element with importance (0.0-1.0) and category.

    importance and category may be left as None by a parser; the Scoring
    Engine fills them in once on entry (see targeting.scorer.normalize_job_elements).
    """

    importance: Optional[float] = None
    category: Optional[str] = None

    @classmethod
    def from_element(
        cls,
        element: Element,
        importance: Optional[float] = None,
        category: Optional[str] = None,
    ) -> "TaggedElement":
        if isinstance(element, TaggedElement):
            return replace(
                element,
                importance=element.importance if importance is None else importance,
                category=element.category if category is None else category,
            )
        return cls(
            text=element.text,
            normalized_text=element.normalized_text,
            tags=element.tags,
            context=element.context,
            position=element.position,
            importance=importance,
            category=category,
        )


JobElement = Union[Element, TaggedElement]


# =============================================================================
# RAW INPUTS
# =============================================================================


@dataclass
class JobPosting:
    """A job posting as supplied by the caller."""

    id: str
    title: str
    description: str = ""
    requirements: str = ""
    qualifications: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict)

    def full_text(self) -> str:
        """Title plus every non-empty section, separated by blank lines."""
        parts = [self.title, self.description, self.requirements, self.qualifications]
        return "\n\n".join(part.strip() for part in parts if part and part.strip())

    @classmethod
    def from_file(cls, file_path: Path) -> "JobPosting":
        """
        Load a plain-text or markdown job posting.

        The first non-empty line (leading "#" stripped) is the title, the rest is
        the description, and the file stem is the id.

        Raises:
            FileNotFoundError: If file_path does not exist
        """
        text = file_path.read_text()
        lines = text.strip().splitlines()
        title = lines[0].lstrip("#").strip() if lines else ""
        description = "\n".join(lines[1:]).strip()
        return cls(
            id=file_path.stem,
            title=title,
            description=description,
            metadata={"source_file": str(file_path)},
        )


@dataclass
class Resume:
    """A resume draft as supplied by the caller."""

    id: str
    content: str
    format: str = ResumeFormat.TEXT
    metadata: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_file(cls, file_path: Path, resume_id: Optional[str] = None) -> "Resume":
        """Load a resume draft; .md files are treated as markdown, anything else as text."""
        resume_format = ResumeFormat.MARKDOWN if file_path.suffix.lower() == ".md" else ResumeFormat.TEXT
        return cls(
            id=resume_id or file_path.stem,
            content=file_path.read_text(),
            format=resume_format,
            metadata={"source_file": str(file_path)},
        )


# =============================================================================
# PARSED OUTPUTS
# =============================================================================


@dataclass
class ParsedJob:
    """Job posting after element extraction."""

    job_id: str
    title: str
    elements: List[JobElement] = field(default_factory=list)
    raw_text: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def parsing_failed(self) -> bool:
        return bool(self.metadata.get("parsing_failed"))


@dataclass
class ParsedResume:
    """Resume draft after element extraction."""

    resume_id: str
    elements: List[Element] = field(default_factory=list)
    raw_text: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def parsing_failed(self) -> bool:
        return bool(self.metadata.get("parsing_failed"))
