"""
Text normalization for the Intake context.

Two jobs:
- Prepare raw job/resume text before it is sent to a parser (unicode cleanup,
  whitespace cleanup)
- Produce the canonical normalized_text of an Element, which the Scoring
  Engine and matcher use as a join key
"""

import re
import unicodedata

# Unicode replacements: problematic char → ASCII equivalent
UNICODE_REPLACEMENTS = {
    "\u00a0": " ",  # non-breaking space
    "\u202f": " ",  # narrow no-break space
    "\u200b": "",  # zero-width space
    "\u200c": "",  # zero-width non-joiner
    "\u200d": "",  # zero-width joiner
    "\ufeff": "",  # BOM
    "\u2018": "'",
    "\u2019": "'",
    "\u201c": '"',
    "\u201d": '"',
    "\u2013": "-",  # en dash
    "\u2014": "--",  # em dash
    "\u2022": "*",  # bullet
    "\u2026": "...",
}

CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f-\x9f]")
WHITESPACE_RUN = re.compile(r"\s+")
# Keep word chars, spaces and the punctuation that carries meaning in tech terms (c++, c#, node.js)
NON_KEY_CHARS = re.compile(r"[^\w\s\-+#.]")


def normalize_unicode(text: str) -> str:
    """
    Apply NFKC normalization and replace problematic characters with ASCII.

    Args:
        text: Raw text possibly containing problematic unicode

    Returns:
        Text with normalized unicode and control characters removed
    """
    text = unicodedata.normalize("NFKC", text)
    for char, replacement in UNICODE_REPLACEMENTS.items():
        text = text.replace(char, replacement)
    return CONTROL_CHARS.sub("", text)


def clean_whitespace(text: str) -> str:
    """Normalize line endings and tabs, collapse spaces and runs of 3+ newlines."""
    text = text.replace("\r\n", "\n").replace("\r", "\n").replace("\t", " ")
    text = re.sub(r" +", " ", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


def prepare_for_parsing(text: str) -> str:
    """Full cleanup applied to raw job/resume text before parsing."""
    if not text:
        return ""
    return clean_whitespace(normalize_unicode(text))


def normalize_text(text: str) -> str:
    """
    Canonical form of an element's text.

    Lowercases, collapses whitespace and strips punctuation other than the
    characters meaningful in technology names.

    Examples:
        >>> normalize_text("  Python  3 ")
        'python 3'
        >>> normalize_text("Node.js,")
        'node.js'
    """
    if not text:
        return ""
    text = normalize_unicode(text).lower()
    text = NON_KEY_CHARS.sub("", text)
    text = WHITESPACE_RUN.sub(" ", text).strip()
    return text.strip(".").strip()
