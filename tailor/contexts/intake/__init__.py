"""
Intake Context

Responsibilities:
- Validates job postings and resume drafts before they enter the engine
- Normalizes raw text (unicode, whitespace, case) for parsing and matching
- Extracts keywords, skills, attributes and experience from text via an LLM

Owns: Input data structures, text normalization, element extraction
Never: Scores resumes or decides when optimization stops
"""
