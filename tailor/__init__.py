"""
TAILOR - Targeted ATS Iteration Loop for Optimizing Resumes

A domain-driven resume optimization engine that scores a resume against a job
posting, explains the gaps, and drives repeated revise-and-rescore rounds
until the resume is good enough or stops improving.

Architecture:
- Intake Context: Job posting and resume ingestion, validation and parsing
- Targeting Context: Importance assignment, semantic matching, scoring and recommendations
- Iteration Context: Round control, termination criteria and the public optimizer
"""

__version__ = "0.1.0"
