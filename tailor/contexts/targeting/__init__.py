"""
Targeting Context

Responsibilities:
- Assigns importance to job elements from indicator phrases and position
- Finds semantic matches between resume and job elements
- Scores a resume against a job across weighted dimensions
- Identifies gaps and strengths and turns them into recommendations

Owns: Importance heuristics, matching, scoring algorithm, recommendation generation
Never: Parses raw text or controls the iteration loop
"""
