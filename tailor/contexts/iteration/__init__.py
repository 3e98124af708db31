"""
Iteration Context

Responsibilities:
- Runs rounds of parse, match, score and decide over successive resume drafts
- Evaluates termination criteria (target reached, max iterations, early stopping)
- Assembles the final optimization result with summary metrics
- Exposes the public ResumeOptimizer entry point

Owns: Round sequencing, termination decisions, run history
Never: Implements scoring or parsing itself
"""
