#!/usr/bin/env python3
"""
Single-shot resume/job match analysis.

Parses both files, matches and scores once, and prints the score, the
per-dimension breakdown, the top gaps and strengths, and the recommendation
summary.

Usage:
    python scripts/analyze_match.py data/jobs/MLEng_AcmeCorp.md data/resumes/resume.md
    python scripts/analyze_match.py job.txt resume.txt --provider anthropic
    python scripts/analyze_match.py job.txt resume.txt --json > analysis.json
"""

import asyncio
import json
from pathlib import Path
from typing import Optional

import typer
from dotenv import load_dotenv
from typing_extensions import Annotated

from tailor.contexts.intake.data_structures import JobPosting, Resume
from tailor.contexts.iteration.orchestrator import AnalysisResult, ResumeOptimizer
from tailor.contexts.targeting.logger import setup_targeting_logger
from tailor.utils.errors import TailorError

load_dotenv()

TOP_N = 5

app = typer.Typer(
    help="Score a resume against a job posting and list recommendations",
    add_completion=False,
)


def print_analysis(analysis: AnalysisResult) -> None:
    """Human-readable report of an AnalysisResult."""
    result = analysis.match_result

    typer.echo(f"\n=== Match: {analysis.parsed_job.title} ===")
    typer.echo(f"  Overall score: {result.overall_score:.1%}")
    if analysis.parsed_job.parsing_failed:
        typer.secho("  ! Job parsing failed, score is not meaningful", fg=typer.colors.YELLOW)
    if analysis.parsed_resume.parsing_failed:
        typer.secho("  ! Resume parsing failed, score is not meaningful", fg=typer.colors.YELLOW)

    typer.echo("\n=== Dimensions ===")
    for name, dimension in result.breakdown.dimensions().items():
        failed = " (failed)" if name in result.breakdown.failed_dimensions else ""
        typer.echo(
            f"  {name:<11} {dimension.score:.2f} x {dimension.weight:.2f} = "
            f"{dimension.weighted_score:.3f}{failed}"
        )

    typer.echo(f"\n=== Top gaps ({len(result.gaps)}) ===")
    for gap in result.gaps[:TOP_N]:
        typer.echo(f"  - {gap.element.text} [{gap.category}] impact {gap.impact:.2f}")
    if not result.gaps:
        typer.echo("  None")

    typer.echo(f"\n=== Top strengths ({len(result.strengths)}) ===")
    for strength in result.strengths[:TOP_N]:
        typer.echo(
            f"  + {strength.element.text} [{strength.category}] "
            f"{strength.match_type} ({strength.match_quality:.2f})"
        )
    if not result.strengths:
        typer.echo("  None")

    typer.echo("\n=== Recommendations ===")
    typer.echo(f"  {analysis.recommendations.summary}")


@app.command()
def main(
    job_file: Annotated[
        Path,
        typer.Argument(help="Job posting file (first line is the title)", exists=True, dir_okay=False),
    ],
    resume_file: Annotated[
        Path,
        typer.Argument(help="Resume file (.md for markdown, anything else plain text)", exists=True, dir_okay=False),
    ],
    provider: Annotated[
        Optional[str],
        typer.Option("--provider", "-p", help="LLM provider: openai or anthropic"),
    ] = None,
    model: Annotated[
        Optional[str],
        typer.Option("--model", "-m", help="Model name (default: provider default)"),
    ] = None,
    config: Annotated[
        Optional[Path],
        typer.Option("--config", "-c", help="YAML config file", exists=True, dir_okay=False),
    ] = None,
    as_json: Annotated[
        bool,
        typer.Option("--json", help="Print the analysis as JSON"),
    ] = False,
):
    """Analyze how well a resume matches a job posting."""
    if not as_json:
        setup_targeting_logger()

    overrides = {}
    if provider:
        overrides["llm"] = {"provider": provider, "model": model}
    elif model:
        overrides["llm"] = {"model": model}

    try:
        optimizer = ResumeOptimizer.from_config(config, overrides or None)
        job = JobPosting.from_file(job_file)
        resume = Resume.from_file(resume_file)
        analysis = asyncio.run(optimizer.analyze_match(job, resume))
    except TailorError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)
    except ValueError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)

    if as_json:
        typer.echo(json.dumps(analysis.to_dict(), indent=2, default=str))
    else:
        print_analysis(analysis)


if __name__ == "__main__":
    app()
