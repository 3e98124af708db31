#!/usr/bin/env python3
"""
Interactive resume optimization loop.

Scores the resume, prints recommendations, and asks for the path of a revised
draft after every round that does not terminate the run. An empty answer
stops the run early. Logs (console + file) go to outs/logs/optimize_TIMESTAMP/
unless --log-dir is given; the event log is exported next to them.

Usage:
    python scripts/optimize_resume.py data/jobs/MLEng_AcmeCorp.md resume_v1.md
    python scripts/optimize_resume.py job.txt resume.txt --target-score 0.85 --max-iterations 5
    python scripts/optimize_resume.py job.txt resume.txt --config config/tailor.yaml
"""

import asyncio
import os
from pathlib import Path
from typing import Optional

import typer
from dotenv import load_dotenv
from typing_extensions import Annotated

from tailor.contexts.intake.data_structures import JobPosting, Resume
from tailor.contexts.iteration.data_structures import OptimizationResult
from tailor.contexts.iteration.logger import setup_iteration_logger
from tailor.contexts.iteration.orchestrator import ResumeOptimizer
from tailor.contexts.targeting.recommendations import Recommendations
from tailor.utils.errors import TailorError
from tailor.utils.timestamp import run_stamp

load_dotenv()
LOGS_PATH = Path(os.getenv("LOGS_PATH", "outs/logs"))

app = typer.Typer(
    help="Iteratively optimize a resume against a job posting",
    add_completion=False,
)


def print_recommendations(recommendations: Recommendations, round_number: int) -> None:
    typer.echo(f"\n=== Round {round_number} recommendations ===")
    typer.echo(f"  {recommendations.summary}")

    for title, items in (
        ("Priority", recommendations.priority),
        ("Optional", recommendations.optional),
        ("Rewording", recommendations.rewording),
    ):
        if not items:
            continue
        typer.echo(f"\n  {title} ({len(items)}):")
        for rec in items:
            typer.echo(f"    [{rec.type}] {rec.element} ({rec.importance:.2f})")
            typer.echo(f"      {rec.suggestion}")
            if rec.example:
                typer.echo(f"      {rec.example}")


def ask_for_revision(recommendations: Recommendations, round_number: int) -> Optional[Resume]:
    """
    Show recommendations and prompt for the next draft.

    Returns None (ending the run) on an empty answer.
    """
    print_recommendations(recommendations, round_number)
    while True:
        answer = typer.prompt(
            "\nPath to revised resume (empty to stop)", default="", show_default=False
        ).strip()
        if not answer:
            return None
        path = Path(answer).expanduser()
        if path.is_file():
            return Resume.from_file(path, resume_id=f"{path.stem}_r{round_number + 1}")
        typer.echo(f"Not a file: {path}", err=True)


def print_result(result: OptimizationResult) -> None:
    metrics = result.metrics
    typer.echo("\n=== Optimization result ===")
    typer.echo(f"  Termination: {result.termination_reason}")
    typer.echo(f"  Rounds: {metrics.iteration_count}")
    typer.echo(
        f"  Score: {metrics.initial_score:.1%} -> {metrics.final_score:.1%} "
        f"({metrics.improvement:+.1%})"
    )
    typer.echo(f"  Final resume: {result.final_resume.metadata.get('source_file', result.final_resume.id)}")

    typer.echo("\n  Round history:")
    for entry in result.iterations:
        typer.echo(f"    {entry.round}: {entry.score:.3f} ({entry.resume_version})")


@app.command()
def main(
    job_file: Annotated[
        Path,
        typer.Argument(help="Job posting file (first line is the title)", exists=True, dir_okay=False),
    ],
    resume_file: Annotated[
        Path,
        typer.Argument(help="Initial resume draft", exists=True, dir_okay=False),
    ],
    target_score: Annotated[
        Optional[float],
        typer.Option("--target-score", "-t", help="Stop once this score is reached (0-1)"),
    ] = None,
    max_iterations: Annotated[
        Optional[int],
        typer.Option("--max-iterations", "-n", help="Maximum number of rounds"),
    ] = None,
    config: Annotated[
        Optional[Path],
        typer.Option("--config", "-c", help="YAML config file", exists=True, dir_okay=False),
    ] = None,
    log_dir: Annotated[
        Optional[Path],
        typer.Option("--log-dir", help="Directory for run logs (default: outs/logs/optimize_TIMESTAMP)"),
    ] = None,
):
    """Run the optimization loop, revising the resume between rounds."""
    overrides = []
    if target_score is not None:
        overrides.append(f"optimization.target_score={target_score}")
    if max_iterations is not None:
        overrides.append(f"optimization.max_iterations={max_iterations}")

    try:
        optimizer = ResumeOptimizer.from_config(config, overrides or None)
    except TailorError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)

    log_dir = log_dir or LOGS_PATH / f"optimize_{run_stamp()}"
    settings = optimizer.get_config()
    setup_iteration_logger(
        log_dir,
        {
            "Job": job_file,
            "Resume": resume_file,
            "Target score": settings.target_score,
            "Max iterations": settings.max_iterations,
        },
    )

    job = JobPosting.from_file(job_file)
    resume = Resume.from_file(resume_file)

    try:
        result = asyncio.run(optimizer.optimize(job, resume, on_recommendations=ask_for_revision))
    except TailorError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)
    finally:
        events_file = optimizer.event_log.export_jsonl(log_dir / "events.jsonl")
        typer.echo(f"  Events: {events_file}")

    print_result(result)


if __name__ == "__main__":
    app()
