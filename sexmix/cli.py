"""Command-line interface for sexmix.

Provides commands for:
- run: Count reads in alignment files and classify each sample
- fit: Classify samples from a precomputed counts table
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Sequence

import click

from sexmix import __version__
from sexmix.errors import AmbiguousClassificationError, NonConvergenceError
from sexmix.types import SampleCount

logger = logging.getLogger("sexmix")


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
    )


@click.group()
@click.version_option(version=__version__)
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
def cli(verbose: bool) -> None:
    """sexmix: infer RNA-seq sample sex from Y-chromosome and XIST read ratios."""
    _setup_logging(verbose)


def _classify_and_write(
    filenames: Sequence[str],
    counts: Sequence[SampleCount],
    max_iterations: int,
    strict: bool,
    output: str | None,
    fit_json: str | None = None,
) -> None:
    from sexmix.classify import classify_samples, write_csv
    from sexmix.em import EMConfig
    from sexmix.types import save_json

    report = classify_samples(filenames, counts, EMConfig(max_iterations=max_iterations))

    if strict and not report.converged:
        raise NonConvergenceError(
            f"EM did not converge within {report.fit.n_iterations} iterations"
        )
    if strict and report.ambiguous:
        raise AmbiguousClassificationError(report.labels.reason)
    if report.low_confidence:
        logger.warning("Results are low confidence (ambiguous=%s, converged=%s)",
                       report.ambiguous, report.converged)

    if fit_json:
        diagnostics = report.fit.to_dict()
        diagnostics["ambiguous"] = report.ambiguous
        diagnostics["ambiguity_reason"] = report.labels.reason
        diagnostics["female_component"] = report.labels.female_index
        save_json(diagnostics, Path(fit_json))

    if output:
        with open(output, "w", newline="") as fh:
            write_csv(report.rows, fh)
        logger.info("Wrote %d rows to %s", len(report.rows), output)
    else:
        write_csv(report.rows, sys.stdout)


# ---------------------------------------------------------------------------
# run
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("annotation", type=click.Path(exists=True, dir_okay=False))
@click.argument("alignments", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False))
@click.option("--decompress-cmd", default=None,
              help="Shell command to stream each alignment file through ({} = path).")
@click.option("--threads", default=1, show_default=True, help="Files counted in parallel.")
@click.option("--max-iterations", default=500, show_default=True, help="Max EM iterations.")
@click.option("--strict", is_flag=True,
              help="Fail on ambiguous labels or EM non-convergence instead of warning.")
@click.option("-o", "--output", type=click.Path(dir_okay=False), default=None,
              help="Output CSV path (default: stdout).")
@click.option("--fit-json", type=click.Path(dir_okay=False), default=None,
              help="Write EM fit diagnostics to this JSON file.")
def run(
    annotation: str,
    alignments: tuple[str, ...],
    decompress_cmd: str | None,
    threads: int,
    max_iterations: int,
    strict: bool,
    output: str | None,
    fit_json: str | None,
) -> None:
    """Classify the samples in ALIGNMENTS using the XIST locus from ANNOTATION."""
    from sexmix.alignment import count_many
    from sexmix.annotation import load_xist_locus

    try:
        locus = load_xist_locus(annotation)
        logger.info("Counting reads in %d alignment files", len(alignments))
        counts = count_many(list(alignments), locus, decompress_cmd, threads)
        _classify_and_write(list(alignments), counts, max_iterations, strict, output, fit_json)
    except ValueError as e:
        raise click.ClickException(str(e)) from e


# ---------------------------------------------------------------------------
# fit
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("counts_csv", type=click.Path(exists=True, dir_okay=False))
@click.option("--max-iterations", default=500, show_default=True, help="Max EM iterations.")
@click.option("--strict", is_flag=True,
              help="Fail on ambiguous labels or EM non-convergence instead of warning.")
@click.option("-o", "--output", type=click.Path(dir_okay=False), default=None,
              help="Output CSV path (default: stdout).")
@click.option("--fit-json", type=click.Path(dir_okay=False), default=None,
              help="Write EM fit diagnostics to this JSON file.")
def fit(
    counts_csv: str,
    max_iterations: int,
    strict: bool,
    output: str | None,
    fit_json: str | None,
) -> None:
    """Classify samples from a CSV of filename and count columns."""
    from sexmix.classify import read_counts_csv

    try:
        filenames, counts = read_counts_csv(Path(counts_csv))
        _classify_and_write(filenames, counts, max_iterations, strict, output, fit_json)
    except ValueError as e:
        raise click.ClickException(str(e)) from e


def main() -> None:
    """Entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
