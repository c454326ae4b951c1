"""Sample classification: counts -> features -> EM fit -> labelled rows.

Also reads and writes the per-sample CSV table
(filename, ychrom_count, xist_count, total_count, female_prob, male_prob).
"""

from __future__ import annotations

import csv
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Sequence, TextIO

from sexmix.em import BetaMixtureEM, EMConfig
from sexmix.features import compute_features
from sexmix.labels import LabelResolution, resolve_labels
from sexmix.types import FitResult, SampleCount, SampleResult

logger = logging.getLogger(__name__)

CSV_HEADER = (
    "filename",
    "ychrom_count",
    "xist_count",
    "total_count",
    "female_prob",
    "male_prob",
)


@dataclass
class ClassificationReport:
    """All outputs of one classification run.

    Attributes:
        rows: One SampleResult per input, in input order.
        fit: EM fit result (parameters, responsibilities, convergence).
        labels: Component-to-sex resolution.
    """

    rows: list[SampleResult] = field(default_factory=list)
    fit: FitResult | None = None
    labels: LabelResolution | None = None

    @property
    def ambiguous(self) -> bool:
        return bool(self.labels and self.labels.ambiguous)

    @property
    def converged(self) -> bool:
        return bool(self.fit and self.fit.converged)

    @property
    def low_confidence(self) -> bool:
        """True when the output should not be trusted without review."""
        return self.ambiguous or not self.converged


def classify_samples(
    filenames: Sequence[str],
    counts: Sequence[SampleCount],
    config: EMConfig | None = None,
) -> ClassificationReport:
    """Classify every sample as female / male.

    Args:
        filenames: Labels for the output rows, aligned with ``counts``.
        counts: Per-sample read counts.
        config: EM configuration.

    Returns:
        ClassificationReport with one row per sample.
    """
    if len(filenames) != len(counts):
        raise ValueError(
            f"Got {len(filenames)} filenames for {len(counts)} count records"
        )
    if len(counts) < 2:
        raise ValueError(f"Need at least 2 samples to fit a mixture, got {len(counts)}")

    features = compute_features(counts)
    fit = BetaMixtureEM(config).fit(features)
    labels = resolve_labels(fit.params, fit.responsibilities)
    probs = labels.apply(fit.responsibilities)

    rows = [
        SampleResult(
            filename=name,
            counts=c,
            female_prob=float(p[0]),
            male_prob=float(p[1]),
        )
        for name, c, p in zip(filenames, counts, probs)
    ]
    n_female = sum(1 for r in rows if r.female_prob > 0.5)
    logger.info(
        "Classified %d samples: %d female, %d male",
        len(rows), n_female, len(rows) - n_female,
    )
    return ClassificationReport(rows=rows, fit=fit, labels=labels)


def write_csv(rows: Sequence[SampleResult], stream: TextIO, precision: int = 6) -> None:
    """Write classification rows, header first."""
    w = csv.writer(stream, lineterminator="\n")
    w.writerow(CSV_HEADER)
    for row in rows:
        w.writerow(row.as_row(precision))


def read_counts_csv(path: str | Path) -> tuple[list[str], list[SampleCount]]:
    """Load filenames and counts from a table with the classifier's columns.

    Only filename and the three count columns are required; probability
    columns, if present, are ignored.
    """
    path = Path(path)
    filenames: list[str] = []
    counts: list[SampleCount] = []
    with open(path, newline="") as f:
        reader = csv.DictReader(f)
        missing = [c for c in CSV_HEADER[:4] if c not in (reader.fieldnames or [])]
        if missing:
            raise ValueError(f"{path}: missing columns {', '.join(missing)}")
        for line_no, rec in enumerate(reader, start=2):
            try:
                counts.append(
                    SampleCount(
                        ychrom_count=int(rec["ychrom_count"]),
                        xist_count=int(rec["xist_count"]),
                        total_count=int(rec["total_count"]),
                    )
                )
            except (TypeError, ValueError) as e:
                raise ValueError(f"{path}:{line_no}: bad count value: {e}") from e
            filenames.append(rec["filename"])
    return filenames, counts
