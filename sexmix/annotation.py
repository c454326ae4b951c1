"""GFF3 annotation reading and XIST locus lookup."""

from __future__ import annotations

import gzip
import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from pathlib import Path
from urllib.parse import unquote

from sexmix.errors import (
    InconsistentLocusAnnotationError,
    MalformedRecordError,
    MissingLocusAnnotationError,
)
from sexmix.types import Locus

logger = logging.getLogger(__name__)

XIST_PATTERN = "XIST"


@dataclass
class GffRecord:
    """A single GFF feature line.

    Attributes:
        seqname: Reference sequence name.
        source: Annotation source.
        feature: Feature type (gene, exon, ...).
        start: Start position, 1-based inclusive.
        end: End position, 1-based inclusive.
        score: Score column ('.' when absent).
        strand: '+', '-' or '.'.
        phase: Phase column ('.' when absent).
        attributes: Column 9 as a mapping of attribute name -> value.
    """

    seqname: str
    source: str
    feature: str
    start: int
    end: int
    score: str = "."
    strand: str = "."
    phase: str = "."
    attributes: dict[str, str] = field(default_factory=dict)


def parse_attributes(text: str) -> dict[str, str]:
    """Parse a GFF3 attribute column (``key=value;key=value``).

    GTF-style ``key "value"`` pairs are accepted as well. Values are
    percent-decoded.
    """
    attrs: dict[str, str] = {}
    if text == ".":
        return attrs
    for token in text.strip().split(";"):
        token = token.strip()
        if not token:
            continue
        if "=" in token:
            key, value = token.split("=", 1)
        elif " " in token:
            key, value = token.split(" ", 1)
            value = value.strip().strip('"')
        else:
            key, value = token, ""
        attrs[key.strip()] = unquote(value)
    return attrs


def parse_gff_line(line: str, line_no: int = 0, source: str = "<gff>") -> GffRecord:
    """Parse one tab-separated feature line.

    Raises:
        MalformedRecordError: On a wrong column count or bad coordinates.
    """
    cols = line.rstrip("\n").split("\t")
    if len(cols) != 9:
        raise MalformedRecordError(
            f"{source}:{line_no}: expected 9 tab-separated columns, got {len(cols)}"
        )
    try:
        start = int(cols[3])
        end = int(cols[4])
    except ValueError as e:
        raise MalformedRecordError(f"{source}:{line_no}: bad coordinates: {e}") from e
    if end < start:
        raise MalformedRecordError(f"{source}:{line_no}: end {end} < start {start}")

    return GffRecord(
        seqname=cols[0],
        source=cols[1],
        feature=cols[2],
        start=start,
        end=end,
        score=cols[5],
        strand=cols[6],
        phase=cols[7],
        attributes=parse_attributes(cols[8]),
    )


def read_gff(path: str | Path) -> Iterator[GffRecord]:
    """Lazily read a GFF3 file (plain or gzipped).

    Comment and blank lines are skipped; an embedded ``##FASTA`` section
    ends the feature stream. A malformed line raises MalformedRecordError
    rather than ending the stream early.
    """
    path = Path(path)
    opener = gzip.open if str(path).endswith(".gz") else open
    with opener(path, "rt") as fh:
        for line_no, line in enumerate(fh, start=1):
            if line.startswith("##FASTA"):
                return
            if not line.strip() or line.startswith("#"):
                continue
            yield parse_gff_line(line, line_no, str(path))


def find_xist_locus(records: Iterable[GffRecord], pattern: str = XIST_PATTERN) -> Locus:
    """Interval spanning every feature whose ``Name`` contains ``pattern``.

    Raises:
        MissingLocusAnnotationError: No matching feature.
        InconsistentLocusAnnotationError: Matches on more than one seqname.
    """
    seqnames: set[str] = set()
    start: int | None = None
    end: int | None = None
    n_matches = 0

    for rec in records:
        if pattern not in rec.attributes.get("Name", ""):
            continue
        n_matches += 1
        seqnames.add(rec.seqname)
        start = rec.start if start is None else min(start, rec.start)
        end = rec.end if end is None else max(end, rec.end)

    if n_matches == 0:
        raise MissingLocusAnnotationError(
            f"No feature with a Name attribute containing {pattern!r}"
        )
    if len(seqnames) > 1:
        raise InconsistentLocusAnnotationError(
            f"Features matching {pattern!r} lie on several sequences: "
            + ", ".join(sorted(seqnames))
        )

    locus = Locus(seqname=seqnames.pop(), start=start, end=end)
    logger.info("XIST locus: %s (%d features)", locus, n_matches)
    return locus


def load_xist_locus(path: str | Path, pattern: str = XIST_PATTERN) -> Locus:
    """Read an annotation file and return its XIST locus."""
    return find_xist_locus(read_gff(path), pattern)
