"""Per-sample read counting from SAM/BAM/CRAM files.

For each alignment file we count mapped records on the Y chromosome,
mapped records overlapping the XIST locus, and all mapped records.
"""

from __future__ import annotations

import logging
import shlex
import subprocess
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Sequence

import pysam

from sexmix.errors import MalformedRecordError, MissingReferenceError
from sexmix.types import Locus, SampleCount

logger = logging.getLogger(__name__)

Y_CHROMOSOME_NAMES = ("Y", "chrY")


def build_decompress_command(template: str, path: str | Path) -> str:
    """Fill a decompression command template with a file path.

    ``{}`` in the template is replaced by the shell-quoted path; without a
    placeholder the path is appended.
    """
    quoted = shlex.quote(str(path))
    if "{}" in template:
        return template.replace("{}", quoted)
    return f"{template} {quoted}"


def _reap(proc: subprocess.Popen, timeout: float = 5.0) -> int:
    """Close the pipe and wait for the decompression process to exit."""
    proc.stdout.close()
    try:
        return proc.wait(timeout=timeout)
    except subprocess.TimeoutExpired:
        proc.kill()
        return proc.wait()


@contextmanager
def open_alignments(
    path: str | Path, decompress_cmd: str | None = None
) -> Iterator[pysam.AlignmentFile]:
    """Open an alignment file, optionally piped through a shell command.

    Raises:
        MalformedRecordError: If pysam cannot read the input, or the
            decompression command exits non-zero. A failing command takes
            precedence over whatever error its truncated output caused.
    """
    proc = None
    try:
        if decompress_cmd:
            cmd = build_decompress_command(decompress_cmd, path)
            logger.debug("Streaming %s through: %s", path, cmd)
            proc = subprocess.Popen(cmd, shell=True, stdout=subprocess.PIPE)
            bam = pysam.AlignmentFile(proc.stdout, "r")
        else:
            bam = pysam.AlignmentFile(str(path), "r")
    except (OSError, ValueError) as e:
        if proc is not None and _reap(proc) > 0:
            raise MalformedRecordError(
                f"{path}: decompression command exited with status {proc.returncode}"
            ) from e
        raise MalformedRecordError(f"{path}: cannot read alignments: {e}") from e

    try:
        yield bam
    except Exception as e:
        bam.close()
        if proc is not None and _reap(proc) > 0:
            raise MalformedRecordError(
                f"{path}: decompression command exited with status {proc.returncode}"
            ) from e
        raise

    bam.close()
    if proc is not None:
        returncode = _reap(proc)
        if returncode != 0:
            raise MalformedRecordError(
                f"{path}: decompression command exited with status {returncode}"
            )


def count_reads(bam: pysam.AlignmentFile, locus: Locus, source: str = "<bam>") -> SampleCount:
    """Count Y, XIST and total mapped records in an open alignment file.

    Raises:
        MissingReferenceError: Header has neither a Y chromosome nor the
            locus reference.
        MalformedRecordError: A record could not be decoded.
    """
    references = set(bam.references)
    y_names = [n for n in Y_CHROMOSOME_NAMES if n in references]
    if not y_names and locus.seqname not in references:
        raise MissingReferenceError(
            f"{source}: header has no {' or '.join(Y_CHROMOSOME_NAMES)} "
            f"reference and no {locus.seqname!r} reference"
        )

    y_tids = {bam.get_tid(n) for n in y_names}
    locus_tid = bam.get_tid(locus.seqname) if locus.seqname in references else -2
    # Locus is 1-based inclusive; pysam positions are 0-based half-open.
    locus_start = locus.start - 1
    locus_end = locus.end

    ychrom = xist = total = 0
    try:
        for read in bam:
            if read.is_unmapped:
                continue
            total += 1
            tid = read.reference_id
            if tid in y_tids:
                ychrom += 1
            if tid == locus_tid:
                start = read.reference_start
                end = read.reference_end or start + 1
                if start < locus_end and end > locus_start:
                    xist += 1
    except (OSError, ValueError) as e:
        raise MalformedRecordError(f"{source}: error after {total} records: {e}") from e

    return SampleCount(ychrom_count=ychrom, xist_count=xist, total_count=total)


def count_alignments(
    path: str | Path, locus: Locus, decompress_cmd: str | None = None
) -> SampleCount:
    """Open ``path`` and count its reads against ``locus``."""
    with open_alignments(path, decompress_cmd) as bam:
        counts = count_reads(bam, locus, str(path))
    logger.info(
        "%s: Y=%d, XIST=%d, total=%d",
        path, counts.ychrom_count, counts.xist_count, counts.total_count,
    )
    return counts


def count_many(
    paths: Sequence[str | Path],
    locus: Locus,
    decompress_cmd: str | None = None,
    threads: int = 1,
) -> list[SampleCount]:
    """Count several files, returning results in input order.

    The first failing file aborts the batch with its exception.
    """
    if threads <= 1 or len(paths) <= 1:
        return [count_alignments(p, locus, decompress_cmd) for p in paths]

    with ThreadPoolExecutor(max_workers=threads) as pool:
        return list(pool.map(lambda p: count_alignments(p, locus, decompress_cmd), paths))
