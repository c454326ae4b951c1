"""Synthetic count data and small alignment files for sexmix tests."""

from __future__ import annotations

from pathlib import Path

from sexmix.types import SampleCount

MALE_LIKE = SampleCount(ychrom_count=40000, xist_count=50, total_count=60_000_000)
FEMALE_LIKE = SampleCount(ychrom_count=1500, xist_count=40000, total_count=65_000_000)

# Counts from real RNA-seq runs: one male, then two females.
REGRESSION_COUNTS = [
    SampleCount(35483, 32, 55305262),
    SampleCount(1428, 20848, 72032395),
    SampleCount(1305, 43117, 57084722),
]


def two_cluster_counts(n_per_group: int = 5) -> tuple[list[str], list[SampleCount]]:
    """n male-like samples followed by n female-like samples."""
    counts = [MALE_LIKE] * n_per_group + [FEMALE_LIKE] * n_per_group
    names = [f"male_{i}.bam" for i in range(n_per_group)]
    names += [f"female_{i}.bam" for i in range(n_per_group)]
    return names, counts


GFF_TEXT = """##gff-version 3
#!genome-build GRCh38
chrX\tensembl\tgene\t73820651\t73852753\t.\t-\t.\tID=gene:ENSG00000229807;Name=XIST;biotype=lncRNA
chrX\tensembl\ttranscript\t73820649\t73841474\t.\t-\t.\tID=transcript:ENST00000429829;Parent=gene:ENSG00000229807;Name=XIST-201
chrX\tensembl\tgene\t73944324\t73944463\t.\t+\t.\tID=gene:ENSG00000270641;Name=TSIX
chr1\tensembl\tgene\t11869\t14409\t.\t+\t.\tID=gene:ENSG00000223972;Name=DDX11L1

chrY\tensembl\tgene\t2786855\t2787699\t.\t-\t.\tID=gene:ENSG00000184895;Name=SRY
"""

SAM_HEADER = "@HD\tVN:1.6\tSO:unsorted\n@SQ\tSN:chr1\tLN:100000\n@SQ\tSN:chrX\tLN:100000\n@SQ\tSN:chrY\tLN:100000\n"


def sam_record(name: str, rname: str, pos: int, cigar: str = "10M", flag: int = 0) -> str:
    """One SAM line; pos is 1-based, rname '*' for unmapped."""
    length = 10
    if flag & 4:
        rname, pos, cigar, mapq = "*", 0, "*", 0
    else:
        mapq = 60
    return f"{name}\t{flag}\t{rname}\t{pos}\t{mapq}\t{cigar}\t*\t0\t0\t{'A' * length}\t{'I' * length}\n"


def write_sam(path: Path, records: list[str], header: str = SAM_HEADER) -> Path:
    path.write_text(header + "".join(records))
    return path
