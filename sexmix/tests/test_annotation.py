"""Tests for GFF reading and XIST locus lookup."""

import gzip

import pytest

from sexmix.annotation import (
    GffRecord,
    find_xist_locus,
    load_xist_locus,
    parse_attributes,
    parse_gff_line,
    read_gff,
)
from sexmix.errors import (
    InconsistentLocusAnnotationError,
    MalformedRecordError,
    MissingLocusAnnotationError,
)
from sexmix.tests.fixtures import GFF_TEXT
from sexmix.types import Locus


def _rec(seqname, start, end, name):
    return GffRecord(seqname, "test", "gene", start, end, attributes={"Name": name})


class TestParseAttributes:
    def test_gff3(self):
        attrs = parse_attributes("ID=gene:1;Name=XIST;Note=long%20noncoding")
        assert attrs == {"ID": "gene:1", "Name": "XIST", "Note": "long noncoding"}

    def test_gtf_style(self):
        attrs = parse_attributes('gene_id "ENSG1"; Name "XIST";')
        assert attrs["gene_id"] == "ENSG1"
        assert attrs["Name"] == "XIST"

    def test_empty(self):
        assert parse_attributes(".") == {}


class TestParseGffLine:
    def test_fields(self):
        rec = parse_gff_line("chrX\tsrc\tgene\t10\t20\t.\t-\t.\tName=XIST\n")
        assert rec.seqname == "chrX"
        assert (rec.start, rec.end) == (10, 20)
        assert rec.strand == "-"
        assert rec.attributes["Name"] == "XIST"

    def test_wrong_column_count(self):
        with pytest.raises(MalformedRecordError, match="9 tab-separated"):
            parse_gff_line("chrX\tsrc\tgene\t10\t20\n", 7)

    def test_bad_coordinates(self):
        with pytest.raises(MalformedRecordError, match="coordinates"):
            parse_gff_line("chrX\tsrc\tgene\tten\t20\t.\t+\t.\tName=A")

    def test_end_before_start(self):
        with pytest.raises(MalformedRecordError):
            parse_gff_line("chrX\tsrc\tgene\t30\t20\t.\t+\t.\tName=A")


class TestReadGff:
    def test_skips_comments_and_blank_lines(self, tmp_path):
        p = tmp_path / "genes.gff3"
        p.write_text(GFF_TEXT)
        records = list(read_gff(p))
        assert len(records) == 5
        assert records[-1].attributes["Name"] == "SRY"

    def test_gzipped(self, tmp_path):
        p = tmp_path / "genes.gff3.gz"
        with gzip.open(p, "wt") as fh:
            fh.write(GFF_TEXT)
        assert len(list(read_gff(p))) == 5

    def test_fasta_section_ends_stream(self, tmp_path):
        p = tmp_path / "genes.gff3"
        p.write_text(GFF_TEXT + "##FASTA\n>chrX\nACGT\n")
        assert len(list(read_gff(p))) == 5

    def test_malformed_line_is_fatal(self, tmp_path):
        p = tmp_path / "genes.gff3"
        p.write_text(GFF_TEXT + "chrX\tbroken line\n")
        reader = read_gff(p)
        with pytest.raises(MalformedRecordError, match=":9:"):
            list(reader)


class TestFindXistLocus:
    def test_spans_all_matches(self):
        locus = find_xist_locus([
            _rec("chrX", 100, 200, "XIST"),
            _rec("chrX", 50, 150, "XIST-201"),
            _rec("chrX", 500, 900, "TSIX"),
        ])
        assert locus == Locus("chrX", 50, 200)

    def test_missing(self):
        with pytest.raises(MissingLocusAnnotationError):
            find_xist_locus([_rec("chrX", 1, 2, "TSIX")])

    def test_missing_name_attribute(self):
        rec = GffRecord("chrX", "s", "gene", 1, 2, attributes={"ID": "XIST"})
        with pytest.raises(MissingLocusAnnotationError):
            find_xist_locus([rec])

    def test_inconsistent(self):
        with pytest.raises(InconsistentLocusAnnotationError, match="chrX"):
            find_xist_locus([_rec("chrX", 1, 2, "XIST"), _rec("X", 1, 2, "XIST")])

    def test_custom_pattern(self):
        assert find_xist_locus([_rec("chrY", 5, 9, "SRY")], pattern="SRY") == Locus("chrY", 5, 9)

    def test_load_from_file(self, tmp_path):
        p = tmp_path / "genes.gff3"
        p.write_text(GFF_TEXT)
        locus = load_xist_locus(p)
        assert locus == Locus("chrX", 73820649, 73852753)
        assert str(locus) == "chrX:73820649-73852753"
