"""Exception types raised by sexmix."""

from __future__ import annotations


class SexMixError(ValueError):
    """Base class for all sexmix errors."""


class MissingLocusAnnotationError(SexMixError):
    """No XIST-tagged feature was found in the annotation file."""


class InconsistentLocusAnnotationError(SexMixError):
    """XIST-tagged features span more than one reference sequence."""


class MissingReferenceError(SexMixError):
    """An alignment header lacks both a Y chromosome and the XIST reference."""


class MalformedRecordError(SexMixError):
    """A record could not be parsed from an annotation or alignment stream."""


class AmbiguousClassificationError(SexMixError):
    """The fitted components could not be mapped to female / male."""


class NonConvergenceError(SexMixError):
    """EM stopped at its iteration cap without meeting the tolerance."""
