"""Fatal input-contract errors.

None of these are recovered from: a skipped or misclassified pair would
corrupt the category counts, so the run aborts and the CLI reports the error.
"""

from __future__ import annotations


class AlignmentClassificationError(RuntimeError):
    """Base class for errors raised while classifying alignment pairs."""


class MalformedInputError(AlignmentClassificationError):
    """A record violates a per-record invariant (unpaired, secondary, QC-fail, duplicate, ...)."""


class IncompletePairError(AlignmentClassificationError):
    """A finished pair is missing mate 1 or mate 2."""


class InvalidBaseError(AlignmentClassificationError):
    """A sequence contains a base outside A/C/G/T/N."""
