"""
Error taxonomy for the norm reconciliation and aggregation pipeline

SchemaError and DataIntegrityError abort a run. EncodingError is raised per
document and caught by the loader, which skips and reports the document.
CoverageWarning is advisory and goes through the warnings module.
"""

from typing import Optional


class NormPipelineError(Exception):
    """Base class for all pipeline errors"""


class SchemaError(NormPipelineError):
    """A required key or column is missing, or a token references an unknown document"""


class DataIntegrityError(NormPipelineError):
    """
    Reconciled norm data cannot be trusted

    Raised when a merged column fails the numeric cast or when one word ends
    up with conflicting non-null values in the same column.
    """

    def __init__(
        self, message: str, column: Optional[str] = None, word: Optional[str] = None
    ):
        super().__init__(message)
        self.column = column
        self.word = word


class EncodingError(NormPipelineError):
    """Document text fails UTF-8 validation"""

    def __init__(self, doc_id, reason: str):
        super().__init__(f"Document {doc_id!r} is not valid UTF-8: {reason}")
        self.doc_id = doc_id
        self.reason = reason


class CoverageWarning(UserWarning):
    """A document's coverage for a metric is at or near zero"""
