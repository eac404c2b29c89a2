"""Consistency verification: windowed checks, reports and CSV sinks."""

from ksengine.verification.check import ConsistencyCheck
from ksengine.verification.report import (
    Report,
    StructuralInconsistency,
    ValidationFailure,
)
from ksengine.verification.sfc import SfcCheck, largest_term, sfc_residual
from ksengine.verification.sink import CsvSink
from ksengine.verification.verifier import CheckState, Phase, Verifier

__all__ = [
    "CheckState",
    "ConsistencyCheck",
    "CsvSink",
    "Phase",
    "Report",
    "SfcCheck",
    "StructuralInconsistency",
    "ValidationFailure",
    "Verifier",
    "largest_term",
    "sfc_residual",
]
