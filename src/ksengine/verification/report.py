"""Per-call consistency findings."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Union

import numpy as np


@dataclass(slots=True, frozen=True)
class ValidationFailure:
    """A failed universal validation or domain predicate."""

    check: str
    t: int
    tag: str
    code: int = 0
    detail: str = ""

    def __str__(self) -> str:
        extra = f" {self.detail}" if self.detail else ""
        return f"{self.check} t={self.t}: {self.tag} ({self.code}){extra}"


@dataclass(slots=True, frozen=True)
class StructuralInconsistency:
    """An accounting identity or aggregate mismatch beyond tolerance."""

    check: str
    t: int
    tag: str
    magnitude: float
    tolerance: float

    def __str__(self) -> str:
        return (
            f"{self.check} t={self.t}: {self.tag} "
            f"(|gap|={abs(self.magnitude):.6g} > {self.tolerance:.6g})"
        )


Finding = Union[ValidationFailure, StructuralInconsistency]


@dataclass(slots=True)
class Report:
    """
    Findings collected by one check call.

    A fresh Report is created for every invocation, so nothing leaks
    between calls; the running total lives in the check's ``CheckState``.

    Examples
    --------
    >>> r = Report("testCountry", t=3)
    >>> r.universal(nonneg=[1.0, -2.0], posit=[0.0])
    2
    >>> [f.tag for f in r.findings]
    ['NEGATIVE-VALUE', 'NON-POSITIVE-VALUE']
    """

    check: str
    t: int
    findings: list[Finding] = field(default_factory=list)
    residual: float = 0.0

    @property
    def errors(self) -> int:
        return len(self.findings)

    @property
    def consistent(self) -> bool:
        return not self.findings

    def universal(
        self,
        nonneg: Iterable[float] = (),
        posit: Iterable[float] = (),
        finite: Iterable[float] = (),
        detail: str = "",
    ) -> int:
        """
        Run the three universal validations and return the failures added.

        Codes are 1-based positions: in *nonneg* for ``NEGATIVE-VALUE``, in
        *posit* for ``NON-POSITIVE-VALUE``, and in the concatenation
        ``nonneg + posit + finite`` for ``NON-FINITE-VALUE``.
        """
        nonneg_arr = np.asarray(list(nonneg), dtype=np.float64)
        posit_arr = np.asarray(list(posit), dtype=np.float64)
        finite_arr = np.asarray(list(finite), dtype=np.float64)
        before = self.errors
        for i in np.flatnonzero(nonneg_arr < 0):
            self.check_that(True, "NEGATIVE-VALUE", int(i) + 1, detail)
        for i in np.flatnonzero(posit_arr <= 0):
            self.check_that(True, "NON-POSITIVE-VALUE", int(i) + 1, detail)
        everything = np.concatenate([nonneg_arr, posit_arr, finite_arr])
        for i in np.flatnonzero(~np.isfinite(everything)):
            self.check_that(True, "NON-FINITE-VALUE", int(i) + 1, detail)
        return self.errors - before

    def check_that(
        self, failed: bool, tag: str, code: int = 0, detail: str = ""
    ) -> bool:
        """Record a failure if *failed*; return *failed*."""
        if failed:
            self.findings.append(
                ValidationFailure(self.check, self.t, tag, code, detail)
            )
        return bool(failed)

    def within(self, tag: str, gap: float, tolerance: float) -> bool:
        """
        Record a structural inconsistency if ``|gap| > tolerance``.

        NaN gaps count as inconsistent. Returns True when consistent.
        """
        if not abs(gap) <= tolerance:
            self.findings.append(
                StructuralInconsistency(self.check, self.t, tag, gap, tolerance)
            )
            return False
        return True

    def failures(self) -> list[ValidationFailure]:
        return [f for f in self.findings if isinstance(f, ValidationFailure)]

    def inconsistencies(self) -> list[StructuralInconsistency]:
        return [f for f in self.findings if isinstance(f, StructuralInconsistency)]
