"""Nox sessions for ksengine.

``nox -l`` lists the sessions; ``nox -s tests`` is what CI runs.
"""

from __future__ import annotations

import nox

nox.options.default_venv_backend = "uv|virtualenv"
nox.options.sessions = ["lint", "tests"]

PYTHONS = ["3.11", "3.12", "3.13"]
MAIN_PYTHON = "3.12"


@nox.session(python=MAIN_PYTHON)
def lint(session: nox.Session) -> None:
    """ruff (format and rules) plus mypy over src/ksengine."""
    session.install("-e", ".[lint]")
    session.run("ruff", "format", "--check", "src", "tests", "noxfile.py")
    session.run("ruff", "check", "src", "tests", "noxfile.py")
    session.run("mypy")


@nox.session(python=PYTHONS)
def tests(session: nox.Session) -> None:
    """Full suite with coverage; check loggers run at DEBUG."""
    session.install("-e", ".[test]")
    session.run(
        "pytest",
        "--cov=ksengine",
        "--cov-report=term-missing",
        *session.posargs,
        env={"COVERAGE_RUN": "true"},
    )


@nox.session(python=MAIN_PYTHON)
def tests_quick(session: nox.Session) -> None:
    """Unit and integration tests, without the hypothesis invariants."""
    session.install("-e", ".[test]")
    session.run("pytest", "-m", "not slow and not invariants", *session.posargs)


@nox.session(python=MAIN_PYTHON)
def invariants(session: nox.Session) -> None:
    """Only the property-based model and verifier invariants."""
    session.install("-e", ".[test]")
    session.run("pytest", "tests/property", *session.posargs)


@nox.session(python=MAIN_PYTHON)
def demo(session: nox.Session) -> None:
    """Run the K+S demo with every check; fails if any check found errors."""
    session.install("-e", ".")
    out = session.create_tmp()
    session.run(
        "ksengine", "--steps", "50", "--seed", "42", "--output-dir", out,
        *session.posargs,
    )


@nox.session(python=MAIN_PYTHON)
def docs(session: nox.Session) -> None:
    """Build the Sphinx HTML docs into docs/_build/html."""
    session.install("-e", ".[docs]")
    session.run("sphinx-build", "-b", "html", "docs", "docs/_build/html")
