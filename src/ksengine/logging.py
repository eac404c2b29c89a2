"""
Custom logging configuration for ksengine.

Extends Python's standard logging with a DEEP_DEBUG level (5) used for
per-evaluation tracing inside the equation engine. Provides the KsLogger
class; per-check log levels are applied by ``Simulation.init``.

Log Levels
----------
- CRITICAL (50): Critical errors
- ERROR (40): Errors
- WARNING (30): Consistency failures found by checks
- INFO (20): Check banners and summaries (default)
- DEBUG (10): Entry/exit events, step summaries
- DEEP_DEBUG (5): Every equation evaluation

Examples
--------
>>> from ksengine import logging
>>> logger = logging.getLogger("ksengine.checks.testSFC")
>>> logger.info("check started")
>>> logger.deep("Very verbose output")

Configure per-check log levels:

>>> import ksengine as ks
>>> sim = ks.Simulation.init(
...     logging={"default_level": "INFO", "checks": {"testSFC": "DEBUG"}}
... )

See Also
--------
ksengine.verification.check.ConsistencyCheck.get_logger
"""

import logging
from typing import Any

(CRITICAL, ERROR, WARNING, INFO, DEBUG) = (
    logging.CRITICAL,
    logging.ERROR,
    logging.WARNING,
    logging.INFO,
    logging.DEBUG,
)
DEEP_DEBUG = 5
logging.addLevelName(DEEP_DEBUG, "DEEP")


class KsLogger(logging.Logger):
    """
    Logger with DEEP_DEBUG level support.

    Examples
    --------
    >>> logger = KsLogger("test")
    >>> logger.setLevel(5)  # DEEP_DEBUG
    >>> logger.deep("Very verbose message")
    """

    def deep(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """
        Log message at DEEP_DEBUG level (5).

        Parameters
        ----------
        msg : str
            Message format string.
        *args : Any
            Arguments for message formatting.
        **kwargs : Any
            Additional logging kwargs.
        """
        if self.isEnabledFor(DEEP_DEBUG):
            self._log(DEEP_DEBUG, msg, args, **kwargs)


logging.setLoggerClass(KsLogger)

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
    datefmt="%H:%M:%S",
)


def getLogger(name: str | None = None) -> KsLogger:
    """
    Get a KsLogger instance.

    Parameters
    ----------
    name : str, optional
        Logger name. If None, returns root logger.

    Returns
    -------
    KsLogger
        Logger instance with deep() method.
    """
    return logging.getLogger(name)  # type: ignore[return-value]


def level_value(name: str) -> int:
    """Translate a configured level name (including ``DEEP_DEBUG``) to an int."""
    if name == "DEEP_DEBUG":
        return DEEP_DEBUG
    return int(getattr(logging, name))
