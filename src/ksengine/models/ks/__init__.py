"""
Illustrative Keynes+Schumpeter model.

Importing this package registers one equation module per sector and the
model's consistency checks.
"""

from ksengine.models.ks import (  # noqa: F401
    capital,
    checks,
    consumer,
    country,
    financial,
    labor,
)
from ksengine.models.ks.model import SECTORS, build_model, window_params

__all__ = ["SECTORS", "build_model", "window_params"]
