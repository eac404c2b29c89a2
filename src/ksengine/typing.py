"""
Type aliases for ksengine.

Variable histories are stored as dense numpy arrays indexed by time step;
these aliases name the array types used across the engine.
"""

from typing import Callable, TypeAlias

import numpy as np
from numpy.typing import NDArray

Float1D: TypeAlias = NDArray[np.float64]
Bool1D: TypeAlias = NDArray[np.bool_]
Int1D: TypeAlias = NDArray[np.int64]

# (agent, variable name, step, value) -> None
Listener: TypeAlias = Callable[..., None]

__all__ = ["Float1D", "Bool1D", "Int1D", "Listener"]
