"""CLI command modules."""

from .maturity import maturity
from .outcome import outcome
from .patterns import patterns
from .strikes import strikes
from .weights import weights

__all__ = [
    "outcome",
    "weights",
    "patterns",
    "maturity",
    "strikes",
]
