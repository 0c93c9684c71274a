"""
fndash - checked functional operators over arbitrary collections.

Every operator validates the function it receives against the elements
it will be called with before iterating.
"""

from fndash.contracts import (
    ConfigurationError,
    ElementNotFoundError,
    FnDashError,
    FunctionContract,
    FunctionShapeError,
    FunctionSignature,
    OutputError,
    ReturnTypeError,
    TypeMismatchError,
    UnsupportedInputError,
    accepts_type,
    accepts_value,
    describe,
)
from fndash.lazy import LazyCollection
from fndash.models import OperationStats, OperatorSettings, configure, get_settings, reset_settings
from fndash.operators import all_, any_, every, filter_, find, group_by, map_, reduce_, some
from fndash.utils import clear_all_metrics, get_performance_summary, setup_logging

__version__ = "0.1.0"

__all__ = [
    "all_",
    "any_",
    "every",
    "some",
    "filter_",
    "find",
    "group_by",
    "map_",
    "reduce_",
    "LazyCollection",
    "FunctionContract",
    "FunctionSignature",
    "describe",
    "accepts_type",
    "accepts_value",
    "FnDashError",
    "ConfigurationError",
    "FunctionShapeError",
    "TypeMismatchError",
    "ReturnTypeError",
    "OutputError",
    "UnsupportedInputError",
    "ElementNotFoundError",
    "OperatorSettings",
    "OperationStats",
    "configure",
    "get_settings",
    "reset_settings",
    "setup_logging",
    "get_performance_summary",
    "clear_all_metrics",
]
