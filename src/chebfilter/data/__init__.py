"""Data module for scalar formats."""

from chebfilter.data.scalar_types import (
    ScalarFormat,
    ScalarSpec,
    format_for_dtype,
    get_dtype,
    get_eps,
    get_spec,
    get_tolerance,
    list_available_formats,
)

__all__ = [
    "ScalarFormat",
    "ScalarSpec",
    "format_for_dtype",
    "get_dtype",
    "get_eps",
    "get_spec",
    "get_tolerance",
    "list_available_formats",
]
