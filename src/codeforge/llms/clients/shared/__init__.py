"""Shared client helper utilities."""

from .normalization import extract_usage, to_jsonable, to_plain_dict

__all__ = [
    "to_plain_dict",
    "to_jsonable",
    "extract_usage",
]
