"""Core building blocks shared by every kaeter layer."""

from __future__ import annotations

from .errors import ErrorCode
from .result import Err, Ok, Result, is_err, is_ok

__all__ = [
    "Err",
    "ErrorCode",
    "Ok",
    "Result",
    "is_err",
    "is_ok",
]
