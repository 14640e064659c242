"""
MIT License
Copyright (c) 2026 socioy
See LICENSE file for full license text.

This module defines custom exceptions for error handling in the tools.
"""

from __future__ import annotations


class CodeforgeToolError(Exception):
    """Base exception for all codeforge tool-related errors."""

    pass


class ToolValidationError(CodeforgeToolError):
    pass


class ToolAlreadyRegisteredError(CodeforgeToolError):
    pass


class ToolNotFoundError(CodeforgeToolError):
    pass
