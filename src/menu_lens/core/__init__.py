"""Core domain models and utilities.

This package contains the fundamental building blocks:
- models: MenuItem and parser/pipeline result types
- output_parser: model answer -> validated items
- prompt_loader: vision prompts shipped as package data
- logging: structured logging configuration
"""

from menu_lens.core.models import (
    AnalysisResult,
    MenuItem,
    ParseFailure,
    ParseResult,
    Position,
)


__all__ = [
    "AnalysisResult",
    "MenuItem",
    "ParseFailure",
    "ParseResult",
    "Position",
]
