"""Content quality validation."""

from .validator import (
    ContentValidator,
    Reason,
    ValidationResult,
    Verdict,
    is_generic_title,
    markup_ratio,
)

__all__ = [
    "ContentValidator",
    "Reason",
    "ValidationResult",
    "Verdict",
    "is_generic_title",
    "markup_ratio",
]
