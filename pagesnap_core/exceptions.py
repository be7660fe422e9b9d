"""
pagesnap exceptions

Each subclass carries the error ``kind`` recorded in ``ScrapingError.type``.
"""

from typing import Optional


class PagesnapError(Exception):
    """Base exception for pagesnap"""
    kind = "extraction"

    def __init__(self, message: str, url: Optional[str] = None, selector: Optional[str] = None):
        super().__init__(message)
        self.url = url
        self.selector = selector


class ExtractionError(PagesnapError):
    """Schema/field evaluation failure; recovered by falling through to the next tier"""
    kind = "extraction"


class NavigationError(PagesnapError):
    """goto/back failure"""
    kind = "navigation"


class SchemaValidationError(PagesnapError):
    """Malformed schema; fatal before any run"""
    kind = "validation"


class ReadinessTimeout(PagesnapError):
    """Readiness / idle heuristics not met in time"""
    kind = "timeout"


class SelectorSyntaxError(ValueError):
    """Selector that does not parse as CSS"""
    pass


def error_kind(error: BaseException) -> str:
    if isinstance(error, PagesnapError):
        return error.kind
    # playwright's TimeoutError does not derive from the builtin one
    if isinstance(error, TimeoutError) or type(error).__name__ == "TimeoutError":
        return "timeout"
    return "extraction"
