"""widecol core package."""

from .reader import TableReader

__all__ = ["TableReader"]
