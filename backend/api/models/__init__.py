"""
API-level response models.
"""

from .errors import ErrorResponse

__all__ = ["ErrorResponse"]
