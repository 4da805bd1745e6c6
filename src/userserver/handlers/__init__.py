"""
Application handlers.
"""

from .users import UserHandlers

__all__ = ["UserHandlers"]
