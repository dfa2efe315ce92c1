"""Bot package for the staff status bot."""

from .config import Config

__all__ = ['Config']
