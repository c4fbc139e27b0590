"""Imaging domain - Medical image storage and analysis"""

from .router import router

__all__ = ["router"]
