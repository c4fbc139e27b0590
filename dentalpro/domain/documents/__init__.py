"""Documents domain - Invoice and prescription PDFs"""

from .router import router

__all__ = ["router"]
