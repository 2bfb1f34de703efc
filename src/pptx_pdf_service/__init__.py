"""
PowerPoint to PDF conversion service package.

This module provides a FastAPI application exposing a single conversion
endpoint at `/convert/pptx-to-pdf` plus health endpoints.
"""

__all__ = ["__version__"]

__version__ = "1.0.0"
