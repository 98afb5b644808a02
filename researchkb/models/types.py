"""
------------------------------------------------------------------------------
Project:        ResearchKB
File:           researchkb/models/types.py
Version:        1.0.0
Description:    Centralized enumeration and type definitions.
------------------------------------------------------------------------------
"""

from enum import Enum


class ItemType(str, Enum):
    """Categories of knowledge items extracted from a paper."""
    CLAIM = "claim"
    METHOD = "method"
    DEFINITION = "definition"
    RESULT = "result"


class ConversionStatus(str, Enum):
    """State of the PDF-to-Markdown conversion for a paper."""
    NONE = "none"
    CONVERTED = "converted"
    PARTIAL = "partial"
    FAILED = "failed"
