# utils package

"""
Utilities module for common functionality.
"""

from .logging import setup_logging
from .errors import (
    AnalysisError,
    ClassFormatError,
    CorpusCoverageError,
    CorpusReadError,
    ScratchDirectoryError,
    TraceFormatError
)

__all__ = [
    'setup_logging',
    'AnalysisError',
    'ClassFormatError',
    'CorpusCoverageError',
    'CorpusReadError',
    'ScratchDirectoryError',
    'TraceFormatError'
]
