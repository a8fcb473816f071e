"""
Exception types raised by the coverage pipeline.

Every error here is recoverable at some level of the corpus walk: the
orchestrator turns batch-level errors into zero rows and keeps going.
"""


class CorpusCoverageError(Exception):
    """Base class for all pipeline errors."""


class TraceFormatError(CorpusCoverageError):
    """The execution-data file is missing, truncated or not in JaCoCo format."""


class ClassFormatError(CorpusCoverageError):
    """A class file could not be parsed."""


class AnalysisError(CorpusCoverageError):
    """Class files could not be matched against the execution data."""


class ScratchDirectoryError(CorpusCoverageError):
    """A scratch working directory could not be created."""


class CorpusReadError(CorpusCoverageError):
    """The corpus directory could not be listed."""
