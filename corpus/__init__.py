"""
Corpus traversal and coverage aggregation.
"""

from .discovery import Project, discover_projects, extract_test_id
from .orchestrator import CorpusCoverageOrchestrator

__all__ = [
    'Project',
    'discover_projects',
    'extract_test_id',
    'CorpusCoverageOrchestrator'
]
