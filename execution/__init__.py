"""
Test batch execution.

This module provides:
- Resolution of the classes under test from a class directory
- Running a test batch in an instrumented JVM
- Scratch directories with guaranteed cleanup
"""

from .batch_runner import BatchOutcome, BatchRunner, RunResult, classify_exit_status
from .class_set_resolver import resolve_input_classes
from .scratch import remove_tree, scratch_directory

__all__ = [
    'BatchOutcome',
    'BatchRunner',
    'RunResult',
    'classify_exit_status',
    'resolve_input_classes',
    'remove_tree',
    'scratch_directory'
]
