"""
Coverage trace analysis.

This module turns the output of the JaCoCo runtime agent into counters:
- Reading execution-data files
- Parsing class files and computing their class ids
- Placing probes and propagating coverage through each method
- Rendering class names the way coverage reports present them
"""

from .analyzer import analyze, analyze_class
from .coverage_counters import Counters, ZERO, sum_counters
from .exec_reader import ExecutionData, ExecutionDataStore, load_exec_file
from .class_file import ClassMetadata, parse_class
from .java_names import qualified_name

__all__ = [
    'analyze',
    'analyze_class',
    'Counters',
    'ZERO',
    'sum_counters',
    'ExecutionData',
    'ExecutionDataStore',
    'load_exec_file',
    'ClassMetadata',
    'parse_class',
    'qualified_name'
]
