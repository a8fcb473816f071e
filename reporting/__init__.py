"""
Coverage report writers.
"""

from .corpus_report import (
    BatchRow,
    SummaryRow,
    project_totals,
    summary_file_name,
    write_class_report,
    write_project_totals,
    write_summary_report
)

__all__ = [
    'BatchRow',
    'SummaryRow',
    'project_totals',
    'summary_file_name',
    'write_class_report',
    'write_project_totals',
    'write_summary_report'
]
