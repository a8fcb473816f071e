"""
CSV reports at class, test batch and project level.

Every writer reports failures through the log and returns False instead of
raising, so one unwritable report never stops the rest of the corpus.
"""

import csv
import logging
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Dict, List

import pandas as pd

from trace_analysis.coverage_counters import ZERO, Counters

logger = logging.getLogger(__name__)

CLASS_REPORT_FILE_NAME = "report.csv"
SUMMARY_HEADER = "project,case,covered lines, total lines, covered methods, total methods"
COUNTER_COLUMNS = ['covered_lines', 'total_lines', 'covered_methods', 'total_methods']


@dataclass(frozen=True)
class BatchRow:
    """Summed counters of one test batch."""
    test_id: str
    counters: Counters = ZERO
    
    def fields(self) -> List[object]:
        return [self.test_id] + self.counters.as_row()


@dataclass(frozen=True)
class SummaryRow:
    """A batch row prefixed with its project."""
    project: str
    batch: BatchRow
    
    def fields(self) -> List[object]:
        return [self.project] + self.batch.fields()


def summary_file_name(day: date) -> str:
    return f"report-{day.strftime('%Y%m%d')}.csv"


def project_totals_file_name(day: date) -> str:
    return f"project-totals-{day.strftime('%Y%m%d')}.csv"


def write_class_report(report_file: Path, counters_by_class: Dict[str, Counters]) -> bool:
    """Write one header-less row per class, in class name order."""
    try:
        with open(report_file, 'w', newline='') as f:
            writer = csv.writer(f, lineterminator='\n')
            for class_name in sorted(counters_by_class):
                writer.writerow([class_name] + counters_by_class[class_name].as_row())
        return True
    except OSError as e:
        logger.error(f">>>>failed to generate report: {e}")
        return False


def write_summary_report(report_file: Path, rows: List[SummaryRow]) -> bool:
    """Write the corpus summary: file name as title line, fixed header, then one row per batch."""
    try:
        with open(report_file, 'w', newline='') as f:
            f.write(f"{report_file.name}\n")
            f.write(f"{SUMMARY_HEADER}\n")
            writer = csv.writer(f, lineterminator='\n')
            for row in rows:
                writer.writerow(row.fields())
        return True
    except OSError as e:
        logger.error(f"Unable to write report file {report_file}: {e}")
        return False


def project_totals(rows: List[SummaryRow]) -> pd.DataFrame:
    """
    Roll batch rows up to one row per project, in order of first appearance.
    
    Returns:
        DataFrame with project, cases and the four summed counter columns
    """
    frame = pd.DataFrame(
        [[row.project, row.batch.test_id] + row.batch.counters.as_row() for row in rows],
        columns=['project', 'case'] + COUNTER_COLUMNS
    )
    frame[COUNTER_COLUMNS] = frame[COUNTER_COLUMNS].astype('int64')
    grouped = frame.groupby('project', sort=False)
    totals = grouped[COUNTER_COLUMNS].sum()
    totals.insert(0, 'cases', grouped.size())
    return totals.reset_index()


def write_project_totals(report_file: Path, rows: List[SummaryRow]) -> bool:
    """Write the per-project roll-up of the batch rows."""
    try:
        project_totals(rows).to_csv(report_file, index=False)
        return True
    except OSError as e:
        logger.error(f"Unable to write project totals file {report_file}: {e}")
        return False
