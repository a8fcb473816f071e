"""
Corpus-wide coverage measurement.

Walks every project of the corpus and every test batch of each project,
strictly one batch at a time: run the batch, analyze its trace, keep the
classes under test and sum their counters into one row per batch. Errors
are isolated at each level; a broken batch yields a zero row and a broken
project yields no rows, while the walk continues.
"""

import logging
from datetime import date
from pathlib import Path
from typing import Callable, Dict, List, Optional, Set

from config.run_config import RunConfig
from execution.batch_runner import TRACE_FILE_NAME, BatchRunner
from reporting.corpus_report import (
    CLASS_REPORT_FILE_NAME,
    BatchRow,
    SummaryRow,
    project_totals_file_name,
    summary_file_name,
    write_class_report,
    write_project_totals,
    write_summary_report
)
from trace_analysis.analyzer import analyze
from trace_analysis.coverage_counters import Counters, sum_counters
from utils import colors
from utils.errors import AnalysisError, TraceFormatError
from .discovery import Project, discover_projects, extract_test_id

logger = logging.getLogger(__name__)

Analyzer = Callable[[Path, Optional[Path]], Dict[str, Counters]]


def filter_to_input_classes(counters_by_class: Dict[str, Counters], input_classes: Set[str]) -> Dict[str, Counters]:
    """Keep only the counters of classes under test."""
    return {name: counters for name, counters in counters_by_class.items() if name in input_classes}


class CorpusCoverageOrchestrator:
    """Measures the coverage of every test batch in a corpus."""
    
    def __init__(self, config: RunConfig, runner: Optional[BatchRunner] = None,
                 analyzer: Analyzer = analyze, today: Optional[date] = None):
        self.config = config
        self.runner = runner if runner is not None else BatchRunner(config)
        self.analyzer = analyzer
        self.today = today
    
    def run(self) -> List[SummaryRow]:
        """
        Measure the whole corpus and write the summary reports.
        
        Returns:
            One row per test batch, in discovery order
            
        Raises:
            CorpusReadError: If the corpus directory cannot be listed
            ScratchDirectoryError: If a batch cannot get a scratch directory
        """
        print(colors.step(f"Corpus directory: {self.config.corpus_dir}"))
        projects = discover_projects(self.config.corpus_dir)
        
        table: List[SummaryRow] = []
        for project_path in projects:
            table.extend(self.visit_project(project_path))
        
        self.write_reports(table)
        return table
    
    def visit_project(self, project_path: Path) -> List[SummaryRow]:
        """Measure every batch of one project; the project path is passed down explicitly."""
        print()
        print(colors.step(f"Visiting project: {project_path.name}"))
        project = Project.load(project_path)
        project_out_dir = self.config.output_dir / project.name
        
        try:
            batches = project.batches(self.config.batch_glob)
        except OSError as e:
            logger.error(f">>Unable to read directory {project_path.name}/build/classes: {e}")
            return []
        
        rows = []
        for batch_dir in batches:
            batch_row = self.visit_batch(project, batch_dir, project_out_dir / batch_dir.name)
            rows.append(SummaryRow(project.name, batch_row))
        return rows
    
    def visit_batch(self, project: Project, batch_dir: Path, batch_out_dir: Path) -> BatchRow:
        """Run and analyze one test batch; any failure gives a zero row."""
        test_id = extract_test_id(batch_dir.name)
        no_result = BatchRow(test_id)
        
        result = self.runner.run(batch_dir, project.classpath, batch_out_dir)
        if not result.success:
            print(colors.failure(f"[ {batch_dir} ] {result.outcome.value}"))
            return no_result
        
        try:
            counters_by_class = self.analyzer(batch_out_dir / TRACE_FILE_NAME, project.class_dir)
        except (TraceFormatError, AnalysisError) as e:
            logger.error(f">>>>{e}")
            print(colors.failure(f"[ {batch_dir} ] analysis failed"))
            return no_result
        
        input_classes = project.input_classes()
        filtered = filter_to_input_classes(counters_by_class, input_classes)
        write_class_report(batch_out_dir / CLASS_REPORT_FILE_NAME, filtered)
        
        total = sum_counters(filtered.values())
        print(colors.success(f"[ {batch_dir} ] Number of classes: {len(input_classes)}, {total}"))
        return BatchRow(test_id, total)
    
    def write_reports(self, table: List[SummaryRow]) -> None:
        day = self.today or date.today()
        try:
            self.config.output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Unable to create output directory {self.config.output_dir}: {e}")
            return
        
        summary_file = self.config.output_dir / summary_file_name(day)
        if write_summary_report(summary_file, table):
            print(colors.info(f"Wrote {summary_file}"))
        write_project_totals(self.config.output_dir / project_totals_file_name(day), table)
        
        corpus_total = sum_counters(row.batch.counters for row in table)
        print(colors.summary(f"{len(table)} test batches: {corpus_total}"))
