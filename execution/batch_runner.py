"""
Execution of one generated test batch under the coverage agent.

Each batch runs in its own JVM with a fresh scratch working directory. The
combined output is kept as a log next to the execution-data file, and the
exit status decides whether the trace is worth analyzing.
"""

import logging
import subprocess
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional

from config.run_config import RunConfig
from .scratch import scratch_directory

logger = logging.getLogger(__name__)

TRACE_FILE_NAME = "jacoco.exec"
LOG_FILE_NAME = "log.txt"
CLASSPATH_SEPARATOR = ":"
COVERAGE_EXCLUDES = "org.junit.*"

EXIT_SUCCESS = 0
EXIT_TEST_FAILURE = 1
EXIT_TERMINATED = 143


class BatchOutcome(str, Enum):
    SUCCESS = "success"
    NO_CLASS_FILES = "no_class_files"
    BAD_CLASSPATH = "bad_classpath"
    TEST_FAILURE = "test_failure"
    TERMINATED = "terminated"
    PROCESS_ERROR = "process_error"
    LAUNCH_ERROR = "launch_error"


@dataclass
class RunResult:
    """What happened when a batch was run."""
    outcome: BatchOutcome
    exit_status: Optional[int] = None
    output_lines: List[str] = field(default_factory=list)
    
    @property
    def success(self) -> bool:
        return self.outcome == BatchOutcome.SUCCESS


def classify_exit_status(exit_status: int) -> BatchOutcome:
    """
    Map a JVM exit status to a batch outcome.
    
    143 is the status of a JVM stopped by SIGTERM; a negative status means
    the process was killed by a signal before the JVM could exit itself.
    """
    if exit_status == EXIT_SUCCESS:
        return BatchOutcome.SUCCESS
    if exit_status == EXIT_TEST_FAILURE:
        return BatchOutcome.TEST_FAILURE
    if exit_status == EXIT_TERMINATED or exit_status < 0:
        return BatchOutcome.TERMINATED
    return BatchOutcome.PROCESS_ERROR


def has_class_files(batch_dir: Path) -> bool:
    """Whether the batch directory directly contains a compiled class."""
    try:
        return any(batch_dir.glob("*.class"))
    except OSError as e:
        logger.error(f"No file matching *.class in {batch_dir.name}: {e}")
        return False


def write_log(log_file: Path, lines: List[str]) -> bool:
    """Write captured output, one line per line. Failures are reported, not raised."""
    try:
        with open(log_file, 'w', encoding='utf-8') as log:
            for line in lines:
                log.write(f"{line}\n")
        return True
    except OSError as e:
        logger.error(f">>>>failed to write log file: {e}")
        return False


class BatchRunner:
    """Runs test batches with the coverage and replacecall agents attached."""
    
    def __init__(self, config: RunConfig):
        self.config = config
    
    def build_command(self, batch_dir: Path, classpath: str, trace_file: Path) -> List[str]:
        """
        Build the JVM command line for a batch.
        
        Args:
            batch_dir: Directory of compiled test classes
            classpath: Classpath of the project under test
            trace_file: Destination of the execution data
            
        Returns:
            Command as a list of arguments
        """
        test_classpath = CLASSPATH_SEPARATOR.join([classpath, str(batch_dir), self.config.harness_classpath])
        return [
            self.config.java_executable,
            f"-Xbootclasspath/a:{self.config.safety_agent}",
            f"-javaagent:{self.config.coverage_agent}=destfile={trace_file},excludes={COVERAGE_EXCLUDES}",
            f"-javaagent:{self.config.safety_agent}",
            "-ea",
            "-classpath",
            test_classpath,
            self.config.driver_class
        ]
    
    def run(self, batch_dir: Path, classpath: Optional[str], batch_out_dir: Path) -> RunResult:
        """
        Run one test batch.
        
        Args:
            batch_dir: Directory of compiled test classes
            classpath: Project classpath read from its descriptor, None if unreadable
            batch_out_dir: Directory receiving the trace and log files
            
        Returns:
            The classified result of the run
        """
        if not has_class_files(batch_dir):
            logger.error(f">>>>No class files found in {batch_dir}")
            return RunResult(BatchOutcome.NO_CLASS_FILES)
        
        if not classpath:
            logger.error(f">>>>Bad classpath in {batch_dir}")
            return RunResult(BatchOutcome.BAD_CLASSPATH)
        
        trace_file = batch_out_dir / TRACE_FILE_NAME
        try:
            batch_out_dir.mkdir(parents=True, exist_ok=True)
            # The agent appends to an existing file.
            trace_file.unlink(missing_ok=True)
        except OSError as e:
            logger.error(f">>>>Unable to prepare output directory {batch_out_dir}: {e}")
            return RunResult(BatchOutcome.LAUNCH_ERROR, output_lines=[str(e)])
        
        command = self.build_command(batch_dir, classpath, trace_file)
        logger.debug(f"Running {command}")
        
        with scratch_directory() as working_directory:
            try:
                completed = subprocess.run(
                    command,
                    cwd=working_directory,
                    stdout=subprocess.PIPE,
                    stderr=subprocess.STDOUT,
                    text=True,
                    errors='replace',
                    env=self.config.subprocess_env()
                )
            except OSError as e:
                logger.error(f">>>>Unable to start {command[0]}: {e}")
                write_log(batch_out_dir / LOG_FILE_NAME, [str(e)])
                return RunResult(BatchOutcome.LAUNCH_ERROR, output_lines=[str(e)])
        
        output_lines = completed.stdout.splitlines() if completed.stdout else []
        write_log(batch_out_dir / LOG_FILE_NAME, output_lines)
        
        outcome = classify_exit_status(completed.returncode)
        if outcome == BatchOutcome.TEST_FAILURE:
            logger.error(f">>>>Run terminated with exit status {completed.returncode}")
        elif outcome == BatchOutcome.TERMINATED:
            logger.error(">>>>Run terminated")
        elif outcome == BatchOutcome.PROCESS_ERROR:
            logger.error(f">>>>Run failed with exit status {completed.returncode}")
            for line in output_lines:
                logger.error(f"      {line}")
        
        return RunResult(outcome, completed.returncode, output_lines)
