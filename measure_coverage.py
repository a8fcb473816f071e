#!/usr/bin/env python3
"""
Compute the coverage of tests generated for each project of a corpus.

Example:
    python measure_coverage.py --corpus-dir corpus --coverage-agent jacocoagent.jar \
        --harness-classpath junit.jar:hamcrest.jar --output-dir out \
        --safety-agent replacecall.jar
"""

import logging
import sys
from typing import List, Optional

from cli.arguments import parse_args
from config.run_config import RunConfig
from corpus.orchestrator import CorpusCoverageOrchestrator
from utils.errors import CorpusReadError, ScratchDirectoryError
from utils.logging import setup_logging

logger = logging.getLogger(__name__)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point; returns the process exit status."""
    args = parse_args(argv)
    setup_logging(args.log_level, args.log_dir)
    
    config = RunConfig.from_args(args)
    for problem in config.find_problems():
        logger.warning(problem)
    
    try:
        CorpusCoverageOrchestrator(config).run()
    except CorpusReadError as e:
        logger.error(str(e))
        return 1
    except ScratchDirectoryError as e:
        logger.error(str(e))
        return 1
    
    return 0


if __name__ == "__main__":
    sys.exit(main())
