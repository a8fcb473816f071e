import argparse
from pathlib import Path
from typing import List, Optional

from config.run_config import DEFAULT_BATCH_GLOB, DEFAULT_DRIVER_CLASS


def build_parser() -> argparse.ArgumentParser:
    """Build the command line parser."""
    parser = argparse.ArgumentParser(
        description='Measure the coverage achieved by generated regression tests across a corpus of Java projects',
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    
    # Required arguments; the camelCase spellings are kept for existing scripts
    parser.add_argument(
        '--corpus-dir', '--corpusDirectoryPath',
        dest='corpus_dir',
        type=Path,
        required=True,
        help='The corpus directory'
    )
    parser.add_argument(
        '--coverage-agent', '--jacocoAgentPath',
        dest='coverage_agent',
        type=Path,
        required=True,
        help='The path to the JaCoCo agent (0.7.x; traces from 0.8 agents are counted '
             'without the filters 0.8 applies)'
    )
    parser.add_argument(
        '--harness-classpath', '--junitPath',
        dest='harness_classpath',
        type=str,
        required=True,
        help='The JUnit library classpath'
    )
    parser.add_argument(
        '--output-dir', '--outputPath',
        dest='output_dir',
        type=Path,
        required=True,
        help='Directory where output should be written'
    )
    parser.add_argument(
        '--safety-agent', '--replacecallAgentPath',
        dest='safety_agent',
        type=Path,
        required=True,
        help='The path for the replacecall agent'
    )
    
    # Optional arguments
    parser.add_argument(
        '--driver-class',
        type=str,
        default=DEFAULT_DRIVER_CLASS,
        help='Main class that runs the tests of a batch'
    )
    parser.add_argument(
        '--batch-glob',
        type=str,
        default=DEFAULT_BATCH_GLOB,
        help='Pattern naming the test batch directories under build/classes'
    )
    parser.add_argument(
        '--java-home',
        type=Path,
        default=None,
        help='JDK used to run the batches (default: java on the PATH)'
    )
    parser.add_argument(
        '--log-level',
        type=str,
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
        default='INFO',
        help='Set the logging level'
    )
    parser.add_argument(
        '--log-dir',
        type=Path,
        default=None,
        help='Directory for a dated log file of the diagnostics'
    )
    
    return parser

def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command line arguments.
    
    Missing or unrecognized arguments print the usage and exit with status 2.
    
    Returns:
        Parsed arguments namespace
    """
    return build_parser().parse_args(argv)
