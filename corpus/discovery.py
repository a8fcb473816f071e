"""
Discovery of projects and test batches in a corpus directory.
"""

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Set

from execution.class_set_resolver import resolve_input_classes
from utils.errors import CorpusReadError

logger = logging.getLogger(__name__)

PROJECT_DESCRIPTOR = "build.gradle"
COMPILED_OUTPUT_DIR = Path("build") / "classes"
RESOURCES_DIR = "resources"
CLASSPATH_FILE = "classpath.txt"
CLASSDIR_FILE = "classdir.txt"

_TEST_ID_PATTERN = re.compile(r"\d+")


def extract_test_id(batch_name: str) -> str:
    """
    Identify a test batch by the first run of digits in its name.
    
    Args:
        batch_name: Name of the batch directory, e.g. "test0042"
        
    Returns:
        The digits ("0042"), or the name unchanged when it has none
    """
    match = _TEST_ID_PATTERN.search(batch_name)
    return match.group() if match else batch_name


def read_descriptor(path: Path) -> Optional[str]:
    """Read the single line of a project descriptor; None if unreadable or empty."""
    try:
        with open(path, encoding='utf-8') as f:
            line = f.readline().strip()
    except (OSError, UnicodeDecodeError) as e:
        logger.error(f"Error reading descriptor file {path}: {e}")
        return None
    return line or None


@dataclass
class Project:
    """A corpus project with its descriptors, read once and shared by all its batches."""
    path: Path
    classpath: Optional[str] = None
    class_dir: Optional[Path] = None
    _input_classes: Optional[Set[str]] = field(default=None, init=False, repr=False)
    
    @property
    def name(self) -> str:
        return self.path.name
    
    @classmethod
    def load(cls, path: Path) -> "Project":
        resources = path / RESOURCES_DIR
        class_dir = read_descriptor(resources / CLASSDIR_FILE)
        return cls(
            path=path,
            classpath=read_descriptor(resources / CLASSPATH_FILE),
            class_dir=Path(class_dir) if class_dir else None
        )
    
    def input_classes(self) -> Set[str]:
        """Names of the classes under test, resolved on first use."""
        if self._input_classes is None:
            self._input_classes = resolve_input_classes(self.class_dir)
        return self._input_classes
    
    def batches(self, pattern: str) -> List[Path]:
        """
        Test batch directories of the project, in name order.
        
        Raises:
            OSError: If the compiled test output directory cannot be read
        """
        compiled = self.path / COMPILED_OUTPUT_DIR
        if not compiled.is_dir():
            raise FileNotFoundError(f"No such directory: {compiled}")
        return sorted(p for p in compiled.glob(pattern) if p.is_dir())


def is_project(path: Path) -> bool:
    return path.is_dir() and (path / PROJECT_DESCRIPTOR).exists()


def discover_projects(corpus_dir: Path) -> List[Path]:
    """
    List the project directories of a corpus, in name order.
    
    Raises:
        CorpusReadError: If the corpus directory cannot be listed
    """
    try:
        entries = sorted(corpus_dir.iterdir())
    except OSError as e:
        raise CorpusReadError(f"Unable to read corpus directory: {e}") from e
    return [entry for entry in entries if is_project(entry)]
