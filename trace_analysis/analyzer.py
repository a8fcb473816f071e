"""
Structural coverage analysis.

Joins the execution data written by the coverage agent with the class files
that were executed, producing line and method counters per class. Results
are keyed by the fully qualified class name as a Java developer writes it
and are not filtered; choosing which classes count is up to the caller.
"""

import gzip
import io
import itertools
import logging
import zipfile
from pathlib import Path
from typing import Dict, Iterator, Optional, Tuple

from utils.errors import AnalysisError, ClassFormatError
from .class_file import ClassMetadata, MethodInfo, parse_class
from .coverage_counters import Counters
from .exec_reader import ExecutionData, load_exec_file
from .java_names import qualified_name
from .method_flow import analyze_method

logger = logging.getLogger(__name__)

LAMBDA_PREFIX = "lambda$"
MIN_CLASS_MAJOR_VERSION = 45
ZIP_MAGIC = b'PK\x03\x04'
GZIP_MAGIC = b'\x1f\x8b'


def _is_filtered(method: MethodInfo) -> bool:
    """Compiler-generated methods are not counted, lambda bodies excepted."""
    return method.is_synthetic and not method.name.startswith(LAMBDA_PREFIX)


def analyze_class(metadata: ClassMetadata, record: Optional[ExecutionData]) -> Optional[Counters]:
    """
    Compute the counters of one class from its execution record.
    
    Args:
        metadata: Parsed class file
        record: Execution data with the same class id, or None if the class never ran
        
    Returns:
        Line and method counters, or None if the class contains no code
        
    Raises:
        AnalysisError: If a method uses bytecode the analysis cannot follow
    """
    probes = record.probes if record is not None else None
    probe_ids = itertools.count()
    lines: Dict[int, bool] = {}
    instruction_count = 0
    covered_methods = 0
    total_methods = 0
    
    for method in metadata.methods:
        coverage = analyze_method(method, probes, probe_ids)
        if _is_filtered(method) or coverage.instruction_count == 0:
            continue
        instruction_count += coverage.instruction_count
        total_methods += 1
        if coverage.covered:
            covered_methods += 1
        for line, covered in coverage.lines.items():
            lines[line] = lines.get(line, False) or covered
    
    probe_count = next(probe_ids)
    if record is not None and len(record.probes) != probe_count:
        logger.warning(
            f"Class {metadata.name} has {probe_count} probes but its execution data has {len(record.probes)}"
        )
    
    if instruction_count == 0:
        return None
    return Counters(sum(lines.values()), len(lines), covered_methods, total_methods)


def _iter_content(location: str, data: bytes) -> Iterator[Tuple[str, bytes]]:
    if data[:4] == b'\xca\xfe\xba\xbe' and int.from_bytes(data[6:8], 'big') >= MIN_CLASS_MAJOR_VERSION:
        yield location, data
    elif data[:4] == ZIP_MAGIC:
        try:
            with zipfile.ZipFile(io.BytesIO(data)) as archive:
                for name in sorted(archive.namelist()):
                    if not name.endswith('/'):
                        yield from _iter_content(f"{location}@{name}", archive.read(name))
        except zipfile.BadZipFile as e:
            raise AnalysisError(f"Error while analyzing {location}: {e}") from e
    elif data[:2] == GZIP_MAGIC:
        try:
            content = gzip.decompress(data)
        except (OSError, EOFError) as e:
            raise AnalysisError(f"Error while analyzing {location}: {e}") from e
        yield from _iter_content(location, content)


def iter_class_files(path: Path) -> Iterator[Tuple[str, bytes]]:
    """
    Yield (location, bytes) for every class file under a path.
    
    Directories are walked recursively in name order; jar/zip archives and
    gzip files are opened. Other files are ignored.
    """
    if path.is_dir():
        try:
            children = sorted(path.iterdir())
        except OSError as e:
            raise AnalysisError(f"Failed to read {path}: {e}") from e
        for child in children:
            yield from iter_class_files(child)
        return
    try:
        data = path.read_bytes()
    except OSError as e:
        raise AnalysisError(f"Failed to read {path}: {e}") from e
    yield from _iter_content(str(path), data)


def analyze(trace_file: Path, class_dir: Optional[Path]) -> Dict[str, Counters]:
    """
    Analyze the coverage of all classes under a class directory.
    
    Args:
        trace_file: Execution-data file written by the coverage agent
        class_dir: Root of the compiled classes under test
        
    Returns:
        Counters per fully qualified class name, for every class with code
        
    Raises:
        TraceFormatError: If the trace file is missing or malformed
        AnalysisError: If the class directory cannot be analyzed
    """
    store = load_exec_file(trace_file)
    if class_dir is None or not class_dir.exists():
        raise AnalysisError(f"Failed to open class path \"{class_dir}\"")
    
    results: Dict[str, Counters] = {}
    ids_by_vm_name: Dict[str, int] = {}
    for location, raw in iter_class_files(class_dir):
        try:
            metadata = parse_class(raw)
            record = store.get(metadata.class_id)
            counters = analyze_class(metadata, record)
        except (ClassFormatError, AnalysisError) as e:
            raise AnalysisError(f"Error while analyzing {location}: {e}") from e
        
        if record is None and store.contains_name(metadata.name):
            logger.warning(f"Execution data for class {metadata.name} does not match {location}")
        if counters is None:
            continue
        
        known_id = ids_by_vm_name.get(metadata.name)
        if known_id is not None:
            if known_id != metadata.class_id:
                raise AnalysisError(f"Can't add different class with same name: {metadata.name}")
            continue
        ids_by_vm_name[metadata.name] = metadata.class_id
        
        name = qualified_name(metadata.name, metadata.signature, metadata.super_name, metadata.interfaces)
        # Anonymous classes of one enclosing class can share a rendered name.
        results[name] = results[name] + counters if name in results else counters
    
    logger.debug(f"Analyzed {len(results)} classes under {class_dir}")
    return results
