"""
Reader for JaCoCo execution-data ("exec") files.

The coverage agent writes a sequence of blocks, each introduced by a type
byte:

- 0x01 header: magic number 0xC0C0 and the format version 0x1007
- 0x10 session info: session id, start and dump timestamps
- 0x11 execution data: class id, VM class name and the probe array

The file must start with a header block. An empty file is valid and holds
no data.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO, Dict, List, Optional

from utils.errors import TraceFormatError
from .java_io import JavaDataInput

logger = logging.getLogger(__name__)

BLOCK_HEADER = 0x01
BLOCK_SESSIONINFO = 0x10
BLOCK_EXECUTIONDATA = 0x11

MAGIC_NUMBER = 0xC0C0
FORMAT_VERSION = 0x1007


@dataclass
class SessionInfo:
    """One agent session recorded in the file."""
    session_id: str
    start: int
    dump: int


@dataclass
class ExecutionData:
    """Probe hits recorded for one class."""
    class_id: int
    name: str
    probes: List[bool]

    def merge(self, other: "ExecutionData") -> None:
        """OR the probes of another record for the same class into this one."""
        if other.class_id != self.class_id or other.name != self.name or len(other.probes) != len(self.probes):
            raise TraceFormatError(
                f"Incompatible execution data for class {self.name} with id {self.class_id:016x}"
            )
        self.probes = [a or b for a, b in zip(self.probes, other.probes)]


@dataclass
class ExecutionDataStore:
    """Execution data indexed by class id."""
    entries: Dict[int, ExecutionData] = field(default_factory=dict)
    sessions: List[SessionInfo] = field(default_factory=list)

    def put(self, data: ExecutionData) -> None:
        existing = self.entries.get(data.class_id)
        if existing is None:
            self.entries[data.class_id] = data
        else:
            existing.merge(data)

    def get(self, class_id: int) -> Optional[ExecutionData]:
        return self.entries.get(class_id)

    def contains_name(self, name: str) -> bool:
        """Whether any record carries this VM class name, whatever its id."""
        return any(data.name == name for data in self.entries.values())

    def __len__(self) -> int:
        return len(self.entries)


class ExecFileReader:
    """Reads the blocks of an execution-data stream into a store."""

    def __init__(self, stream: BinaryIO):
        self.input = JavaDataInput(stream, TraceFormatError)
        self.store = ExecutionDataStore()
        self._first_block = True

    def read(self) -> ExecutionDataStore:
        while True:
            block_type = self.input.read_optional_u1()
            if block_type is None:
                return self.store
            if self._first_block and block_type != BLOCK_HEADER:
                raise TraceFormatError("Invalid execution data file.")
            self._first_block = False
            self._read_block(block_type)

    def _read_block(self, block_type: int) -> None:
        if block_type == BLOCK_HEADER:
            self._read_header()
        elif block_type == BLOCK_SESSIONINFO:
            session_id = self.input.read_utf()
            start = self.input.read_s8()
            dump = self.input.read_s8()
            self.store.sessions.append(SessionInfo(session_id, start, dump))
        elif block_type == BLOCK_EXECUTIONDATA:
            class_id = self.input.read_u8()
            name = self.input.read_utf()
            probes = self.input.read_boolean_array()
            self.store.put(ExecutionData(class_id, name, probes))
        else:
            raise TraceFormatError(f"Unknown block type {block_type:x}.")

    def _read_header(self) -> None:
        if self.input.read_u2() != MAGIC_NUMBER:
            raise TraceFormatError("Invalid execution data file.")
        version = self.input.read_u2()
        if version != FORMAT_VERSION:
            raise TraceFormatError(
                f"Cannot read execution data version 0x{version:x}. "
                f"This version supports version 0x{FORMAT_VERSION:x}."
            )


def load_exec_file(trace_file: Path) -> ExecutionDataStore:
    """
    Load an execution-data file.
    
    Args:
        trace_file: Path to the file written by the coverage agent
        
    Returns:
        The execution data, indexed by class id
        
    Raises:
        TraceFormatError: If the file is missing, unreadable or malformed
    """
    try:
        with open(trace_file, 'rb') as stream:
            store = ExecFileReader(stream).read()
    except OSError as e:
        raise TraceFormatError(f"Failed to load exec file \"{trace_file}\": {e}") from e
    
    logger.debug(f"Loaded {len(store)} class records from {trace_file}")
    return store
