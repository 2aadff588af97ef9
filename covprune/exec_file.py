"""
JaCoCo execution-data (.exec) codec.

An .exec file is a sequence of blocks, each introduced by a one-byte type:

    0x01  header        u2 magic (0xC0C0), u2 format version (0x1007)
    0x10  session info  UTF id, s8 start timestamp, s8 dump timestamp
    0x11  class data    s8 class id, UTF VM class name, boolean[] probes

Strings use Java's ``writeUTF`` encoding (u2 byte length + bytes), numbers
are big-endian. Probe arrays are a var-int length followed by the probes
packed eight per byte, least significant bit first. Appending one dump to
another is legal, so a header block may appear more than once.
"""

from __future__ import annotations

import io
import struct
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Tuple

from covprune.errors import TraceFormatError

BLOCK_HEADER = 0x01
BLOCK_SESSIONINFO = 0x10
BLOCK_EXECUTIONDATA = 0x11

MAGIC_NUMBER = 0xC0C0
FORMAT_VERSION = 0x1007


@dataclass(frozen=True)
class SessionInfo:
    """Identifies one recording session."""
    id: str
    start: int
    dump: int


@dataclass
class ExecutionData:
    """Probe hits recorded for one class."""
    id: int
    name: str
    probes: List[bool] = field(default_factory=list)

    def has_hits(self) -> bool:
        return any(self.probes)

    def merge(self, other: ExecutionData) -> None:
        """OR the probes of ``other`` into this record."""
        self.assert_compatible(other)
        self.probes = [a or b for a, b in zip(self.probes, other.probes)]

    def assert_compatible(self, other: ExecutionData) -> None:
        if self.id != other.id:
            raise TraceFormatError(f"Different ids ({self.id:016x} and {other.id:016x})")
        if self.name != other.name:
            raise TraceFormatError(
                f"Different class names {self.name} and {other.name} for id {self.id:016x}"
            )
        if len(self.probes) != len(other.probes):
            raise TraceFormatError(f"Incompatible execution data for class {self.name} with id {self.id:016x}")


class ExecutionDataStore:
    """In-memory collection of execution data, keyed by class id."""

    def __init__(self):
        self._entries: Dict[int, ExecutionData] = {}
        self.sessions: List[SessionInfo] = []

    def put(self, data: ExecutionData) -> None:
        """Add a record, merging probes with any record for the same class id."""
        existing = self._entries.get(data.id)
        if existing is None:
            self._entries[data.id] = ExecutionData(data.id, data.name, list(data.probes))
        else:
            existing.merge(data)

    def add_session(self, info: SessionInfo) -> None:
        self.sessions.append(info)

    def update(self, other: ExecutionDataStore) -> None:
        """Merge every record and session of ``other`` into this store."""
        for data in other:
            self.put(data)
        self.sessions.extend(other.sessions)

    def get(self, class_id: int) -> Optional[ExecutionData]:
        return self._entries.get(class_id)

    def names(self) -> List[str]:
        return sorted({data.name for data in self._entries.values()})

    def __iter__(self) -> Iterator[ExecutionData]:
        return iter(self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)


# =============================================================================
# Reader
# =============================================================================

class ExecFileReader:
    """Decodes the blocks of an .exec file into an ExecutionDataStore."""

    def __init__(self, data: bytes, source: str = "<bytes>"):
        self.data = data
        self.pos = 0
        self.source = source
        self.first_block = True

    def read(self, store: Optional[ExecutionDataStore] = None) -> ExecutionDataStore:
        """Read every block, adding the results to ``store`` (or a new store)."""
        if store is None:
            store = ExecutionDataStore()
        while self.pos < len(self.data):
            block_type = self._read_u1()
            if self.first_block and block_type != BLOCK_HEADER:
                raise TraceFormatError(f"{self.source}: invalid execution data file")
            self.first_block = False
            if block_type == BLOCK_HEADER:
                self._read_header()
            elif block_type == BLOCK_SESSIONINFO:
                store.add_session(self._read_session_info())
            elif block_type == BLOCK_EXECUTIONDATA:
                store.put(self._read_execution_data())
            else:
                raise TraceFormatError(f"{self.source}: unknown block type {block_type:#04x}")
        return store

    def _read_header(self):
        magic = self._read_u2()
        if magic != MAGIC_NUMBER:
            raise TraceFormatError(f"{self.source}: invalid execution data file (magic {magic:#06x})")
        version = self._read_u2()
        if version != FORMAT_VERSION:
            raise TraceFormatError(f"{self.source}: incompatible version {version:#06x}")

    def _read_session_info(self) -> SessionInfo:
        session_id = self._read_utf()
        start = self._read_s8()
        dump = self._read_s8()
        return SessionInfo(session_id, start, dump)

    def _read_execution_data(self) -> ExecutionData:
        class_id = self._read_s8()
        name = self._read_utf()
        probes = self._read_boolean_array()
        return ExecutionData(class_id, name, probes)

    def _read_bytes(self, n: int) -> bytes:
        if self.pos + n > len(self.data):
            raise TraceFormatError(f"{self.source}: unexpected end of file at offset {self.pos}")
        val = self.data[self.pos:self.pos + n]
        self.pos += n
        return val

    def _read_u1(self) -> int:
        return self._read_bytes(1)[0]

    def _read_u2(self) -> int:
        return struct.unpack(">H", self._read_bytes(2))[0]

    def _read_s8(self) -> int:
        return struct.unpack(">q", self._read_bytes(8))[0]

    def _read_utf(self) -> str:
        length = self._read_u2()
        return self._read_bytes(length).decode("utf-8", errors="surrogatepass")

    def _read_varint(self) -> int:
        value = 0
        shift = 0
        while True:
            byte = self._read_u1()
            value |= (byte & 0x7F) << shift
            if not byte & 0x80:
                return value
            shift += 7

    def _read_boolean_array(self) -> List[bool]:
        length = self._read_varint()
        probes = []
        buffer = 0
        for i in range(length):
            if i % 8 == 0:
                buffer = self._read_u1()
            probes.append(bool(buffer & 0x01))
            buffer >>= 1
        return probes


def read_exec_file(path: Path, store: Optional[ExecutionDataStore] = None) -> ExecutionDataStore:
    """Load one .exec file into ``store`` (or a fresh store)."""
    path = Path(path)
    return ExecFileReader(path.read_bytes(), source=str(path)).read(store)


# =============================================================================
# Writer
# =============================================================================

class ExecFileWriter:
    """Encodes an ExecutionDataStore in the .exec format."""

    def __init__(self, stream: io.BufferedIOBase):
        self.stream = stream
        self._write_header()

    def write_store(self, store: ExecutionDataStore) -> None:
        for info in store.sessions:
            self.write_session_info(info)
        for data in sorted(store, key=lambda d: (d.name, d.id)):
            self.write_execution_data(data)

    def write_session_info(self, info: SessionInfo) -> None:
        self.stream.write(bytes([BLOCK_SESSIONINFO]))
        self._write_utf(info.id)
        self.stream.write(struct.pack(">qq", info.start, info.dump))

    def write_execution_data(self, data: ExecutionData) -> None:
        self.stream.write(bytes([BLOCK_EXECUTIONDATA]))
        self.stream.write(struct.pack(">q", data.id))
        self._write_utf(data.name)
        self._write_boolean_array(data.probes)

    def _write_header(self):
        self.stream.write(bytes([BLOCK_HEADER]))
        self.stream.write(struct.pack(">HH", MAGIC_NUMBER, FORMAT_VERSION))

    def _write_utf(self, text: str):
        encoded = text.encode("utf-8", errors="surrogatepass")
        self.stream.write(struct.pack(">H", len(encoded)))
        self.stream.write(encoded)

    def _write_varint(self, value: int):
        while value & ~0x7F:
            self.stream.write(bytes([0x80 | (value & 0x7F)]))
            value >>= 7
        self.stream.write(bytes([value]))

    def _write_boolean_array(self, probes: List[bool]):
        self._write_varint(len(probes))
        for packed in _pack_bits(probes):
            self.stream.write(bytes([packed]))


def _pack_bits(probes: List[bool]) -> Iterator[int]:
    buffer = 0
    size = 0
    for probe in probes:
        if probe:
            buffer |= 0x01 << size
        size += 1
        if size == 8:
            yield buffer
            buffer = 0
            size = 0
    if size:
        yield buffer


def write_exec_file(path: Path, store: ExecutionDataStore) -> None:
    """Dump ``store`` to ``path``."""
    with open(path, "wb") as f:
        ExecFileWriter(f).write_store(store)


def encode_store(store: ExecutionDataStore) -> bytes:
    buffer = io.BytesIO()
    ExecFileWriter(buffer).write_store(store)
    return buffer.getvalue()


def summarize(store: ExecutionDataStore) -> Tuple[int, int]:
    """(classes recorded, classes with at least one probe hit)."""
    return len(store), sum(1 for data in store if data.has_hits())
