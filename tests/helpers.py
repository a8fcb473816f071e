"""Builders for class files and execution-data files used across the tests."""

from __future__ import annotations

import struct

ACC_PUBLIC = 0x0001
ACC_STATIC = 0x0008
ACC_SUPER = 0x0020
ACC_INTERFACE = 0x0200
ACC_ABSTRACT = 0x0400
ACC_SYNTHETIC = 0x1000

NOP = 0x00
ICONST_0 = 0x03
ICONST_1 = 0x04
ILOAD_1 = 0x1B
ALOAD_0 = 0x2A
INEG = 0x74
IRETURN = 0xAC
RETURN = 0xB1
INVOKEVIRTUAL = 0xB6
INVOKESPECIAL = 0xB7


def u2(value: int) -> bytes:
    return struct.pack('>H', value)


def u4(value: int) -> bytes:
    return struct.pack('>I', value)


class ClassBuilder:
    """Assembles a minimal but valid class file."""

    def __init__(
        self,
        name: str,
        super_name: str | None = 'java/lang/Object',
        interfaces: tuple[str, ...] = (),
        access: int = ACC_PUBLIC | ACC_SUPER,
        major_version: int = 52,
        signature: str | None = None,
    ):
        self._entries: list[bytes] = []
        self._utf8: dict[str, int] = {}
        self._classes: dict[str, int] = {}
        self._methods: list[bytes] = []
        self.access = access
        self.major_version = major_version
        self.this_index = self.class_ref(name)
        self.super_index = self.class_ref(super_name) if super_name else 0
        self.interface_indexes = [self.class_ref(interface) for interface in interfaces]
        self.signature_index = self.utf8(signature) if signature else None

    def _add(self, entry: bytes) -> int:
        self._entries.append(entry)
        return len(self._entries)

    def utf8(self, text: str) -> int:
        if text not in self._utf8:
            raw = text.encode('utf-8')
            self._utf8[text] = self._add(b'\x01' + u2(len(raw)) + raw)
        return self._utf8[text]

    def class_ref(self, name: str) -> int:
        if name not in self._classes:
            self._classes[name] = self._add(b'\x07' + u2(self.utf8(name)))
        return self._classes[name]

    def method_ref(self, owner: str, name: str, descriptor: str) -> int:
        name_and_type = self._add(b'\x0c' + u2(self.utf8(name)) + u2(self.utf8(descriptor)))
        return self._add(b'\x0a' + u2(self.class_ref(owner)) + u2(name_and_type))

    def add_method(
        self,
        name: str,
        descriptor: str = '()V',
        code: bytes | None = None,
        line_numbers: list[tuple[int, int]] | None = None,
        access: int = ACC_PUBLIC,
        exception_table: list[tuple[int, int, int]] | None = None,
    ) -> ClassBuilder:
        parts = u2(access) + u2(self.utf8(name)) + u2(self.utf8(descriptor))
        if code is None:
            self._methods.append(parts + u2(0))
            return self
        attributes = []
        if line_numbers:
            body = u2(len(line_numbers)) + b''.join(u2(pc) + u2(line) for pc, line in line_numbers)
            attributes.append(u2(self.utf8('LineNumberTable')) + u4(len(body)) + body)
        handlers = exception_table or []
        code_body = (
            u2(4) + u2(4) + u4(len(code)) + code
            + u2(len(handlers)) + b''.join(u2(s) + u2(e) + u2(h) + u2(0) for s, e, h in handlers)
            + u2(len(attributes)) + b''.join(attributes)
        )
        self._methods.append(parts + u2(1) + u2(self.utf8('Code')) + u4(len(code_body)) + code_body)
        return self

    def add_straight_method(self, name: str, lines: list[int], access: int = ACC_PUBLIC) -> ClassBuilder:
        """A method with one instruction per line, ending in return."""
        code = bytes([NOP] * (len(lines) - 1) + [RETURN])
        return self.add_method(name, '()V', code, list(enumerate(lines)), access)

    def add_constructor(self, line: int) -> ClassBuilder:
        init = self.method_ref('java/lang/Object', '<init>', '()V')
        code = bytes([ALOAD_0, INVOKESPECIAL]) + u2(init) + bytes([RETURN])
        return self.add_method('<init>', '()V', code, [(0, line)])

    def to_bytes(self) -> bytes:
        class_attributes = []
        if self.signature_index is not None:
            class_attributes.append(u2(self.utf8('Signature')) + u4(2) + u2(self.signature_index))
        return (
            u4(0xCAFEBABE) + u2(0) + u2(self.major_version)
            + u2(len(self._entries) + 1) + b''.join(self._entries)
            + u2(self.access) + u2(self.this_index) + u2(self.super_index)
            + u2(len(self.interface_indexes)) + b''.join(u2(i) for i in self.interface_indexes)
            + u2(0)
            + u2(len(self._methods)) + b''.join(self._methods)
            + u2(len(class_attributes)) + b''.join(class_attributes)
        )


def var_int(value: int) -> bytes:
    out = bytearray()
    while value > 0x7F:
        out.append((value & 0x7F) | 0x80)
        value >>= 7
    out.append(value)
    return bytes(out)


def boolean_array(values: list[bool]) -> bytes:
    out = bytearray(var_int(len(values)))
    buffer = 0
    for i, value in enumerate(values):
        if value:
            buffer |= 1 << (i % 8)
        if i % 8 == 7:
            out.append(buffer)
            buffer = 0
    if len(values) % 8:
        out.append(buffer)
    return bytes(out)


def java_utf(text: str) -> bytes:
    raw = text.encode('utf-8')
    return u2(len(raw)) + raw


def exec_header(version: int = 0x1007) -> bytes:
    return b'\x01' + u2(0xC0C0) + u2(version)


def session_block(session_id: str, start: int, dump: int) -> bytes:
    return b'\x10' + java_utf(session_id) + struct.pack('>qq', start, dump)


def execution_block(class_id: int, name: str, probes: list[bool]) -> bytes:
    return b'\x11' + struct.pack('>Q', class_id) + java_utf(name) + boolean_array(probes)


def exec_file_bytes(records: list[tuple[int, str, list[bool]]]) -> bytes:
    """A complete execution-data file with one session."""
    blocks = [exec_header(), session_block('host-1234', 1000, 2000)]
    blocks.extend(execution_block(*record) for record in records)
    return b''.join(blocks)


def raw_name_execution_block(class_id: int, name: bytes, probes: list[bool]) -> bytes:
    """An execution-data block whose class name is given as undecoded bytes."""
    return b'\x11' + struct.pack('>Q', class_id) + u2(len(name)) + name + boolean_array(probes)
