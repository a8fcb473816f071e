"""
Parser for the parts of a Java class file that coverage analysis needs.

Only the class header (name, signature, supertypes) and the methods with
their Code attribute are decoded. Fields and unknown attributes are skipped.
"""

import io
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from utils.errors import ClassFormatError
from .crc64 import class_id
from .java_io import JavaDataInput

CLASS_MAGIC = 0xCAFEBABE

ACC_ABSTRACT = 0x0400
ACC_NATIVE = 0x0100
ACC_SYNTHETIC = 0x1000

CONSTANT_UTF8 = 1
CONSTANT_CLASS = 7

# Bytes following the tag byte, for every constant kind except Utf8.
CONSTANT_SIZES = {
    3: 4,   # Integer
    4: 4,   # Float
    5: 8,   # Long
    6: 8,   # Double
    7: 2,   # Class
    8: 2,   # String
    9: 4,   # Fieldref
    10: 4,  # Methodref
    11: 4,  # InterfaceMethodref
    12: 4,  # NameAndType
    15: 3,  # MethodHandle
    16: 2,  # MethodType
    17: 4,  # Dynamic
    18: 4,  # InvokeDynamic
    19: 2,  # Module
    20: 2,  # Package
}


@dataclass
class ExceptionHandler:
    start_pc: int
    end_pc: int
    handler_pc: int


@dataclass
class CodeAttribute:
    code: bytes
    exception_table: List[ExceptionHandler] = field(default_factory=list)
    # (start_pc, line) in table order; several entries may share a start_pc.
    line_numbers: List[Tuple[int, int]] = field(default_factory=list)
    # Offsets where local variable scopes start or end.
    local_variable_bounds: List[int] = field(default_factory=list)


@dataclass
class MethodInfo:
    access: int
    name: str
    descriptor: str
    code: Optional[CodeAttribute] = None

    @property
    def is_synthetic(self) -> bool:
        return bool(self.access & ACC_SYNTHETIC)


@dataclass
class ClassMetadata:
    """Structure of one compiled class."""
    class_id: int
    name: str
    super_name: Optional[str]
    interfaces: List[str]
    access: int
    signature: Optional[str] = None
    methods: List[MethodInfo] = field(default_factory=list)

    @property
    def package_name(self) -> str:
        """VM package name, empty for the default package."""
        pos = self.name.rfind('/')
        return self.name[:pos] if pos != -1 else ""


class _ConstantPool:

    def __init__(self, data: JavaDataInput):
        count = data.read_u2()
        self.utf8: Dict[int, str] = {}
        self.class_names: Dict[int, int] = {}
        index = 1
        while index < count:
            tag = data.read_u1()
            if tag == CONSTANT_UTF8:
                self.utf8[index] = data.read_utf()
            elif tag in CONSTANT_SIZES:
                raw = data.read_exact(CONSTANT_SIZES[tag])
                if tag == CONSTANT_CLASS:
                    self.class_names[index] = int.from_bytes(raw, 'big')
            else:
                raise ClassFormatError(f"Unknown constant pool tag {tag} at index {index}")
            # Long and Double take two slots.
            index += 2 if tag in (5, 6) else 1

    def text(self, index: int) -> str:
        try:
            return self.utf8[index]
        except KeyError:
            raise ClassFormatError(f"Constant pool index {index} is not a Utf8 entry") from None

    def class_name(self, index: int) -> Optional[str]:
        if index == 0:
            return None
        try:
            return self.text(self.class_names[index])
        except KeyError:
            raise ClassFormatError(f"Constant pool index {index} is not a Class entry") from None


def _skip_attributes(data: JavaDataInput) -> None:
    for _ in range(data.read_u2()):
        data.read_u2()
        data.read_exact(data.read_u4())


def _read_code(data: JavaDataInput, pool: _ConstantPool) -> CodeAttribute:
    data.read_u2()  # max_stack
    data.read_u2()  # max_locals
    code = CodeAttribute(data.read_exact(data.read_u4()))
    for _ in range(data.read_u2()):
        start_pc, end_pc, handler_pc, _catch_type = (data.read_u2() for _ in range(4))
        code.exception_table.append(ExceptionHandler(start_pc, end_pc, handler_pc))
    for _ in range(data.read_u2()):
        name = pool.text(data.read_u2())
        body = JavaDataInput(io.BytesIO(data.read_exact(data.read_u4())), ClassFormatError)
        if name == 'LineNumberTable':
            for _ in range(body.read_u2()):
                start_pc = body.read_u2()
                code.line_numbers.append((start_pc, body.read_u2()))
        elif name in ('LocalVariableTable', 'LocalVariableTypeTable'):
            for _ in range(body.read_u2()):
                start_pc = body.read_u2()
                length = body.read_u2()
                body.read_exact(6)  # name, descriptor/signature, index
                code.local_variable_bounds.extend((start_pc, start_pc + length))
    return code


def _read_method(data: JavaDataInput, pool: _ConstantPool) -> MethodInfo:
    access = data.read_u2()
    method = MethodInfo(access, pool.text(data.read_u2()), pool.text(data.read_u2()))
    for _ in range(data.read_u2()):
        name = pool.text(data.read_u2())
        length = data.read_u4()
        if name == 'Code':
            body = JavaDataInput(io.BytesIO(data.read_exact(length)), ClassFormatError)
            method.code = _read_code(body, pool)
        else:
            data.read_exact(length)
    return method


def parse_class(raw: bytes) -> ClassMetadata:
    """
    Parse a class file.
    
    Args:
        raw: The complete bytes of the class file
        
    Returns:
        Class metadata including the class id used in execution data
        
    Raises:
        ClassFormatError: If the bytes are not a well-formed class file
    """
    data = JavaDataInput(io.BytesIO(raw), ClassFormatError)
    if data.read_u4() != CLASS_MAGIC:
        raise ClassFormatError("Not a class file")
    data.read_u2()  # minor version
    data.read_u2()  # major version
    
    pool = _ConstantPool(data)
    access = data.read_u2()
    name = pool.class_name(data.read_u2())
    if name is None:
        raise ClassFormatError("Class file has no this_class entry")
    super_name = pool.class_name(data.read_u2())
    interfaces = [pool.class_name(data.read_u2()) for _ in range(data.read_u2())]
    
    for _ in range(data.read_u2()):
        data.read_exact(6)  # access, name, descriptor
        _skip_attributes(data)
    
    metadata = ClassMetadata(class_id(raw), name, super_name, interfaces, access)
    metadata.methods = [_read_method(data, pool) for _ in range(data.read_u2())]
    
    for _ in range(data.read_u2()):
        attribute_name = pool.text(data.read_u2())
        body = data.read_exact(data.read_u4())
        if attribute_name == 'Signature':
            metadata.signature = pool.text(int.from_bytes(body[:2], 'big'))
    
    return metadata
