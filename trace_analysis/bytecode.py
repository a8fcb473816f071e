"""
Bytecode decoding for control-flow analysis.

Each instruction is reduced to what the probe placement needs: its kind
and, for jumps and switches, the target offsets.
"""

import struct
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Tuple

from utils.errors import ClassFormatError

PLAIN = "plain"
INVOKE = "invoke"
JUMP = "jump"
GOTO = "goto"
SWITCH = "switch"
EXIT = "exit"
SUBROUTINE = "subroutine"

GOTO_OPCODE = 0xA7
JSR_OPCODE = 0xA8
RET_OPCODE = 0xA9
TABLESWITCH = 0xAA
LOOKUPSWITCH = 0xAB
GOTO_W = 0xC8
JSR_W = 0xC9
WIDE = 0xC4
IINC = 0x84

# Fixed instruction lengths including the opcode byte.
_LENGTHS = {}
_LENGTHS.update({op: 1 for op in range(0x00, 0x10)})  # nop .. dconst_1
_LENGTHS.update({0x10: 2, 0x11: 3, 0x12: 2, 0x13: 3, 0x14: 3})  # bipush .. ldc2_w
_LENGTHS.update({op: 2 for op in range(0x15, 0x1A)})  # iload .. aload
_LENGTHS.update({op: 1 for op in range(0x1A, 0x36)})  # iload_0 .. saload
_LENGTHS.update({op: 2 for op in range(0x36, 0x3B)})  # istore .. astore
_LENGTHS.update({op: 1 for op in range(0x3B, 0x84)})  # istore_0 .. lxor
_LENGTHS[IINC] = 3
_LENGTHS.update({op: 1 for op in range(0x85, 0x99)})  # i2l .. dcmpg
_LENGTHS.update({op: 3 for op in range(0x99, 0xA9)})  # ifeq .. jsr
_LENGTHS[RET_OPCODE] = 2
_LENGTHS.update({op: 1 for op in range(0xAC, 0xB2)})  # ireturn .. return
_LENGTHS.update({op: 3 for op in range(0xB2, 0xB9)})  # getstatic .. invokestatic
_LENGTHS.update({0xB9: 5, 0xBA: 5, 0xBB: 3, 0xBC: 2, 0xBD: 3, 0xBE: 1, 0xBF: 1})
_LENGTHS.update({0xC0: 3, 0xC1: 3, 0xC2: 1, 0xC3: 1, 0xC5: 4, 0xC6: 3, 0xC7: 3})
_LENGTHS.update({GOTO_W: 5, JSR_W: 5})

_EXITS = set(range(0xAC, 0xB2)) | {0xBF}
_INVOKES = set(range(0xB6, 0xBB))
_CONDITIONAL_JUMPS = set(range(0x99, 0xA7)) | {0xC6, 0xC7}


@dataclass
class Instruction:
    offset: int
    opcode: int
    kind: str
    # Jump target, or the default target of a switch.
    target: Optional[int] = None
    # Case targets of a switch in table order, duplicates included.
    case_targets: List[int] = field(default_factory=list)

    @property
    def targets(self) -> List[int]:
        if self.target is None:
            return []
        return [self.target] + self.case_targets


def _s2(code: bytes, pos: int) -> int:
    return struct.unpack_from('>h', code, pos)[0]


def _s4(code: bytes, pos: int) -> int:
    return struct.unpack_from('>i', code, pos)[0]


def _decode_switch(code: bytes, offset: int, opcode: int) -> Tuple[Instruction, int]:
    pos = offset + 1
    pos += (-pos) % 4
    default = offset + _s4(code, pos)
    insn = Instruction(offset, opcode, SWITCH, default)
    if opcode == TABLESWITCH:
        low, high = _s4(code, pos + 4), _s4(code, pos + 8)
        pos += 12
        for _ in range(high - low + 1):
            insn.case_targets.append(offset + _s4(code, pos))
            pos += 4
    else:
        pairs = _s4(code, pos + 4)
        pos += 8
        for _ in range(pairs):
            insn.case_targets.append(offset + _s4(code, pos + 4))
            pos += 8
    return insn, pos


def iter_instructions(code: bytes) -> Iterator[Instruction]:
    """
    Decode the instructions of a method body in offset order.
    
    Raises:
        ClassFormatError: On an unknown opcode or truncated code
    """
    offset = 0
    try:
        while offset < len(code):
            opcode = code[offset]
            if opcode in (TABLESWITCH, LOOKUPSWITCH):
                insn, next_offset = _decode_switch(code, offset, opcode)
            elif opcode == WIDE:
                insn = Instruction(offset, opcode, PLAIN)
                next_offset = offset + (6 if code[offset + 1] == IINC else 4)
            elif opcode in _LENGTHS:
                next_offset = offset + _LENGTHS[opcode]
                if next_offset > len(code):
                    raise ClassFormatError(f"Truncated instruction at offset {offset}")
                if opcode in _CONDITIONAL_JUMPS:
                    insn = Instruction(offset, opcode, JUMP, offset + _s2(code, offset + 1))
                elif opcode == GOTO_OPCODE:
                    insn = Instruction(offset, opcode, GOTO, offset + _s2(code, offset + 1))
                elif opcode == GOTO_W:
                    insn = Instruction(offset, opcode, GOTO, offset + _s4(code, offset + 1))
                elif opcode in (JSR_OPCODE, JSR_W, RET_OPCODE):
                    insn = Instruction(offset, opcode, SUBROUTINE)
                elif opcode in _EXITS:
                    insn = Instruction(offset, opcode, EXIT)
                elif opcode in _INVOKES:
                    insn = Instruction(offset, opcode, INVOKE)
                else:
                    insn = Instruction(offset, opcode, PLAIN)
            else:
                raise ClassFormatError(f"Unknown opcode 0x{opcode:02x} at offset {offset}")
            yield insn
            offset = next_offset
    except (IndexError, struct.error) as e:
        raise ClassFormatError(f"Truncated code at offset {offset}") from e
