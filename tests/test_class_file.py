"""Tests for class-file parsing, class ids and bytecode decoding."""

import pytest

from tests.helpers import ACC_ABSTRACT, ACC_INTERFACE, ACC_PUBLIC, ACC_SYNTHETIC, ClassBuilder, u2, u4
from trace_analysis import bytecode
from trace_analysis.bytecode import iter_instructions
from trace_analysis.class_file import parse_class
from trace_analysis.crc64 import checksum, class_id
from utils.errors import ClassFormatError


class TestCrc64:

    def test_empty_input(self):
        assert checksum(b'') == 0

    def test_single_bytes(self):
        assert checksum(b'\x00') == 0
        assert checksum(b'\x01') == 0x01B0000000000000

    def test_result_fits_in_64_bits(self):
        assert 0 <= checksum(bytes(range(256)) * 4) < 2 ** 64

    def test_java_8_class_id_is_plain_checksum(self):
        raw = ClassBuilder('Foo', major_version=52).to_bytes()
        assert class_id(raw) == checksum(raw)

    def test_java_9_class_is_hashed_as_java_8(self):
        raw = ClassBuilder('Foo', major_version=53).to_bytes()
        as_java_8 = raw[:7] + bytes([52]) + raw[8:]
        assert class_id(raw) == checksum(as_java_8)
        assert class_id(raw) != checksum(raw)

    def test_java_11_class_is_not_rewritten(self):
        raw = ClassBuilder('Foo', major_version=55).to_bytes()
        assert class_id(raw) == checksum(raw)


class TestParseClass:

    def test_header(self):
        builder = ClassBuilder(
            'com/example/Foo$1',
            super_name='com/example/Base',
            interfaces=('java/lang/Runnable', 'java/io/Serializable'),
            signature='Ljava/lang/Object;',
        )
        raw = builder.to_bytes()

        metadata = parse_class(raw)

        assert metadata.name == 'com/example/Foo$1'
        assert metadata.super_name == 'com/example/Base'
        assert metadata.interfaces == ['java/lang/Runnable', 'java/io/Serializable']
        assert metadata.signature == 'Ljava/lang/Object;'
        assert metadata.package_name == 'com/example'
        assert metadata.class_id == class_id(raw)

    def test_default_package_and_no_super_class(self):
        metadata = parse_class(ClassBuilder('Foo', super_name=None).to_bytes())
        assert metadata.package_name == ''
        assert metadata.super_name is None
        assert metadata.signature is None

    def test_methods(self):
        builder = ClassBuilder('Foo')
        builder.add_constructor(line=3)
        builder.add_method('run', '()V', access=ACC_PUBLIC | ACC_ABSTRACT)
        builder.add_straight_method('access$000', [7, 8], access=ACC_SYNTHETIC)

        methods = parse_class(builder.to_bytes()).methods

        assert [m.name for m in methods] == ['<init>', 'run', 'access$000']
        init, run, bridge = methods
        assert init.descriptor == '()V'
        assert init.code.code[0] == 0x2A
        assert init.code.line_numbers == [(0, 3)]
        assert run.code is None
        assert not init.is_synthetic
        assert bridge.is_synthetic
        assert bridge.code.line_numbers == [(0, 7), (1, 8)]

    def test_exception_table(self):
        builder = ClassBuilder('Foo')
        builder.add_method('m', '()V', bytes([0x00, 0xB1, 0xB1]), [(0, 1)], exception_table=[(0, 1, 2)])

        handler = parse_class(builder.to_bytes()).methods[0].code.exception_table[0]

        assert (handler.start_pc, handler.end_pc, handler.handler_pc) == (0, 1, 2)

    def test_interface_without_code(self):
        builder = ClassBuilder('Api', access=ACC_PUBLIC | ACC_INTERFACE | ACC_ABSTRACT)
        builder.add_method('call', '()V', access=ACC_PUBLIC | ACC_ABSTRACT)
        assert parse_class(builder.to_bytes()).methods[0].code is None

    def test_not_a_class_file(self):
        with pytest.raises(ClassFormatError, match='Not a class file'):
            parse_class(b'PK\x03\x04' + b'\x00' * 20)

    def test_truncated_class_file(self):
        raw = ClassBuilder('Foo').add_straight_method('m', [1]).to_bytes()
        with pytest.raises(ClassFormatError):
            parse_class(raw[:-6])

    def test_unknown_constant_tag(self):
        raw = u4(0xCAFEBABE) + u2(0) + u2(52) + u2(2) + b'\x63'
        with pytest.raises(ClassFormatError, match='Unknown constant pool tag 99'):
            parse_class(raw)

    def test_undecodable_utf8_constant(self):
        raw = u4(0xCAFEBABE) + u2(0) + u2(52) + u2(2) + b'\x01' + u2(2) + b'\xff\xfe'
        with pytest.raises(ClassFormatError, match='Malformed string data'):
            parse_class(raw)


class TestIterInstructions:

    def test_fixed_length_instructions(self):
        # bipush 10, sipush 300, invokeinterface, return
        code = bytes([0x10, 0x0A, 0x11, 0x01, 0x2C, 0xB9, 0x00, 0x01, 0x01, 0x00, 0xB1])
        insns = list(iter_instructions(code))
        assert [i.offset for i in insns] == [0, 2, 5, 10]
        assert [i.kind for i in insns] == [bytecode.PLAIN, bytecode.PLAIN, bytecode.INVOKE, bytecode.EXIT]

    def test_jump_targets_are_relative(self):
        # nop, goto -1, ifnull +4 (to 8), nop, nop, return
        code = bytes([0x00, 0xA7, 0xFF, 0xFF, 0xC6, 0x00, 0x04, 0x00, 0xB1])
        insns = list(iter_instructions(code))
        assert insns[1].kind == bytecode.GOTO
        assert insns[1].target == 0
        assert insns[2].kind == bytecode.JUMP
        assert insns[2].target == 8

    def test_tableswitch_with_padding(self):
        code = (
            bytes([0x1B, 0xAA, 0x00, 0x00])
            + u4(26)  # default -> 27
            + u4(1) + u4(2)  # low, high
            + u4(23) + u4(24)  # 1 -> 24, 2 -> 25
            + bytes([0x00, 0x00, 0x00, 0xB1])
        )
        insns = list(iter_instructions(code))
        switch = insns[1]
        assert switch.kind == bytecode.SWITCH
        assert switch.targets == [27, 24, 25]
        assert [i.offset for i in insns[2:]] == [24, 25, 26, 27]

    def test_wide_instructions(self):
        # wide iload 256, wide iinc 1 1000, return
        code = bytes([0xC4, 0x15, 0x01, 0x00, 0xC4, 0x84, 0x00, 0x01, 0x03, 0xE8, 0xB1])
        assert [i.offset for i in iter_instructions(code)] == [0, 4, 10]

    def test_athrow_is_exit(self):
        assert list(iter_instructions(bytes([0xBF])))[0].kind == bytecode.EXIT

    def test_unknown_opcode(self):
        with pytest.raises(ClassFormatError, match='Unknown opcode 0xcb'):
            list(iter_instructions(bytes([0xCB])))

    def test_truncated_instruction(self):
        with pytest.raises(ClassFormatError, match='Truncated'):
            list(iter_instructions(bytes([0x00, 0x11, 0x01])))
