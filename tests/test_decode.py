"""Tests for the opcode decoder and Instruction type."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest
from chip8_cpu.decode import decode
from chip8_cpu.errors import InvalidOpcode
from chip8_cpu.instruction import Instruction, Op, OPERANDS


DECODE_TABLE = [
    (0x00E0, Instruction(Op.CLEAR_DISPLAY)),
    (0x00EE, Instruction(Op.RETURN)),
    (0x1A2A, Instruction(Op.JUMP, nnn=0xA2A)),
    (0x2F4A, Instruction(Op.CALL, nnn=0xF4A)),
    (0x3B72, Instruction(Op.SKIP_IF_EQUALS_BYTE, x=0xB, kk=0x72)),
    (0x4B72, Instruction(Op.SKIP_IF_NOT_EQUALS_BYTE, x=0xB, kk=0x72)),
    (0x5BC0, Instruction(Op.SKIP_IF_EQUALS_REGISTER, x=0xB, y=0xC)),
    (0x63A7, Instruction(Op.LOAD_BYTE, x=0x3, kk=0xA7)),
    (0x7543, Instruction(Op.ADD_BYTE, x=0x5, kk=0x43)),
    (0x8BC0, Instruction(Op.MOVE, x=0xB, y=0xC)),
    (0x8371, Instruction(Op.OR, x=0x3, y=0x7)),
    (0x8422, Instruction(Op.AND, x=0x4, y=0x2)),
    (0x8753, Instruction(Op.XOR, x=0x7, y=0x5)),
    (0x8C34, Instruction(Op.ADD, x=0xC, y=0x3)),
    (0x83B5, Instruction(Op.SUBTRACT, x=0x3, y=0xB)),
    (0x82A6, Instruction(Op.SHIFT_RIGHT, x=0x2, y=0xA)),
    (0x8C87, Instruction(Op.SUBTRACT_REVERSE, x=0xC, y=0x8)),
    (0x842E, Instruction(Op.SHIFT_LEFT, x=0x4, y=0x2)),
    (0x9C40, Instruction(Op.SKIP_IF_NOT_EQUALS_REGISTER, x=0xC, y=0x4)),
    (0xA527, Instruction(Op.LOAD_INDEX, nnn=0x527)),
    (0xB82A, Instruction(Op.JUMP_WITH_OFFSET, nnn=0x82A)),
    (0xC82A, Instruction(Op.RANDOM_WITH_MASK, x=0x8, kk=0x2A)),
    (0xD8E1, Instruction(Op.DRAW, x=0x8, y=0xE, n=0x1)),
    (0xEA9E, Instruction(Op.SKIP_IF_PRESSED, x=0xA)),
    (0xEBA1, Instruction(Op.SKIP_IF_NOT_PRESSED, x=0xB)),
    (0xF707, Instruction(Op.LOAD_DELAY_TIMER, x=0x7)),
    (0xF20A, Instruction(Op.WAIT_KEY_PRESS, x=0x2)),
    (0xF415, Instruction(Op.STORE_DELAY_TIMER, x=0x4)),
    (0xFB18, Instruction(Op.STORE_SOUND_TIMER, x=0xB)),
    (0xF51E, Instruction(Op.ADD_TO_INDEX, x=0x5)),
    (0xF629, Instruction(Op.LOAD_SPRITE, x=0x6)),
    (0xF133, Instruction(Op.STORE_BCD, x=0x1)),
    (0xF855, Instruction(Op.STORE_REGISTERS, x=0x8)),
    (0xF965, Instruction(Op.LOAD_REGISTERS, x=0x9)),
]


class TestDecodeTable:
    """Every defined opcode pattern decodes to the right variant and operands."""

    @pytest.mark.parametrize("opcode,expected", DECODE_TABLE, ids=[f"{o:04X}" for o, _ in DECODE_TABLE])
    def test_decode(self, opcode, expected):
        assert decode(opcode) == expected

    def test_table_covers_every_op(self):
        """One table entry per Op."""
        assert {ins.op for _, ins in DECODE_TABLE} == set(Op)

    def test_encode_matches_source_opcode(self):
        """Decoded instructions rebuild the word they came from."""
        for opcode, instruction in DECODE_TABLE:
            assert decode(opcode).encode() == opcode

    def test_field_extraction_extremes(self):
        """Operand fields take the full nibble/byte/12-bit range."""
        assert decode(0x1FFF) == Instruction(Op.JUMP, nnn=0xFFF)
        assert decode(0x1000) == Instruction(Op.JUMP, nnn=0x000)
        assert decode(0x6FFF) == Instruction(Op.LOAD_BYTE, x=0xF, kk=0xFF)
        assert decode(0xDFFF) == Instruction(Op.DRAW, x=0xF, y=0xF, n=0xF)
        assert decode(0xD000) == Instruction(Op.DRAW, x=0, y=0, n=0)

    def test_register_skips_ignore_low_nibble(self):
        """5xyN and 9xyN decode from the high nibble alone."""
        for n in range(16):
            assert decode(0x5120 | n) == Instruction(Op.SKIP_IF_EQUALS_REGISTER, x=1, y=2)
            assert decode(0x9120 | n) == Instruction(Op.SKIP_IF_NOT_EQUALS_REGISTER, x=1, y=2)


class TestDecodeInvalid:
    """Opcodes outside the table are rejected, never reinterpreted."""

    @pytest.mark.parametrize("opcode", [
        0x0000,  # SYS 000
        0x0123,  # SYS nnn
        0x00E1,
        0x00EF,
        0x8008,
        0x800D,
        0x800F,
        0xE19F,
        0xE1A2,
        0xF100,
        0xF108,
        0xF1FF,
    ])
    def test_invalid_opcode(self, opcode):
        with pytest.raises(InvalidOpcode) as excinfo:
            decode(opcode)
        assert excinfo.value.opcode == opcode
        assert f"{opcode:04X}" in str(excinfo.value)

    def test_every_undefined_alu_selector(self):
        """8xyN is only defined for N in 0-7 and E."""
        for n in range(16):
            opcode = 0x8120 | n
            if n in (0x0, 0x1, 0x2, 0x3, 0x4, 0x5, 0x6, 0x7, 0xE):
                assert decode(opcode).x == 1
            else:
                with pytest.raises(InvalidOpcode):
                    decode(opcode)

    def test_out_of_range_word(self):
        with pytest.raises(InvalidOpcode):
            decode(0x10000)
        with pytest.raises(InvalidOpcode):
            decode(-1)

    def test_non_integer(self):
        with pytest.raises(TypeError):
            decode("00E0")


class TestInstruction:
    """Test Instruction operand checking and helpers."""

    def test_operands_match_table(self):
        """params exposes exactly the fields the op carries."""
        ins = Instruction(Op.DRAW, x=1, y=2, n=3)
        assert ins.params == {"x": 1, "y": 2, "n": 3}
        assert ins.key == "OP_DRAW"
        assert OPERANDS[Op.DRAW] == ("x", "y", "n")

    def test_missing_operand(self):
        with pytest.raises(ValueError, match="requires operand 'kk'"):
            Instruction(Op.LOAD_BYTE, x=1)

    def test_unexpected_operand(self):
        with pytest.raises(ValueError, match="takes no operand 'nnn'"):
            Instruction(Op.CLEAR_DISPLAY, nnn=0x200)

    @pytest.mark.parametrize("kwargs", [
        {"op": Op.LOAD_BYTE, "x": 16, "kk": 0},
        {"op": Op.LOAD_BYTE, "x": 0, "kk": 256},
        {"op": Op.JUMP, "nnn": 0x1000},
        {"op": Op.DRAW, "x": 0, "y": 0, "n": -1},
    ])
    def test_out_of_range_operand(self, kwargs):
        with pytest.raises(ValueError, match="out of range"):
            Instruction(**kwargs)

    def test_frozen(self):
        ins = Instruction(Op.JUMP, nnn=0x200)
        with pytest.raises(AttributeError):
            ins.nnn = 0x300

    def test_mnemonic(self):
        assert str(Instruction(Op.ADD, x=0, y=1)) == "ADD V0, V1"
        assert str(Instruction(Op.LOAD_INDEX, nnn=0x2F0)) == "LD I, 0x2F0"
        assert str(Instruction(Op.DRAW, x=0xA, y=0xB, n=5)) == "DRW VA, VB, 5"
        assert str(Instruction(Op.RETURN)) == "RET"
