"""Instruction: decoded CHIP-8 operations.

Op is the closed set of operations the executor understands. An
Instruction pairs an Op with the operand fields that op uses, using the
conventional CHIP-8 field names:

    x    register index, bits 8-11
    y    register index, bits 4-7
    n    4-bit nibble, bits 0-3
    kk   8-bit literal, bits 0-7
    nnn  12-bit address, bits 0-11

Instructions are transient: built by the decoder, consumed by the
registry, never stored.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple


class Op(str, Enum):
    """Operation keys, one per instruction variant."""

    CLEAR_DISPLAY = "OP_CLEAR_DISPLAY"
    RETURN = "OP_RETURN"
    JUMP = "OP_JUMP"
    CALL = "OP_CALL"
    SKIP_IF_EQUALS_BYTE = "OP_SKIP_IF_EQUALS_BYTE"
    SKIP_IF_NOT_EQUALS_BYTE = "OP_SKIP_IF_NOT_EQUALS_BYTE"
    SKIP_IF_EQUALS_REGISTER = "OP_SKIP_IF_EQUALS_REGISTER"
    LOAD_BYTE = "OP_LOAD_BYTE"
    ADD_BYTE = "OP_ADD_BYTE"
    MOVE = "OP_MOVE"
    OR = "OP_OR"
    AND = "OP_AND"
    XOR = "OP_XOR"
    ADD = "OP_ADD"
    SUBTRACT = "OP_SUBTRACT"
    SHIFT_RIGHT = "OP_SHIFT_RIGHT"
    SUBTRACT_REVERSE = "OP_SUBTRACT_REVERSE"
    SHIFT_LEFT = "OP_SHIFT_LEFT"
    SKIP_IF_NOT_EQUALS_REGISTER = "OP_SKIP_IF_NOT_EQUALS_REGISTER"
    LOAD_INDEX = "OP_LOAD_INDEX"
    JUMP_WITH_OFFSET = "OP_JUMP_WITH_OFFSET"
    RANDOM_WITH_MASK = "OP_RANDOM_WITH_MASK"
    DRAW = "OP_DRAW"
    SKIP_IF_PRESSED = "OP_SKIP_IF_PRESSED"
    SKIP_IF_NOT_PRESSED = "OP_SKIP_IF_NOT_PRESSED"
    LOAD_DELAY_TIMER = "OP_LOAD_DELAY_TIMER"
    WAIT_KEY_PRESS = "OP_WAIT_KEY_PRESS"
    STORE_DELAY_TIMER = "OP_STORE_DELAY_TIMER"
    STORE_SOUND_TIMER = "OP_STORE_SOUND_TIMER"
    ADD_TO_INDEX = "OP_ADD_TO_INDEX"
    LOAD_SPRITE = "OP_LOAD_SPRITE"
    STORE_BCD = "OP_STORE_BCD"
    STORE_REGISTERS = "OP_STORE_REGISTERS"
    LOAD_REGISTERS = "OP_LOAD_REGISTERS"


# Operand fields carried by each op, in encoding order
OPERANDS: Dict[Op, Tuple[str, ...]] = {
    Op.CLEAR_DISPLAY: (),
    Op.RETURN: (),
    Op.JUMP: ("nnn",),
    Op.CALL: ("nnn",),
    Op.SKIP_IF_EQUALS_BYTE: ("x", "kk"),
    Op.SKIP_IF_NOT_EQUALS_BYTE: ("x", "kk"),
    Op.SKIP_IF_EQUALS_REGISTER: ("x", "y"),
    Op.LOAD_BYTE: ("x", "kk"),
    Op.ADD_BYTE: ("x", "kk"),
    Op.MOVE: ("x", "y"),
    Op.OR: ("x", "y"),
    Op.AND: ("x", "y"),
    Op.XOR: ("x", "y"),
    Op.ADD: ("x", "y"),
    Op.SUBTRACT: ("x", "y"),
    Op.SHIFT_RIGHT: ("x", "y"),
    Op.SUBTRACT_REVERSE: ("x", "y"),
    Op.SHIFT_LEFT: ("x", "y"),
    Op.SKIP_IF_NOT_EQUALS_REGISTER: ("x", "y"),
    Op.LOAD_INDEX: ("nnn",),
    Op.JUMP_WITH_OFFSET: ("nnn",),
    Op.RANDOM_WITH_MASK: ("x", "kk"),
    Op.DRAW: ("x", "y", "n"),
    Op.SKIP_IF_PRESSED: ("x",),
    Op.SKIP_IF_NOT_PRESSED: ("x",),
    Op.LOAD_DELAY_TIMER: ("x",),
    Op.WAIT_KEY_PRESS: ("x",),
    Op.STORE_DELAY_TIMER: ("x",),
    Op.STORE_SOUND_TIMER: ("x",),
    Op.ADD_TO_INDEX: ("x",),
    Op.LOAD_SPRITE: ("x",),
    Op.STORE_BCD: ("x",),
    Op.STORE_REGISTERS: ("x",),
    Op.LOAD_REGISTERS: ("x",),
}

FIELD_LIMITS: Dict[str, int] = {"x": 0xF, "y": 0xF, "n": 0xF, "kk": 0xFF, "nnn": 0xFFF}

# Fixed bits of each opcode pattern
_BASE_OPCODES: Dict[Op, int] = {
    Op.CLEAR_DISPLAY: 0x00E0,
    Op.RETURN: 0x00EE,
    Op.JUMP: 0x1000,
    Op.CALL: 0x2000,
    Op.SKIP_IF_EQUALS_BYTE: 0x3000,
    Op.SKIP_IF_NOT_EQUALS_BYTE: 0x4000,
    Op.SKIP_IF_EQUALS_REGISTER: 0x5000,
    Op.LOAD_BYTE: 0x6000,
    Op.ADD_BYTE: 0x7000,
    Op.MOVE: 0x8000,
    Op.OR: 0x8001,
    Op.AND: 0x8002,
    Op.XOR: 0x8003,
    Op.ADD: 0x8004,
    Op.SUBTRACT: 0x8005,
    Op.SHIFT_RIGHT: 0x8006,
    Op.SUBTRACT_REVERSE: 0x8007,
    Op.SHIFT_LEFT: 0x800E,
    Op.SKIP_IF_NOT_EQUALS_REGISTER: 0x9000,
    Op.LOAD_INDEX: 0xA000,
    Op.JUMP_WITH_OFFSET: 0xB000,
    Op.RANDOM_WITH_MASK: 0xC000,
    Op.DRAW: 0xD000,
    Op.SKIP_IF_PRESSED: 0xE09E,
    Op.SKIP_IF_NOT_PRESSED: 0xE0A1,
    Op.LOAD_DELAY_TIMER: 0xF007,
    Op.WAIT_KEY_PRESS: 0xF00A,
    Op.STORE_DELAY_TIMER: 0xF015,
    Op.STORE_SOUND_TIMER: 0xF018,
    Op.ADD_TO_INDEX: 0xF01E,
    Op.LOAD_SPRITE: 0xF029,
    Op.STORE_BCD: 0xF033,
    Op.STORE_REGISTERS: 0xF055,
    Op.LOAD_REGISTERS: 0xF065,
}

_SHIFTS: Dict[str, int] = {"x": 8, "y": 4, "n": 0, "kk": 0, "nnn": 0}

_MNEMONICS: Dict[Op, str] = {
    Op.CLEAR_DISPLAY: "CLS",
    Op.RETURN: "RET",
    Op.JUMP: "JP {nnn}",
    Op.CALL: "CALL {nnn}",
    Op.SKIP_IF_EQUALS_BYTE: "SE {x}, {kk}",
    Op.SKIP_IF_NOT_EQUALS_BYTE: "SNE {x}, {kk}",
    Op.SKIP_IF_EQUALS_REGISTER: "SE {x}, {y}",
    Op.LOAD_BYTE: "LD {x}, {kk}",
    Op.ADD_BYTE: "ADD {x}, {kk}",
    Op.MOVE: "LD {x}, {y}",
    Op.OR: "OR {x}, {y}",
    Op.AND: "AND {x}, {y}",
    Op.XOR: "XOR {x}, {y}",
    Op.ADD: "ADD {x}, {y}",
    Op.SUBTRACT: "SUB {x}, {y}",
    Op.SHIFT_RIGHT: "SHR {x}, {y}",
    Op.SUBTRACT_REVERSE: "SUBN {x}, {y}",
    Op.SHIFT_LEFT: "SHL {x}, {y}",
    Op.SKIP_IF_NOT_EQUALS_REGISTER: "SNE {x}, {y}",
    Op.LOAD_INDEX: "LD I, {nnn}",
    Op.JUMP_WITH_OFFSET: "JP V0, {nnn}",
    Op.RANDOM_WITH_MASK: "RND {x}, {kk}",
    Op.DRAW: "DRW {x}, {y}, {n}",
    Op.SKIP_IF_PRESSED: "SKP {x}",
    Op.SKIP_IF_NOT_PRESSED: "SKNP {x}",
    Op.LOAD_DELAY_TIMER: "LD {x}, DT",
    Op.WAIT_KEY_PRESS: "LD {x}, K",
    Op.STORE_DELAY_TIMER: "LD DT, {x}",
    Op.STORE_SOUND_TIMER: "LD ST, {x}",
    Op.ADD_TO_INDEX: "ADD I, {x}",
    Op.LOAD_SPRITE: "LD F, {x}",
    Op.STORE_BCD: "LD B, {x}",
    Op.STORE_REGISTERS: "LD [I], {x}",
    Op.LOAD_REGISTERS: "LD {x}, [I]",
}


@dataclass(frozen=True)
class Instruction:
    """A decoded instruction with range-checked operands.

    Only the fields listed in OPERANDS for the op may be set, and all of
    them must be.

    Raises:
        ValueError: On a missing, unexpected or out-of-range operand
    """
    op: Op
    x: Optional[int] = None
    y: Optional[int] = None
    n: Optional[int] = None
    kk: Optional[int] = None
    nnn: Optional[int] = None

    def __post_init__(self):
        expected = OPERANDS[self.op]
        for name, limit in FIELD_LIMITS.items():
            value = getattr(self, name)
            if name in expected:
                if value is None:
                    raise ValueError(f"{self.op.name} requires operand '{name}'")
                if not isinstance(value, int) or not 0 <= value <= limit:
                    raise ValueError(f"Operand '{name}' out of range for {self.op.name}: {value!r}")
            elif value is not None:
                raise ValueError(f"{self.op.name} takes no operand '{name}'")

    @property
    def key(self) -> str:
        """Registry key of the op (e.g. "OP_ADD")."""
        return self.op.value

    @property
    def params(self) -> Dict[str, int]:
        """Operand values by field name."""
        return {name: getattr(self, name) for name in OPERANDS[self.op]}

    def encode(self) -> int:
        """Rebuild the 16-bit opcode this instruction decodes from."""
        opcode = _BASE_OPCODES[self.op]
        for name, value in self.params.items():
            opcode |= value << _SHIFTS[name]
        return opcode

    def __str__(self) -> str:
        fields = {
            "x": f"V{self.x:X}" if self.x is not None else "",
            "y": f"V{self.y:X}" if self.y is not None else "",
            "n": f"{self.n}" if self.n is not None else "",
            "kk": f"0x{self.kk:02X}" if self.kk is not None else "",
            "nnn": f"0x{self.nnn:03X}" if self.nnn is not None else "",
        }
        return _MNEMONICS[self.op].format(**fields)
