"""Opcode decoder for the CHIP-8 instruction set.

Architecture:
    16-bit opcode -> decode -> Instruction(op, operands) -> Registry -> Execute

Dispatch is on the high nibble; the 0x0, 0x8, 0xE and 0xF families are
disambiguated by a secondary selector (the full word, n or kk). Any
combination not in the table is rejected as InvalidOpcode rather than
reinterpreted.
"""

from typing import Dict

from .errors import InvalidOpcode
from .instruction import Instruction, Op


# 8xyN sub-opcodes, selected by n
_ALU_OPS: Dict[int, Op] = {
    0x0: Op.MOVE,
    0x1: Op.OR,
    0x2: Op.AND,
    0x3: Op.XOR,
    0x4: Op.ADD,
    0x5: Op.SUBTRACT,
    0x6: Op.SHIFT_RIGHT,
    0x7: Op.SUBTRACT_REVERSE,
    0xE: Op.SHIFT_LEFT,
}

# ExKK sub-opcodes, selected by kk
_KEY_OPS: Dict[int, Op] = {
    0x9E: Op.SKIP_IF_PRESSED,
    0xA1: Op.SKIP_IF_NOT_PRESSED,
}

# FxKK sub-opcodes, selected by kk
_MISC_OPS: Dict[int, Op] = {
    0x07: Op.LOAD_DELAY_TIMER,
    0x0A: Op.WAIT_KEY_PRESS,
    0x15: Op.STORE_DELAY_TIMER,
    0x18: Op.STORE_SOUND_TIMER,
    0x1E: Op.ADD_TO_INDEX,
    0x29: Op.LOAD_SPRITE,
    0x33: Op.STORE_BCD,
    0x55: Op.STORE_REGISTERS,
    0x65: Op.LOAD_REGISTERS,
}

# High nibbles whose whole instruction is fixed by the nibble
_ADDRESS_OPS: Dict[int, Op] = {
    0x1: Op.JUMP,
    0x2: Op.CALL,
    0xA: Op.LOAD_INDEX,
    0xB: Op.JUMP_WITH_OFFSET,
}
_BYTE_OPS: Dict[int, Op] = {
    0x3: Op.SKIP_IF_EQUALS_BYTE,
    0x4: Op.SKIP_IF_NOT_EQUALS_BYTE,
    0x6: Op.LOAD_BYTE,
    0x7: Op.ADD_BYTE,
    0xC: Op.RANDOM_WITH_MASK,
}


def decode(opcode: int) -> Instruction:
    """Decode a 16-bit opcode into an Instruction.

    Pure and stateless.

    Args:
        opcode: Raw instruction word (0x0000-0xFFFF)

    Returns:
        The decoded Instruction

    Raises:
        InvalidOpcode: If the word matches no instruction
    """
    if not isinstance(opcode, int):
        raise TypeError(f"Opcode must be an int, got {type(opcode).__name__}")
    if not 0 <= opcode <= 0xFFFF:
        raise InvalidOpcode(opcode)

    family = (opcode & 0xF000) >> 12
    x = (opcode & 0x0F00) >> 8
    y = (opcode & 0x00F0) >> 4
    n = opcode & 0x000F
    kk = opcode & 0x00FF
    nnn = opcode & 0x0FFF

    if family == 0x0:
        if opcode == 0x00E0:
            return Instruction(Op.CLEAR_DISPLAY)
        if opcode == 0x00EE:
            return Instruction(Op.RETURN)
        # 0nnn machine-code calls are not supported
        raise InvalidOpcode(opcode)

    if family in _ADDRESS_OPS:
        return Instruction(_ADDRESS_OPS[family], nnn=nnn)

    if family in _BYTE_OPS:
        return Instruction(_BYTE_OPS[family], x=x, kk=kk)

    if family == 0x5:
        return Instruction(Op.SKIP_IF_EQUALS_REGISTER, x=x, y=y)

    if family == 0x8 and n in _ALU_OPS:
        return Instruction(_ALU_OPS[n], x=x, y=y)

    if family == 0x9:
        return Instruction(Op.SKIP_IF_NOT_EQUALS_REGISTER, x=x, y=y)

    if family == 0xD:
        return Instruction(Op.DRAW, x=x, y=y, n=n)

    if family == 0xE and kk in _KEY_OPS:
        return Instruction(_KEY_OPS[kk], x=x)

    if family == 0xF and kk in _MISC_OPS:
        return Instruction(_MISC_OPS[kk], x=x)

    raise InvalidOpcode(opcode)
