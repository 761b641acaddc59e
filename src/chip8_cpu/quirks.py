"""Quirks: documented behaviour switches between CHIP-8 interpreters.

Later CHIP-8 compatible interpreters changed a handful of instruction
semantics. Each difference is a named flag here so the behaviour in use is
explicit and testable. The defaults follow Cowgod's CHIP-8 technical
reference.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class Quirks:
    """Instruction semantics switches.

    Attributes:
        logic_resets_flag: OR/AND/XOR set VF to 0 (COSMAC VIP behaviour).
            Default leaves VF untouched.
        shift_uses_vy: SHR/SHL read Vy and store the shifted value in Vx.
            Default shifts Vx in place and ignores Vy.
        load_store_increments_index: Fx55/Fx65 leave I at I + x + 1.
            Default leaves I unchanged.
        jump_uses_vx: Bnnn adds Vx (x = high nibble of nnn) instead of V0.
        wrap_sprites: Sprite pixels past the right/bottom edge wrap around.
            Default clips them.
    """
    logic_resets_flag: bool = False
    shift_uses_vy: bool = False
    load_store_increments_index: bool = False
    jump_uses_vx: bool = False
    wrap_sprites: bool = False


DEFAULT_QUIRKS = Quirks()

# Original COSMAC VIP interpreter behaviour
COSMAC_VIP_QUIRKS = Quirks(
    logic_resets_flag=True,
    shift_uses_vy=True,
    load_store_increments_index=True,
)
