"""chip8-cpu: an interpreter core for the CHIP-8 virtual machine.

The package fetches 16-bit opcodes from a 4 KiB memory image, decodes them
into a closed instruction set and executes them against a small
register/stack/timer state with bit-exact 8-bit arithmetic.

Architecture:
    MEMORY -> FETCH -> DECODE -> INSTRUCTION -> REGISTRY -> EXECUTE -> STATE
               |         |           |             |           |
           [PC-based] [tables]   [Op enum]     [Frozen]    [V0-VF, I,
                                               primitives   stack, display]

Modules:
    memory: 4 KiB image, font table, ROM load, big-endian fetch
    instruction: Op enum and range-checked Instruction
    decode: opcode -> Instruction
    display: 64x32 XOR frame buffer
    state: ProcessorState dataclass
    quirks: documented semantics switches
    registry: verified instruction primitives (the executor)
    cpu: Chip8CPU orchestrator
    driver: CycleDriver frame pacing and 60 Hz timers
"""

__version__ = "0.1.0"
__author__ = "chip8-cpu contributors"

from .errors import (
    Chip8Error,
    DecodeError,
    InvalidOpcode,
    MemoryAccessError,
    AddressOutOfRange,
    RomTooLarge,
    StackError,
    StackOverflow,
    StackUnderflow,
    CPUHalted,
    CycleLimitExceeded,
)
from .memory import Memory
from .instruction import Instruction, Op
from .decode import decode
from .display import Display
from .state import ProcessorState
from .quirks import Quirks, DEFAULT_QUIRKS, COSMAC_VIP_QUIRKS
from .registry import InstructionRegistry
from .cpu import Chip8CPU
from .driver import CycleDriver

__all__ = [
    "Chip8Error",
    "DecodeError",
    "InvalidOpcode",
    "MemoryAccessError",
    "AddressOutOfRange",
    "RomTooLarge",
    "StackError",
    "StackOverflow",
    "StackUnderflow",
    "CPUHalted",
    "CycleLimitExceeded",
    "Memory",
    "Instruction",
    "Op",
    "decode",
    "Display",
    "ProcessorState",
    "Quirks",
    "DEFAULT_QUIRKS",
    "COSMAC_VIP_QUIRKS",
    "InstructionRegistry",
    "Chip8CPU",
    "CycleDriver",
]
