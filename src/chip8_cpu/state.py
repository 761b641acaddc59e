"""ProcessorState: register, stack, timer and I/O state of the CHIP-8.

State Components:
    - Registers: V0-VF (16 general-purpose 8-bit registers, VF doubles as flag)
    - Index: I, a 16-bit address register
    - PC: Program counter (starts at 0x200)
    - Stack: 16 return addresses plus stack pointer (0-16)
    - Timers: delay and sound, 8-bit, decremented externally at 60 Hz
    - Keys: 16 pressed/released flags written by the input collaborator
    - Display: 64x32 frame buffer
    - Memory: 4 KiB image
    - Halted / cycle count: execution bookkeeping

The executor mutates the state in place, one instruction at a time.
snapshot() produces detached copies for the execution trace.
"""

from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from .display import Display
from .errors import StackOverflow, StackUnderflow
from .memory import Memory, PROGRAM_START


NUM_REGISTERS = 16
NUM_KEYS = 16
STACK_SIZE = 16
FLAG_REGISTER = 0xF


@dataclass
class ProcessorState:
    """Mutable CHIP-8 processor state.

    Attributes:
        registers: V0-VF as a 16-byte bytearray
        index: I register
        pc: Program counter
        sp: Number of return addresses on the stack
        stack: Return address slots
        delay_timer: Delay timer value
        sound_timer: Sound timer value (tone plays while non-zero)
        keys: Pressed state of keys 0x0-0xF
        display: Frame buffer
        memory: Memory image
        halted: Whether execution stopped on a fatal fault
        cycle_count: Number of executed instructions
        waiting_register: Register an Fx0A wait stores into, None if not waiting
        pending_key: Key pressed (released -> pressed edge) since the wait began
    """
    registers: bytearray = field(default_factory=lambda: bytearray(NUM_REGISTERS))
    index: int = 0
    pc: int = PROGRAM_START
    sp: int = 0
    stack: List[int] = field(default_factory=lambda: [0] * STACK_SIZE)
    delay_timer: int = 0
    sound_timer: int = 0
    keys: List[bool] = field(default_factory=lambda: [False] * NUM_KEYS)
    display: Display = field(default_factory=Display)
    memory: Memory = field(default_factory=Memory)
    halted: bool = False
    cycle_count: int = 0
    waiting_register: Optional[int] = None
    pending_key: Optional[int] = None

    def snapshot(self) -> dict:
        """Create a detached copy of the CPU-visible state for tracing.

        Returns:
            Dictionary of register, stack and timer values
        """
        return {
            "registers": list(self.registers),
            "index": self.index,
            "pc": self.pc,
            "sp": self.sp,
            "stack": list(self.stack[:self.sp]),
            "delay_timer": self.delay_timer,
            "sound_timer": self.sound_timer,
            "halted": self.halted,
            "cycle_count": self.cycle_count,
            # Note: memory and display excluded from snapshot for efficiency
        }

    def validate(self) -> bool:
        """Validate state integrity.

        Checks:
            - 16 registers, all 8-bit
            - I, PC and stack entries are 16-bit
            - Stack pointer within 0..16
            - Timers are 8-bit
            - 16 boolean keys

        Returns:
            True if state is valid, False otherwise
        """
        if len(self.registers) != NUM_REGISTERS:
            return False
        if any(not 0 <= v <= 0xFF for v in self.registers):
            return False

        for value in (self.index, self.pc):
            if not isinstance(value, int) or not 0 <= value <= 0xFFFF:
                return False

        if len(self.stack) != STACK_SIZE or not 0 <= self.sp <= STACK_SIZE:
            return False
        if any(not 0 <= addr <= 0xFFFF for addr in self.stack):
            return False

        for timer in (self.delay_timer, self.sound_timer):
            if not 0 <= timer <= 0xFF:
                return False

        if len(self.keys) != NUM_KEYS or any(not isinstance(k, bool) for k in self.keys):
            return False

        if self.cycle_count < 0:
            return False

        return True

    def get_register(self, reg: int) -> int:
        """Get value of register V{reg}.

        Raises:
            IndexError: If reg is not 0x0-0xF
        """
        if not 0 <= reg < NUM_REGISTERS:
            raise IndexError(f"Invalid register: V{reg}")
        return self.registers[reg]

    def set_register(self, reg: int, value: int) -> None:
        """Set register V{reg}, wrapping value to 8 bits.

        Raises:
            IndexError: If reg is not 0x0-0xF
        """
        if not 0 <= reg < NUM_REGISTERS:
            raise IndexError(f"Invalid register: V{reg}")
        self.registers[reg] = value & 0xFF

    def set_flag(self, value: int) -> None:
        """Write VF. Callers do this after storing their result."""
        self.registers[FLAG_REGISTER] = value & 0xFF

    def advance(self, instructions: int = 1) -> None:
        """Move PC forward by whole instructions (2 bytes each)."""
        self.pc = (self.pc + 2 * instructions) & 0xFFFF

    def push(self, address: int) -> None:
        """Push a return address.

        Raises:
            StackOverflow: If all 16 slots are in use
        """
        if self.sp >= STACK_SIZE:
            raise StackOverflow(self.sp, self.pc)
        self.stack[self.sp] = address & 0xFFFF
        self.sp += 1

    def pop(self) -> int:
        """Pop the most recent return address.

        Raises:
            StackUnderflow: If the stack is empty
        """
        if self.sp == 0:
            raise StackUnderflow(self.pc)
        self.sp -= 1
        return self.stack[self.sp]

    def press_key(self, key: int) -> None:
        """Mark key as pressed, recording the press edge for Fx0A."""
        self._check_key(key)
        if not self.keys[key]:
            self.pending_key = key
        self.keys[key] = True

    def release_key(self, key: int) -> None:
        self._check_key(key)
        self.keys[key] = False

    def set_keys(self, pressed: Iterable[bool]) -> None:
        """Replace the whole key array, recording press edges."""
        pressed = [bool(p) for p in pressed]
        if len(pressed) != NUM_KEYS:
            raise ValueError(f"Expected {NUM_KEYS} key states, got {len(pressed)}")
        for key, down in enumerate(pressed):
            if down:
                self.press_key(key)
            else:
                self.release_key(key)

    def tick_timers(self) -> None:
        """Decrement both timers toward zero (one 60 Hz tick)."""
        if self.delay_timer > 0:
            self.delay_timer -= 1
        if self.sound_timer > 0:
            self.sound_timer -= 1

    def dump_registers(self) -> dict:
        """Get a copy of all register values.

        Returns:
            Dictionary of register names (V0-VF, I) to values
        """
        regs = {f"V{i:X}": v for i, v in enumerate(self.registers)}
        regs["I"] = self.index
        return regs

    def _check_key(self, key: int) -> None:
        if not 0 <= key < NUM_KEYS:
            raise ValueError(f"Invalid key: {key}")

    def __str__(self) -> str:
        """Human-readable state representation."""
        regs = " ".join(f"V{i:X}={v:02X}" for i, v in enumerate(self.registers))
        return (
            f"[Cycle {self.cycle_count}] PC={self.pc:03X} I={self.index:03X} SP={self.sp} "
            f"DT={self.delay_timer} ST={self.sound_timer} {regs} {'HALTED' if self.halted else ''}"
        ).rstrip()


def create_initial_state(rom: Optional[bytes] = None, memory: Optional[Memory] = None) -> ProcessorState:
    """Create a reset processor state, optionally with a ROM loaded.

    Args:
        rom: ROM image to copy to 0x200
        memory: Existing memory image to use instead of a fresh one

    Returns:
        Fresh ProcessorState with PC at 0x200
    """
    memory = memory if memory is not None else Memory()
    if rom is not None:
        memory.load(rom)
    return ProcessorState(memory=memory)
