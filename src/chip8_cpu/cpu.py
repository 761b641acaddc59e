"""Chip8CPU: fetch-decode-execute orchestrator for the CHIP-8.

This module implements the full execution pipeline:
    MEMORY -> FETCH -> DECODE -> INSTRUCTION -> REGISTRY -> EXECUTE -> STATE

One step() is one cycle tick. Timers are not touched by step(); the
driver calls tick_timers() at 60 Hz independently of the instruction
rate.
"""

import logging
import random
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

from .decode import decode
from .errors import Chip8Error, CPUHalted, CycleLimitExceeded, InvalidOpcode
from .instruction import Instruction
from .quirks import Quirks
from .registry import InstructionRegistry
from .state import ProcessorState, create_initial_state


logger = logging.getLogger(__name__)

INVALID_OPCODE_POLICIES = ("halt", "skip")


@dataclass
class ExecutionTraceEntry:
    """Single entry in the execution trace.

    Captures one fetch-decode-execute cycle for debugging.

    Attributes:
        cycle: Cycle number (0-indexed)
        address: Address the opcode was fetched from
        opcode: Raw 16-bit opcode (None if the fetch itself failed)
        instruction: Decoded instruction (None if decoding failed)
        pre_state: State before execution
        post_state: State after execution
        error: Error message if the cycle faulted
    """
    cycle: int
    address: int
    opcode: Optional[int]
    instruction: Optional[Instruction]
    pre_state: dict
    post_state: dict
    error: Optional[str] = None


class Chip8CPU:
    """CHIP-8 interpreter core.

    Attributes:
        registry: InstructionRegistry executing decoded instructions
        state: Current processor state (None until a ROM is loaded)
        trace: List of execution trace entries
        max_cycles: Default cycle budget for run()
        on_invalid_opcode: "halt" (stop and raise) or "skip" (warn, step over)
        trace_enabled: Whether step() records trace entries
        trace_limit: Keep only the most recent entries (None keeps all)
    """

    DEFAULT_MAX_CYCLES = 10000

    def __init__(
        self,
        quirks: Optional[Quirks] = None,
        seed: Optional[int] = None,
        max_cycles: int = DEFAULT_MAX_CYCLES,
        on_invalid_opcode: str = "halt",
        trace_enabled: bool = True,
        trace_limit: Optional[int] = None
    ):
        """Initialize the CPU.

        Args:
            quirks: Instruction semantics switches
            seed: Seed for the RND instruction's random source
            max_cycles: Maximum cycles run() executes before giving up
            on_invalid_opcode: Policy for undecodable opcodes, "halt" or "skip"
            trace_enabled: Record an ExecutionTraceEntry per step
            trace_limit: Cap on retained trace entries for long runs (at least 1)

        Raises:
            ValueError: On an unknown policy or a trace_limit below 1
        """
        if on_invalid_opcode not in INVALID_OPCODE_POLICIES:
            raise ValueError(
                f"on_invalid_opcode must be one of {INVALID_OPCODE_POLICIES}, got {on_invalid_opcode!r}"
            )
        if trace_limit is not None and trace_limit < 1:
            raise ValueError(f"trace_limit must be at least 1, got {trace_limit}")
        self.registry = InstructionRegistry(quirks=quirks, rng=random.Random(seed))
        self.state: Optional[ProcessorState] = None
        self.trace: List[ExecutionTraceEntry] = []
        self.max_cycles = max_cycles
        self.on_invalid_opcode = on_invalid_opcode
        self.trace_enabled = trace_enabled
        self.trace_limit = trace_limit

    @property
    def quirks(self) -> Quirks:
        return self.registry.quirks

    def load_rom(self, rom: bytes) -> None:
        """Reset the CPU and load a ROM image at 0x200.

        Args:
            rom: Raw ROM bytes (at most 3584)

        Raises:
            RomTooLarge: If the image does not fit
        """
        self.state = create_initial_state(rom)
        self.trace = []

    def load_instructions(self, instructions: Iterable[Instruction]) -> None:
        """Assemble decoded instructions into a ROM and load it."""
        rom = bytearray()
        for instruction in instructions:
            rom += instruction.encode().to_bytes(2, "big")
        self.load_rom(bytes(rom))

    def step(self) -> Optional[ExecutionTraceEntry]:
        """Execute a single instruction cycle.

        Performs: FETCH -> DECODE -> EXECUTE

        Returns:
            ExecutionTraceEntry for the cycle, or None when tracing is off

        Raises:
            RuntimeError: If no ROM loaded
            CPUHalted: If the CPU already halted
            Chip8Error: Any fatal fault; the CPU is halted before it is raised
        """
        state = self._require_state()
        if state.halted:
            raise CPUHalted()

        address = state.pc
        cycle = state.cycle_count
        pre_state = state.snapshot() if self.trace_enabled else {}
        opcode = None
        instruction = None
        error = None

        try:
            # FETCH
            opcode = state.memory.fetch_word(address)
            # DECODE
            instruction = decode(opcode)
            # EXECUTE
            self.registry.execute(state, instruction)
        except InvalidOpcode as e:
            error = str(e)
            if self.on_invalid_opcode == "skip":
                logger.warning("Skipping invalid opcode 0x%04X at 0x%03X", e.opcode, address)
                state.advance()
                state.cycle_count += 1
                entry = self._record(cycle, address, opcode, instruction, pre_state, error)
            else:
                self._halt(cycle, address, opcode, instruction, pre_state, error)
                raise
        except Chip8Error as e:
            self._halt(cycle, address, opcode, instruction, pre_state, str(e))
            raise
        else:
            logger.debug("0x%03X: %04X %s", address, opcode, instruction)
            entry = self._record(cycle, address, opcode, instruction, pre_state, None)

        return entry

    def run(self, max_cycles: Optional[int] = None, timer_interval: Optional[int] = None) -> List[ExecutionTraceEntry]:
        """Step until the CPU halts or the cycle budget runs out.

        CHIP-8 programs have no halt instruction; a program normally ends
        in a self-jump, so hitting the budget is the usual way out for
        headless runs.

        Args:
            max_cycles: Override maximum cycles (uses instance default if None)
            timer_interval: Tick the timers every this many cycles; None
                leaves them untouched

        Returns:
            Complete execution trace

        Raises:
            CycleLimitExceeded: If the budget ran out before a halt
            Chip8Error: Any fatal fault raised by step()
        """
        state = self._require_state()
        limit = max_cycles if max_cycles is not None else self.max_cycles
        if timer_interval is not None and timer_interval < 1:
            raise ValueError(f"timer_interval must be at least 1, got {timer_interval}")

        while not state.halted and state.cycle_count < limit:
            self.step()
            if timer_interval and state.cycle_count % timer_interval == 0:
                state.tick_timers()

        # If we stopped due to cycle limit (not a halt), raise
        if not state.halted and state.cycle_count >= limit:
            raise CycleLimitExceeded(limit)

        return self.trace

    def tick_timers(self) -> None:
        """Clock tick: decrement delay and sound timers toward zero."""
        self._require_state().tick_timers()

    def press_key(self, key: int) -> None:
        self._require_state().press_key(key)

    def release_key(self, key: int) -> None:
        self._require_state().release_key(key)

    def set_keys(self, pressed: Iterable[bool]) -> None:
        self._require_state().set_keys(pressed)

    def display_rows(self) -> Tuple[Tuple[int, ...], ...]:
        """Read-only copy of the 64x32 frame buffer."""
        return self._require_state().display.rows()

    def get_register(self, reg: int) -> int:
        """Get value of register V{reg}."""
        return self._require_state().get_register(reg)

    def dump_registers(self) -> Dict[str, int]:
        """Get all register values (V0-VF and I)."""
        return self._require_state().dump_registers()

    def get_pc(self) -> int:
        return self._require_state().pc

    def get_index(self) -> int:
        return self._require_state().index

    def get_cycle_count(self) -> int:
        """Get number of executed cycles."""
        if self.state is None:
            return 0
        return self.state.cycle_count

    def is_halted(self) -> bool:
        """Check if CPU is halted."""
        if self.state is None:
            return True
        return self.state.halted

    def is_waiting(self) -> bool:
        """Check if an Fx0A key wait is in progress."""
        return self.state is not None and self.state.waiting_register is not None

    def is_sound_on(self) -> bool:
        """True while the sound timer is non-zero."""
        return self.state is not None and self.state.sound_timer > 0

    def dump_memory(self) -> str:
        """Hex dump of the full memory image."""
        return self._require_state().memory.dump()

    def print_trace(self) -> None:
        """Print execution trace in human-readable format."""
        print("=" * 70)
        print("CHIP-8 EXECUTION TRACE")
        print("=" * 70)

        for entry in self.trace:
            status = "OK" if not entry.error else f"ERROR: {entry.error}"
            opcode = f"{entry.opcode:04X}" if entry.opcode is not None else "----"
            print(f"\n[Cycle {entry.cycle}] {status}")
            print(f"  0x{entry.address:03X}: {opcode}  {entry.instruction or ''}")

            # Show register changes
            pre_regs = entry.pre_state.get("registers", [])
            post_regs = entry.post_state.get("registers", [])
            changes = []
            for reg, (before, after) in enumerate(zip(pre_regs, post_regs)):
                if before != after:
                    changes.append(f"V{reg:X}: {before} → {after}")
            if changes:
                print(f"  Changes: {', '.join(changes)}")

            # Show index change
            if entry.pre_state.get("index") != entry.post_state.get("index"):
                print(f"  I: 0x{entry.pre_state['index']:03X} → 0x{entry.post_state['index']:03X}")

        print("\n" + "=" * 70)
        print("FINAL STATE")
        print("=" * 70)
        if self.state:
            print(f"  Registers: {self.dump_registers()}")
            print(f"  PC: 0x{self.get_pc():03X}")
            print(f"  Timers: DT={self.state.delay_timer} ST={self.state.sound_timer}")
            print(f"  Cycles: {self.get_cycle_count()}")
            print(f"  Halted: {self.is_halted()}")

    def get_summary(self) -> Dict:
        """Get execution summary.

        Returns:
            Dictionary with execution statistics and final state
        """
        return {
            "cycles": self.get_cycle_count(),
            "halted": self.is_halted(),
            "waiting": self.is_waiting(),
            "registers": self.dump_registers() if self.state else {},
            "pc": self.get_pc() if self.state else 0,
            "sp": self.state.sp if self.state else 0,
            "delay_timer": self.state.delay_timer if self.state else 0,
            "sound_timer": self.state.sound_timer if self.state else 0,
            "lit_pixels": self.state.display.lit_count() if self.state else 0,
            "trace_length": len(self.trace),
            "errors": [e.error for e in self.trace if e.error],
        }

    def _require_state(self) -> ProcessorState:
        if self.state is None:
            raise RuntimeError("No ROM loaded")
        return self.state

    def _record(self, cycle, address, opcode, instruction, pre_state, error) -> Optional[ExecutionTraceEntry]:
        if not self.trace_enabled:
            return None
        entry = ExecutionTraceEntry(
            cycle=cycle,
            address=address,
            opcode=opcode,
            instruction=instruction,
            pre_state=pre_state,
            post_state=self.state.snapshot(),
            error=error
        )
        self.trace.append(entry)
        if self.trace_limit is not None and len(self.trace) > self.trace_limit:
            del self.trace[0]
        return entry

    def _halt(self, cycle, address, opcode, instruction, pre_state, error) -> None:
        self.state.halted = True
        logger.error("CPU halted at 0x%03X: %s", address, error)
        self._record(cycle, address, opcode, instruction, pre_state, error)
