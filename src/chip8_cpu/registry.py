"""InstructionRegistry: the CHIP-8 executor.

Each Op maps to one primitive handler that applies the instruction to a
ProcessorState in place. The registry is frozen after construction so the
set of executable operations cannot change at runtime.

Handler contract:
    handler(state, instruction) -> None
    - Ends by setting the next PC: +2 by default, +4 for a taken skip,
      an explicit target for control transfers, unchanged while Fx0A waits.
    - Writes VF after the result register whenever it reports
      carry, borrow, shifted-out bit or collision.
    - Never catches StackOverflow, StackUnderflow or AddressOutOfRange;
      those reach the caller with the state left as it was before the
      faulting write.
"""

import random
from typing import Callable, Dict, Optional

from .instruction import Instruction, Op
from .memory import font_address
from .quirks import DEFAULT_QUIRKS, Quirks
from .state import ProcessorState


Handler = Callable[[ProcessorState, Instruction], None]


class InstructionRegistry:
    """Verified registry of CHIP-8 primitives.

    Attributes:
        quirks: Instruction semantics switches
        rng: Random source for Cxkk
        _primitives: Dictionary mapping operation keys to handler functions
        _frozen: Whether the registry is locked against modifications
    """

    def __init__(self, quirks: Optional[Quirks] = None, rng: Optional[random.Random] = None):
        """Initialize registry with all CHIP-8 primitives.

        Args:
            quirks: Semantics switches (defaults to DEFAULT_QUIRKS)
            rng: Random source for RND; a fresh unseeded Random if omitted
        """
        self.quirks = quirks if quirks is not None else DEFAULT_QUIRKS
        self.rng = rng if rng is not None else random.Random()
        self._primitives: Dict[str, Handler] = {}
        self._frozen = False
        self._register_all_primitives()
        self.freeze()

    def _register_all_primitives(self) -> None:
        """Register all CHIP-8 operation primitives."""
        # Display
        self.register(Op.CLEAR_DISPLAY, self._op_clear_display)
        self.register(Op.DRAW, self._op_draw)

        # Control flow
        self.register(Op.RETURN, self._op_return)
        self.register(Op.JUMP, self._op_jump)
        self.register(Op.CALL, self._op_call)
        self.register(Op.JUMP_WITH_OFFSET, self._op_jump_with_offset)

        # Conditional skips
        self.register(Op.SKIP_IF_EQUALS_BYTE, self._op_skip_if_equals_byte)
        self.register(Op.SKIP_IF_NOT_EQUALS_BYTE, self._op_skip_if_not_equals_byte)
        self.register(Op.SKIP_IF_EQUALS_REGISTER, self._op_skip_if_equals_register)
        self.register(Op.SKIP_IF_NOT_EQUALS_REGISTER, self._op_skip_if_not_equals_register)

        # Register loads and arithmetic
        self.register(Op.LOAD_BYTE, self._op_load_byte)
        self.register(Op.ADD_BYTE, self._op_add_byte)
        self.register(Op.MOVE, self._op_move)
        self.register(Op.OR, self._op_or)
        self.register(Op.AND, self._op_and)
        self.register(Op.XOR, self._op_xor)
        self.register(Op.ADD, self._op_add)
        self.register(Op.SUBTRACT, self._op_subtract)
        self.register(Op.SUBTRACT_REVERSE, self._op_subtract_reverse)
        self.register(Op.SHIFT_RIGHT, self._op_shift_right)
        self.register(Op.SHIFT_LEFT, self._op_shift_left)
        self.register(Op.RANDOM_WITH_MASK, self._op_random_with_mask)

        # Index register
        self.register(Op.LOAD_INDEX, self._op_load_index)
        self.register(Op.ADD_TO_INDEX, self._op_add_to_index)
        self.register(Op.LOAD_SPRITE, self._op_load_sprite)

        # Input
        self.register(Op.SKIP_IF_PRESSED, self._op_skip_if_pressed)
        self.register(Op.SKIP_IF_NOT_PRESSED, self._op_skip_if_not_pressed)
        self.register(Op.WAIT_KEY_PRESS, self._op_wait_key_press)

        # Timers
        self.register(Op.LOAD_DELAY_TIMER, self._op_load_delay_timer)
        self.register(Op.STORE_DELAY_TIMER, self._op_store_delay_timer)
        self.register(Op.STORE_SOUND_TIMER, self._op_store_sound_timer)

        # Memory transfers
        self.register(Op.STORE_BCD, self._op_store_bcd)
        self.register(Op.STORE_REGISTERS, self._op_store_registers)
        self.register(Op.LOAD_REGISTERS, self._op_load_registers)

    def register(self, key: str, handler: Handler) -> None:
        """Register a primitive operation.

        Args:
            key: Operation key (an Op, or its "OP_..." value)
            handler: Function that applies the instruction to a state

        Raises:
            RuntimeError: If registry is frozen
            ValueError: If key already registered
        """
        if self._frozen:
            raise RuntimeError("Cannot register primitives: registry is frozen")
        key = Op(key).value
        if key in self._primitives:
            raise ValueError(f"Primitive already registered: {key}")
        self._primitives[key] = handler

    def freeze(self) -> None:
        """Freeze the registry to prevent further modifications."""
        self._frozen = True

    def is_frozen(self) -> bool:
        """Check if registry is frozen."""
        return self._frozen

    def get_valid_keys(self) -> set:
        """Get set of all valid operation keys."""
        return set(self._primitives.keys())

    def execute(self, state: ProcessorState, instruction: Instruction) -> None:
        """Execute a decoded instruction against state.

        Args:
            state: Processor state, mutated in place
            instruction: Decoded instruction

        Raises:
            KeyError: If the instruction's key is not in the registry
            StackOverflow, StackUnderflow, AddressOutOfRange: Fatal faults
        """
        key = instruction.key
        if key not in self._primitives:
            raise KeyError(f"Unknown operation key: {key}")

        self._primitives[key](state, instruction)

        # Always increment cycle count after execution
        state.cycle_count += 1

    # =========================================================================
    # Display Primitives
    # =========================================================================

    def _op_clear_display(self, state: ProcessorState, ins: Instruction) -> None:
        """00E0 CLS - Clear the frame buffer."""
        state.display.clear()
        state.advance()

    def _op_draw(self, state: ProcessorState, ins: Instruction) -> None:
        """Dxyn DRW Vx, Vy, n - Draw n sprite rows from memory at I.

        The sprite is read in full before the display changes, so an
        out-of-range read leaves the frame untouched. VF = 1 if any lit
        pixel was turned off, else 0.
        """
        rows = state.memory.read_block(state.index, ins.n)
        collision = state.display.draw_sprite(
            state.registers[ins.x],
            state.registers[ins.y],
            rows,
            wrap=self.quirks.wrap_sprites,
        )
        state.set_flag(1 if collision else 0)
        state.advance()

    # =========================================================================
    # Control Flow Primitives
    # =========================================================================

    def _op_return(self, state: ProcessorState, ins: Instruction) -> None:
        """00EE RET - Pop the return address into PC."""
        state.pc = state.pop()

    def _op_jump(self, state: ProcessorState, ins: Instruction) -> None:
        """1nnn JP addr - Set PC to nnn."""
        state.pc = ins.nnn

    def _op_call(self, state: ProcessorState, ins: Instruction) -> None:
        """2nnn CALL addr - Push the address of the next instruction, jump to nnn."""
        state.push((state.pc + 2) & 0xFFFF)
        state.pc = ins.nnn

    def _op_jump_with_offset(self, state: ProcessorState, ins: Instruction) -> None:
        """Bnnn JP V0, addr - Set PC to nnn + V0 (or Vx with jump_uses_vx)."""
        offset_register = (ins.nnn >> 8) if self.quirks.jump_uses_vx else 0
        state.pc = (ins.nnn + state.registers[offset_register]) & 0xFFFF

    # =========================================================================
    # Conditional Skip Primitives
    # =========================================================================

    def _op_skip_if_equals_byte(self, state: ProcessorState, ins: Instruction) -> None:
        """3xkk SE Vx, byte"""
        state.advance(2 if state.registers[ins.x] == ins.kk else 1)

    def _op_skip_if_not_equals_byte(self, state: ProcessorState, ins: Instruction) -> None:
        """4xkk SNE Vx, byte"""
        state.advance(2 if state.registers[ins.x] != ins.kk else 1)

    def _op_skip_if_equals_register(self, state: ProcessorState, ins: Instruction) -> None:
        """5xy0 SE Vx, Vy"""
        state.advance(2 if state.registers[ins.x] == state.registers[ins.y] else 1)

    def _op_skip_if_not_equals_register(self, state: ProcessorState, ins: Instruction) -> None:
        """9xy0 SNE Vx, Vy"""
        state.advance(2 if state.registers[ins.x] != state.registers[ins.y] else 1)

    # =========================================================================
    # Register Primitives
    # =========================================================================

    def _op_load_byte(self, state: ProcessorState, ins: Instruction) -> None:
        """6xkk LD Vx, byte"""
        state.set_register(ins.x, ins.kk)
        state.advance()

    def _op_add_byte(self, state: ProcessorState, ins: Instruction) -> None:
        """7xkk ADD Vx, byte - Wrapping add, VF untouched."""
        state.set_register(ins.x, state.registers[ins.x] + ins.kk)
        state.advance()

    def _op_move(self, state: ProcessorState, ins: Instruction) -> None:
        """8xy0 LD Vx, Vy"""
        state.set_register(ins.x, state.registers[ins.y])
        state.advance()

    def _op_or(self, state: ProcessorState, ins: Instruction) -> None:
        """8xy1 OR Vx, Vy"""
        self._logic(state, ins, state.registers[ins.x] | state.registers[ins.y])

    def _op_and(self, state: ProcessorState, ins: Instruction) -> None:
        """8xy2 AND Vx, Vy"""
        self._logic(state, ins, state.registers[ins.x] & state.registers[ins.y])

    def _op_xor(self, state: ProcessorState, ins: Instruction) -> None:
        """8xy3 XOR Vx, Vy"""
        self._logic(state, ins, state.registers[ins.x] ^ state.registers[ins.y])

    def _op_add(self, state: ProcessorState, ins: Instruction) -> None:
        """8xy4 ADD Vx, Vy - VF = 1 on unsigned overflow, else 0."""
        total = state.registers[ins.x] + state.registers[ins.y]
        state.set_register(ins.x, total)
        state.set_flag(1 if total > 0xFF else 0)
        state.advance()

    def _op_subtract(self, state: ProcessorState, ins: Instruction) -> None:
        """8xy5 SUB Vx, Vy - Vx = Vx - Vy, VF = NOT borrow."""
        minuend = state.registers[ins.x]
        subtrahend = state.registers[ins.y]
        state.set_register(ins.x, minuend - subtrahend)
        state.set_flag(1 if minuend >= subtrahend else 0)
        state.advance()

    def _op_subtract_reverse(self, state: ProcessorState, ins: Instruction) -> None:
        """8xy7 SUBN Vx, Vy - Vx = Vy - Vx, VF = NOT borrow."""
        minuend = state.registers[ins.y]
        subtrahend = state.registers[ins.x]
        state.set_register(ins.x, minuend - subtrahend)
        state.set_flag(1 if minuend >= subtrahend else 0)
        state.advance()

    def _op_shift_right(self, state: ProcessorState, ins: Instruction) -> None:
        """8xy6 SHR Vx - VF = bit shifted out (LSB)."""
        value = state.registers[ins.y if self.quirks.shift_uses_vy else ins.x]
        state.set_register(ins.x, value >> 1)
        state.set_flag(value & 0x01)
        state.advance()

    def _op_shift_left(self, state: ProcessorState, ins: Instruction) -> None:
        """8xyE SHL Vx - VF = bit shifted out (MSB)."""
        value = state.registers[ins.y if self.quirks.shift_uses_vy else ins.x]
        state.set_register(ins.x, value << 1)
        state.set_flag((value >> 7) & 0x01)
        state.advance()

    def _op_random_with_mask(self, state: ProcessorState, ins: Instruction) -> None:
        """Cxkk RND Vx, byte - Vx = uniform random byte AND kk."""
        state.set_register(ins.x, self.rng.randrange(256) & ins.kk)
        state.advance()

    # =========================================================================
    # Index Register Primitives
    # =========================================================================

    def _op_load_index(self, state: ProcessorState, ins: Instruction) -> None:
        """Annn LD I, addr"""
        state.index = ins.nnn
        state.advance()

    def _op_add_to_index(self, state: ProcessorState, ins: Instruction) -> None:
        """Fx1E ADD I, Vx - 16-bit wrapping add, VF untouched."""
        state.index = (state.index + state.registers[ins.x]) & 0xFFFF
        state.advance()

    def _op_load_sprite(self, state: ProcessorState, ins: Instruction) -> None:
        """Fx29 LD F, Vx - I = address of the font glyph for Vx's low nibble."""
        state.index = font_address(state.registers[ins.x])
        state.advance()

    # =========================================================================
    # Input Primitives
    # =========================================================================

    def _op_skip_if_pressed(self, state: ProcessorState, ins: Instruction) -> None:
        """Ex9E SKP Vx - Skip if the key in Vx's low nibble is down."""
        state.advance(2 if state.keys[state.registers[ins.x] & 0xF] else 1)

    def _op_skip_if_not_pressed(self, state: ProcessorState, ins: Instruction) -> None:
        """ExA1 SKNP Vx - Skip if the key in Vx's low nibble is up."""
        state.advance(1 if state.keys[state.registers[ins.x] & 0xF] else 2)

    def _op_wait_key_press(self, state: ProcessorState, ins: Instruction) -> None:
        """Fx0A LD Vx, K - Hold PC until a key goes from released to pressed.

        The first execution arms the wait and discards presses that happened
        before it. Every later execution either captures the pending press
        into Vx and advances, or leaves PC where it is so the driver runs
        this instruction again next cycle.
        """
        if state.waiting_register is None:
            state.waiting_register = ins.x
            state.pending_key = None
            return

        if state.pending_key is None:
            return

        state.set_register(ins.x, state.pending_key)
        state.waiting_register = None
        state.pending_key = None
        state.advance()

    # =========================================================================
    # Timer Primitives
    # =========================================================================

    def _op_load_delay_timer(self, state: ProcessorState, ins: Instruction) -> None:
        """Fx07 LD Vx, DT"""
        state.set_register(ins.x, state.delay_timer)
        state.advance()

    def _op_store_delay_timer(self, state: ProcessorState, ins: Instruction) -> None:
        """Fx15 LD DT, Vx"""
        state.delay_timer = state.registers[ins.x]
        state.advance()

    def _op_store_sound_timer(self, state: ProcessorState, ins: Instruction) -> None:
        """Fx18 LD ST, Vx"""
        state.sound_timer = state.registers[ins.x]
        state.advance()

    # =========================================================================
    # Memory Transfer Primitives
    # =========================================================================

    def _op_store_bcd(self, state: ProcessorState, ins: Instruction) -> None:
        """Fx33 LD B, Vx - Write hundreds, tens, ones of Vx at I, I+1, I+2."""
        value = state.registers[ins.x]
        state.memory.write_block(state.index, (value // 100, (value // 10) % 10, value % 10))
        state.advance()

    def _op_store_registers(self, state: ProcessorState, ins: Instruction) -> None:
        """Fx55 LD [I], Vx - Copy V0..Vx to memory at I."""
        state.memory.write_block(state.index, state.registers[:ins.x + 1])
        if self.quirks.load_store_increments_index:
            state.index = (state.index + ins.x + 1) & 0xFFFF
        state.advance()

    def _op_load_registers(self, state: ProcessorState, ins: Instruction) -> None:
        """Fx65 LD Vx, [I] - Copy memory at I into V0..Vx."""
        data = state.memory.read_block(state.index, ins.x + 1)
        state.registers[:ins.x + 1] = data
        if self.quirks.load_store_increments_index:
            state.index = (state.index + ins.x + 1) & 0xFFFF
        state.advance()

    # =========================================================================
    # Helper Methods
    # =========================================================================

    def _logic(self, state: ProcessorState, ins: Instruction, result: int) -> None:
        state.set_register(ins.x, result)
        if self.quirks.logic_resets_flag:
            state.set_flag(0)
        state.advance()

