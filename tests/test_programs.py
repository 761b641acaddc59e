"""Integration tests running small CHIP-8 programs through Chip8CPU."""

import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest
from chip8_cpu import (
    AddressOutOfRange,
    Chip8CPU,
    CPUHalted,
    CycleLimitExceeded,
    Instruction,
    InvalidOpcode,
    Op,
    StackOverflow,
    StackUnderflow,
)


def assemble(*words):
    """Pack 16-bit opcodes into a big-endian ROM image."""
    return b"".join(word.to_bytes(2, "big") for word in words)


def place(program):
    """Build a ROM from {address: opcode} with zero filler between."""
    end = max(program) + 2
    rom = bytearray(end - 0x200)
    for address, word in program.items():
        rom[address - 0x200:address - 0x200 + 2] = word.to_bytes(2, "big")
    return bytes(rom)


@pytest.fixture
def cpu():
    return Chip8CPU(seed=0)


class TestStraightLinePrograms:
    """Test programs that run top to bottom."""

    def test_add_registers(self, cpu):
        """LD V0, 5; LD V1, 3; ADD V0, V1."""
        cpu.load_rom(assemble(0x6005, 0x6103, 0x8014))
        for _ in range(3):
            cpu.step()

        assert cpu.get_register(0) == 8
        assert cpu.get_register(0xF) == 0
        assert cpu.get_pc() == 0x206
        assert cpu.get_cycle_count() == 3

    def test_load_instructions(self, cpu):
        cpu.load_instructions([
            Instruction(Op.LOAD_BYTE, x=0, kk=0xFF),
            Instruction(Op.ADD_BYTE, x=0, kk=0x02),
        ])
        cpu.step()
        cpu.step()
        assert cpu.get_register(0) == 0x01

    def test_bcd_digits_drawn_from_font(self, cpu):
        """Split 234 into digits, then draw the hundreds digit."""
        cpu.load_rom(assemble(
            0x60EA,  # LD V0, 234
            0xA300,  # LD I, 0x300
            0xF033,  # LD B, V0
            0xF265,  # LD V2, [I]
            0xF029,  # LD F, V0
            0xD335,  # DRW V3, V3, 5
        ))
        for _ in range(6):
            cpu.step()

        assert [cpu.get_register(r) for r in range(3)] == [2, 3, 4]
        assert cpu.get_index() == 0x050 + 10
        assert cpu.state.display.lit_count() == 14
        assert cpu.display_rows()[0][:4] == (1, 1, 1, 1)

    def test_sound_timer(self, cpu):
        cpu.load_rom(assemble(0x6002, 0xF018))
        cpu.step()
        cpu.step()
        assert cpu.is_sound_on() is True
        cpu.tick_timers()
        cpu.tick_timers()
        assert cpu.is_sound_on() is False

    def test_seeded_random_is_reproducible(self):
        rom = assemble(0xC0FF, 0xC1FF, 0xC2FF)
        results = []
        for _ in range(2):
            cpu = Chip8CPU(seed=7)
            cpu.load_rom(rom)
            for _ in range(3):
                cpu.step()
            results.append([cpu.get_register(r) for r in range(3)])
        assert results[0] == results[1]


class TestLoopsAndSubroutines:
    """Test control flow across several instructions."""

    def test_count_to_ten(self, cpu):
        cpu.load_rom(place({
            0x200: 0x6000,  # LD V0, 0
            0x202: 0x7001,  # ADD V0, 1
            0x204: 0x300A,  # SE V0, 10
            0x206: 0x1202,  # JP 0x202
            0x208: 0x1208,  # JP 0x208
        }))
        with pytest.raises(CycleLimitExceeded):
            cpu.run(max_cycles=100)
        assert cpu.get_register(0) == 10
        assert cpu.get_pc() == 0x208

    def test_call_and_return(self, cpu):
        cpu.load_rom(place({
            0x200: 0x2206,  # CALL 0x206
            0x202: 0x6B02,  # LD VB, 2
            0x204: 0x1204,  # JP 0x204
            0x206: 0x6A01,  # LD VA, 1
            0x208: 0x00EE,  # RET
        }))
        for _ in range(5):
            cpu.step()
        assert cpu.get_register(0xA) == 1
        assert cpu.get_register(0xB) == 2
        assert cpu.get_pc() == 0x204
        assert cpu.state.sp == 0

    @staticmethod
    def nested_calls(innermost):
        """Sixteen levels of CALL, innermost body given by the caller."""
        program = {0x200: 0x2300, 0x202: 0x1202}
        for level in range(15):
            address = 0x300 + 4 * level
            program[address] = 0x2000 | (address + 4)
            program[address + 2] = 0x00EE
        program[0x33C] = innermost
        return place(program)

    def test_sixteen_nested_calls(self, cpu):
        cpu.load_rom(self.nested_calls(0x00EE))
        for _ in range(32):
            cpu.step()

        assert max(entry.post_state["sp"] for entry in cpu.trace) == 16
        assert cpu.state.sp == 0
        assert cpu.get_pc() == 0x202
        assert cpu.is_halted() is False

    def test_seventeenth_call_overflows(self, cpu):
        cpu.load_rom(self.nested_calls(0x233C))
        with pytest.raises(StackOverflow):
            cpu.run()
        assert cpu.is_halted() is True
        assert cpu.state.sp == 16
        assert cpu.get_pc() == 0x33C


class TestFaults:
    """Test fatal faults halt the CPU."""

    def test_return_with_empty_stack(self, cpu):
        cpu.load_rom(assemble(0x00EE))
        with pytest.raises(StackUnderflow):
            cpu.step()
        assert cpu.is_halted() is True
        assert "underflow" in cpu.trace[-1].error

        with pytest.raises(CPUHalted):
            cpu.step()

    def test_invalid_opcode_halts(self, cpu):
        cpu.load_rom(assemble(0x6001, 0x0123))
        cpu.step()
        with pytest.raises(InvalidOpcode) as excinfo:
            cpu.step()
        assert excinfo.value.opcode == 0x0123
        assert cpu.is_halted() is True
        assert cpu.get_pc() == 0x202

        entry = cpu.trace[-1]
        assert entry.opcode == 0x0123
        assert entry.instruction is None

    def test_invalid_opcode_skip_policy(self, caplog):
        cpu = Chip8CPU(on_invalid_opcode="skip")
        cpu.load_rom(assemble(0x0123, 0x6005, 0x1204))
        with caplog.at_level(logging.WARNING, logger="chip8_cpu"):
            with pytest.raises(CycleLimitExceeded):
                cpu.run(max_cycles=10)

        assert cpu.get_register(0) == 5
        assert cpu.is_halted() is False
        assert cpu.get_summary()["errors"] == ["Invalid opcode: 0x0123"]
        assert "Skipping invalid opcode" in caplog.text

    def test_unknown_policy(self):
        with pytest.raises(ValueError):
            Chip8CPU(on_invalid_opcode="ignore")

    def test_fetch_past_end_of_memory(self, cpu):
        cpu.load_rom(assemble(0x1FFF))
        cpu.step()
        with pytest.raises(AddressOutOfRange):
            cpu.step()
        assert cpu.is_halted() is True
        assert cpu.trace[-1].opcode is None

    def test_step_without_rom(self, cpu):
        with pytest.raises(RuntimeError):
            cpu.step()


class TestRun:
    """Test the cycle budget."""

    def test_limit_counts_total_cycles(self, cpu):
        cpu.load_rom(assemble(0x1200))
        with pytest.raises(CycleLimitExceeded) as excinfo:
            cpu.run(max_cycles=5)
        assert excinfo.value.limit == 5
        assert cpu.get_cycle_count() == 5

        with pytest.raises(CycleLimitExceeded):
            cpu.run(max_cycles=5)
        assert cpu.get_cycle_count() == 5

    def test_limit_is_runtime_error(self, cpu):
        cpu.load_rom(assemble(0x1200))
        with pytest.raises(RuntimeError, match="Max cycles"):
            cpu.run(max_cycles=3)

    def test_timers_tick_during_headless_run(self):
        rom = assemble(0x6005, 0xF015, 0x1204)  # LD V0, 5; LD DT, V0; JP 0x204
        cpu = Chip8CPU()
        cpu.load_rom(rom)
        with pytest.raises(CycleLimitExceeded):
            cpu.run(max_cycles=8, timer_interval=2)
        assert cpu.state.delay_timer == 1

        cpu.load_rom(rom)
        with pytest.raises(CycleLimitExceeded):
            cpu.run(max_cycles=8)
        assert cpu.state.delay_timer == 5

    def test_timer_interval_must_be_positive(self, cpu):
        cpu.load_rom(assemble(0x1200))
        with pytest.raises(ValueError):
            cpu.run(max_cycles=5, timer_interval=0)

    def test_default_budget(self):
        cpu = Chip8CPU(max_cycles=20)
        cpu.load_rom(assemble(0x1200))
        with pytest.raises(CycleLimitExceeded):
            cpu.run()
        assert cpu.get_cycle_count() == 20


class TestTrace:
    """Test execution trace recording."""

    def test_trace_entries(self, cpu):
        cpu.load_rom(assemble(0x6005, 0x6103))
        first = cpu.step()
        second = cpu.step()

        assert [e.cycle for e in cpu.trace] == [0, 1]
        assert first.address == 0x200
        assert first.opcode == 0x6005
        assert str(first.instruction) == "LD V0, 0x05"
        assert first.pre_state["registers"][0] == 0
        assert first.post_state["registers"][0] == 5
        assert second.post_state["pc"] == 0x204
        assert first.error is None

    def test_trace_limit(self):
        cpu = Chip8CPU(trace_limit=2)
        cpu.load_rom(assemble(0x1200))
        with pytest.raises(CycleLimitExceeded):
            cpu.run(max_cycles=10)
        assert [e.cycle for e in cpu.trace] == [8, 9]

    def test_trace_limit_must_be_positive(self):
        with pytest.raises(ValueError):
            Chip8CPU(trace_limit=0)

    def test_trace_limit_of_one(self):
        """step() returns the entry it just recorded, including skipped words."""
        cpu = Chip8CPU(trace_limit=1, on_invalid_opcode="skip")
        cpu.load_rom(assemble(0x6005, 0x0123))
        first = cpu.step()
        second = cpu.step()
        assert first.opcode == 0x6005
        assert second.error == "Invalid opcode: 0x0123"
        assert cpu.trace == [second]

    def test_trace_disabled(self):
        cpu = Chip8CPU(trace_enabled=False)
        cpu.load_rom(assemble(0x6005))
        assert cpu.step() is None
        assert cpu.trace == []

    def test_load_rom_resets(self, cpu):
        cpu.load_rom(assemble(0x6005))
        cpu.step()
        cpu.load_rom(assemble(0x6105))
        assert cpu.trace == []
        assert cpu.get_cycle_count() == 0
        assert cpu.get_register(0) == 0

    def test_summary(self, cpu):
        cpu.load_rom(assemble(0x6005))
        cpu.step()
        summary = cpu.get_summary()
        assert summary["cycles"] == 1
        assert summary["halted"] is False
        assert summary["registers"]["V0"] == 5
        assert summary["pc"] == 0x202
        assert summary["trace_length"] == 1
        assert summary["errors"] == []

    def test_print_trace(self, cpu, capsys):
        cpu.load_rom(assemble(0x6005))
        cpu.step()
        cpu.print_trace()
        out = capsys.readouterr().out
        assert "CHIP-8 EXECUTION TRACE" in out
        assert "V0: 0 → 5" in out
