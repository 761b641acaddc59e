#!/usr/bin/env python3
"""CHIP-8 CPU Command Line Interface.

Run a CHIP-8 ROM headless and inspect the result.

Usage:
    python main.py --rom roms/ibm_logo.ch8
    python main.py --rom roms/pong.ch8 --frames 600 --realtime
"""

import argparse
import logging
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent / "src"))

from chip8_cpu import Chip8CPU, Chip8Error, CycleDriver, CycleLimitExceeded, Quirks
from chip8_cpu.driver import TIMER_HZ


def main():
    parser = argparse.ArgumentParser(
        description="CHIP-8 CPU: headless CHIP-8 interpreter",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Run a ROM for the default cycle budget and show the screen
    python main.py --rom roms/ibm_logo.ch8

    # Run 10 seconds of frames at 60 Hz with timers
    python main.py --rom roms/pong.ch8 --frames 600 --realtime

    # Full execution trace of the first 50 instructions
    python main.py --rom roms/test.ch8 --max-cycles 50 --trace
        """
    )

    parser.add_argument(
        "--rom", "-r",
        type=str,
        required=True,
        help="Path to ROM image (.ch8)"
    )
    parser.add_argument(
        "--max-cycles",
        type=int,
        default=Chip8CPU.DEFAULT_MAX_CYCLES,
        help=f"Cycles to execute without --frames (timers tick every --ips/60 cycles). Default: {Chip8CPU.DEFAULT_MAX_CYCLES}"
    )
    parser.add_argument(
        "--frames", "-f",
        type=int,
        help="Run this many 60 Hz frames through the cycle driver instead"
    )
    parser.add_argument(
        "--ips",
        type=int,
        default=700,
        help="Instructions per second, sets the timer rate. Default: 700"
    )
    parser.add_argument(
        "--realtime",
        action="store_true",
        help="Pace --frames at wall-clock speed"
    )
    parser.add_argument(
        "--seed",
        type=int,
        help="Seed for the RND instruction"
    )
    parser.add_argument(
        "--on-invalid",
        choices=["halt", "skip"],
        default="halt",
        help="What to do on an undecodable opcode. Default: halt"
    )
    parser.add_argument(
        "--vip-quirks",
        action="store_true",
        help="COSMAC VIP semantics: logic ops reset VF, shifts read Vy, Fx55/Fx65 advance I"
    )
    parser.add_argument(
        "--wrap-sprites",
        action="store_true",
        help="Wrap sprites at the screen edges instead of clipping"
    )
    parser.add_argument(
        "--trace", "-t",
        action="store_true",
        help="Print full execution trace"
    )
    parser.add_argument(
        "--dump-memory",
        action="store_true",
        help="Print a hex dump of memory after execution"
    )
    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Minimal output (final registers only)"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="count",
        default=0,
        help="Log to stderr (-v info, -vv per-instruction debug)"
    )

    args = parser.parse_args()

    level = logging.WARNING
    if args.verbose == 1:
        level = logging.INFO
    elif args.verbose >= 2:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="[%(levelname)s] %(name)s: %(message)s")

    rom_path = Path(args.rom)
    if not rom_path.exists():
        print(f"Error: ROM file not found: {args.rom}")
        return 1

    quirks = Quirks(
        logic_resets_flag=args.vip_quirks,
        shift_uses_vy=args.vip_quirks,
        load_store_increments_index=args.vip_quirks,
        wrap_sprites=args.wrap_sprites,
    )

    # Initialize CPU
    cpu = Chip8CPU(
        quirks=quirks,
        seed=args.seed,
        max_cycles=args.max_cycles,
        on_invalid_opcode=args.on_invalid,
        trace_enabled=args.trace
    )

    try:
        cpu.load_rom(rom_path.read_bytes())
    except Chip8Error as e:
        print(f"Error: {e}")
        return 1

    if not args.quiet:
        print(f"Loading ROM: {args.rom}")
        print("-" * 64)
        print("Executing...")
        print("-" * 64)

    failed = False
    try:
        if args.frames is not None:
            driver = CycleDriver(cpu, instructions_per_second=args.ips)
            driver.run_frames(args.frames, realtime=args.realtime)
        else:
            # Tick timers at the same rate the driver would
            cpu.run(timer_interval=max(1, args.ips // TIMER_HZ))
    except CycleLimitExceeded:
        # Normal for CHIP-8 programs, which end in a self-jump
        pass
    except Chip8Error as e:
        print(f"Execution error: {e}")
        failed = True

    # Output
    if args.trace:
        cpu.print_trace()

    if args.quiet:
        regs = cpu.dump_registers()
        for reg in sorted(regs.keys()):
            if regs[reg] != 0:
                print(f"{reg}={regs[reg]}")
    else:
        print()
        print(cpu.state.display.render())
        print()
        summary = cpu.get_summary()
        print(f"Cycles: {summary['cycles']}")
        print(f"Halted: {summary['halted']}")
        print(f"PC: 0x{summary['pc']:03X}")
        print(f"Registers: {summary['registers']}")
        if summary['errors']:
            print(f"Errors: {summary['errors']}")

    if args.dump_memory:
        print(cpu.dump_memory())

    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
