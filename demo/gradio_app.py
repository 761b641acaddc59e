"""CHIP-8 CPU Interactive Demo.

A Gradio web interface for running a CHIP-8 ROM and looking at the result.

Usage:
    cd /path/to/chip8-cpu
    python demo/gradio_app.py

Features:
    - Run a built-in example program or upload a .ch8 ROM
    - Choose instruction rate, frame count, quirks and RND seed
    - See the 64x32 display, final registers and the last executed cycles
"""

import sys
from pathlib import Path
from typing import Optional

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import gradio as gr
import numpy as np
from chip8_cpu import COSMAC_VIP_QUIRKS, DEFAULT_QUIRKS, Chip8CPU, Chip8Error, CycleDriver, Instruction, Op


PIXEL_SCALE = 10
TRACE_TAIL = 40


# =============================================================================
# Example Programs
# =============================================================================

EXAMPLE_PROGRAMS = {
    "Hex digits": [
        Instruction(Op.LOAD_BYTE, x=0, kk=0),            # 0x200 digit = 0
        Instruction(Op.LOAD_BYTE, x=1, kk=0),            # 0x202 x = 0
        Instruction(Op.LOAD_BYTE, x=2, kk=0),            # 0x204 y = 0
        Instruction(Op.LOAD_SPRITE, x=0),                # 0x206 I = glyph(digit)
        Instruction(Op.DRAW, x=1, y=2, n=5),             # 0x208
        Instruction(Op.ADD_BYTE, x=0, kk=1),             # 0x20A digit += 1
        Instruction(Op.ADD_BYTE, x=1, kk=4),             # 0x20C x += 4
        Instruction(Op.SKIP_IF_EQUALS_BYTE, x=0, kk=16),  # 0x20E
        Instruction(Op.JUMP, nnn=0x206),                 # 0x210
        Instruction(Op.JUMP, nnn=0x212),                 # 0x212 done
    ],

    "BCD 234": [
        Instruction(Op.LOAD_BYTE, x=3, kk=234),          # 0x200
        Instruction(Op.LOAD_INDEX, nnn=0x300),           # 0x202
        Instruction(Op.STORE_BCD, x=3),                  # 0x204 [I..I+2] = 2, 3, 4
        Instruction(Op.LOAD_REGISTERS, x=2),             # 0x206 V0..V2 = digits
        Instruction(Op.LOAD_BYTE, x=4, kk=20),           # 0x208 x
        Instruction(Op.LOAD_BYTE, x=5, kk=12),           # 0x20A y
        Instruction(Op.LOAD_SPRITE, x=0),                # 0x20C
        Instruction(Op.DRAW, x=4, y=5, n=5),             # 0x20E
        Instruction(Op.ADD_BYTE, x=4, kk=6),             # 0x210
        Instruction(Op.LOAD_SPRITE, x=1),                # 0x212
        Instruction(Op.DRAW, x=4, y=5, n=5),             # 0x214
        Instruction(Op.ADD_BYTE, x=4, kk=6),             # 0x216
        Instruction(Op.LOAD_SPRITE, x=2),                # 0x218
        Instruction(Op.DRAW, x=4, y=5, n=5),             # 0x21A
        Instruction(Op.JUMP, nnn=0x21C),                 # 0x21C done
    ],

    "Random glyphs": [
        Instruction(Op.RANDOM_WITH_MASK, x=0, kk=0x0F),  # 0x200 digit
        Instruction(Op.RANDOM_WITH_MASK, x=1, kk=0x3F),  # 0x202 x
        Instruction(Op.RANDOM_WITH_MASK, x=2, kk=0x1F),  # 0x204 y
        Instruction(Op.LOAD_SPRITE, x=0),                # 0x206
        Instruction(Op.DRAW, x=1, y=2, n=5),             # 0x208
        Instruction(Op.JUMP, nnn=0x200),                 # 0x20A
    ],
}


# =============================================================================
# Execution Functions
# =============================================================================

def display_image(cpu: Chip8CPU) -> np.ndarray:
    """Upscaled grayscale image of the CPU's frame buffer."""
    pixels = np.array(cpu.display_rows(), dtype=np.uint8) * 255
    return np.kron(pixels, np.ones((PIXEL_SCALE, PIXEL_SCALE), dtype=np.uint8))


def run_program(example: str, rom_file, frames: int, ips: int, vip_quirks: bool, seed: Optional[float]) -> tuple:
    """Run a ROM for a number of frames and return results.

    Args:
        example: Name of a built-in program (used when no ROM is uploaded)
        rom_file: Uploaded ROM bytes, or None
        frames: Number of 60 Hz frames to run
        ips: Instructions per second
        vip_quirks: Use COSMAC VIP semantics
        seed: RND seed (None when the field is cleared: unseeded)

    Returns:
        Tuple of (display_image, summary_text, registers_text, trace_text)
    """
    blank = np.zeros((32 * PIXEL_SCALE, 64 * PIXEL_SCALE), dtype=np.uint8)

    cpu = Chip8CPU(
        quirks=COSMAC_VIP_QUIRKS if vip_quirks else DEFAULT_QUIRKS,
        seed=int(seed) if seed is not None else None,
        trace_limit=TRACE_TAIL,
    )

    try:
        if rom_file is not None:
            cpu.load_rom(bytes(rom_file))
            source = "uploaded ROM"
        else:
            cpu.load_instructions(EXAMPLE_PROGRAMS[example])
            source = example
    except Chip8Error as e:
        return blank, f"Error: {e}", "", ""

    driver = CycleDriver(cpu, instructions_per_second=int(ips))
    try:
        driver.run_frames(int(frames))
        error_msg = None
    except Chip8Error as e:
        error_msg = str(e)

    # Format summary
    summary = cpu.get_summary()
    summary_lines = [
        "EXECUTION SUMMARY",
        "=" * 40,
        f"Program: {source}",
        f"Frames: {driver.frames}",
        f"Cycles: {summary['cycles']}",
        f"Halted: {'Yes' if summary['halted'] else 'No'}",
        f"Waiting for key: {'Yes' if summary['waiting'] else 'No'}",
        f"Lit pixels: {summary['lit_pixels']}",
    ]
    if error_msg:
        summary_lines.append(f"\nFatal: {error_msg}")
    summary_text = "\n".join(summary_lines)

    # Format registers
    reg_lines = [
        "FINAL REGISTERS",
        "=" * 30,
    ]
    for reg, value in summary["registers"].items():
        marker = " *" if value != 0 else ""
        reg_lines.append(f"  {reg:>2}: 0x{value:03X}{marker}")
    reg_lines.append("")
    reg_lines.append(f"  PC: 0x{summary['pc']:03X}  SP: {summary['sp']}")
    reg_lines.append(f"  DT: {summary['delay_timer']}  ST: {summary['sound_timer']}")
    registers_text = "\n".join(reg_lines)

    # Format trace tail
    trace_lines = [
        f"LAST {TRACE_TAIL} CYCLES",
        "=" * 60,
    ]
    for entry in cpu.trace[-TRACE_TAIL:]:
        opcode = f"{entry.opcode:04X}" if entry.opcode is not None else "----"
        line = f"{entry.cycle:>7}  0x{entry.address:03X}: {opcode}  {entry.instruction or ''}"
        if entry.error:
            line += f"  ! {entry.error}"
        trace_lines.append(line)
    trace_text = "\n".join(trace_lines)

    return display_image(cpu), summary_text, registers_text, trace_text


# =============================================================================
# Gradio Interface
# =============================================================================

def create_demo():
    """Create and return the Gradio demo interface."""

    with gr.Blocks(title="CHIP-8 CPU Demo", theme=gr.themes.Soft()) as demo:
        gr.Markdown("""
        # CHIP-8 CPU

        A CHIP-8 interpreter core: fetch 16-bit opcodes from a 4 KiB memory image,
        decode them into the standard instruction set and execute them against
        16 registers, a call stack, two timers and a 64x32 XOR display.

        **Pipeline**: `fetch -> decode -> registry -> execute -> state`
        """)

        with gr.Row():
            with gr.Column(scale=2):
                gr.Markdown("### Program")

                example_dropdown = gr.Dropdown(
                    choices=list(EXAMPLE_PROGRAMS.keys()),
                    value="Hex digits",
                    label="Built-in Example"
                )
                rom_upload = gr.File(
                    label="Or upload a ROM (.ch8)",
                    type="binary"
                )

                gr.Markdown("### Settings")

                frames = gr.Slider(
                    minimum=1,
                    maximum=3600,
                    value=60,
                    step=1,
                    label="Frames (60 per second)"
                )
                ips = gr.Slider(
                    minimum=60,
                    maximum=5000,
                    value=700,
                    step=10,
                    label="Instructions per Second"
                )
                with gr.Row():
                    vip_quirks = gr.Checkbox(
                        value=False,
                        label="COSMAC VIP quirks"
                    )
                    seed = gr.Number(
                        value=0,
                        precision=0,
                        label="RND Seed"
                    )

                run_button = gr.Button("Run", variant="primary")

            with gr.Column(scale=3):
                screen = gr.Image(
                    label="Display",
                    type="numpy",
                    interactive=False
                )
                with gr.Row():
                    summary_output = gr.Textbox(
                        label="Summary",
                        lines=10,
                        interactive=False
                    )
                    registers_output = gr.Textbox(
                        label="Final Registers",
                        lines=10,
                        interactive=False
                    )
                trace_output = gr.Textbox(
                    label="Execution Trace",
                    lines=20,
                    interactive=False
                )

        with gr.Accordion("Instruction Set", open=False):
            gr.Markdown("""
            | Opcode | Instruction | Effect |
            |--------|-------------|--------|
            | `00E0` | `CLS` | Clear display |
            | `00EE` | `RET` | Return from subroutine |
            | `1nnn` | `JP nnn` | Jump |
            | `2nnn` | `CALL nnn` | Call subroutine |
            | `3xkk` / `4xkk` | `SE` / `SNE Vx, kk` | Skip if equal / not equal |
            | `5xy0` / `9xy0` | `SE` / `SNE Vx, Vy` | Skip if registers equal / not equal |
            | `6xkk` / `7xkk` | `LD` / `ADD Vx, kk` | Load / add byte |
            | `8xy0`-`8xy7`, `8xyE` | `LD OR AND XOR ADD SUB SHR SUBN SHL` | Register ALU, VF = carry/borrow/bit |
            | `Annn` / `Bnnn` | `LD I, nnn` / `JP V0, nnn` | Index load / jump with offset |
            | `Cxkk` | `RND Vx, kk` | Random byte AND kk |
            | `Dxyn` | `DRW Vx, Vy, n` | XOR sprite, VF = collision |
            | `Ex9E` / `ExA1` | `SKP` / `SKNP Vx` | Skip on key state |
            | `Fx07 Fx0A Fx15 Fx18` | timers, key wait | |
            | `Fx1E Fx29 Fx33 Fx55 Fx65` | index, font, BCD, bulk store/load | |
            """)

        run_button.click(
            fn=run_program,
            inputs=[example_dropdown, rom_upload, frames, ips, vip_quirks, seed],
            outputs=[screen, summary_output, registers_output, trace_output]
        )

    return demo


# =============================================================================
# Main
# =============================================================================

if __name__ == "__main__":
    demo = create_demo()
    demo.launch(
        share=False,
        server_name="0.0.0.0",
        server_port=7861,
        show_error=True
    )
