"""Tests for the gradio demo's run handler."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))
sys.path.insert(0, str(Path(__file__).parent.parent / "demo"))

import pytest

pytest.importorskip("gradio")
import gradio_app  # noqa: E402


class TestRunProgram:
    """Test run_program output for built-in examples."""

    def test_bcd_example(self):
        image, summary, registers, trace = gradio_app.run_program("BCD 234", None, 2, 700, False, 0)
        assert image.shape == (32 * gradio_app.PIXEL_SCALE, 64 * gradio_app.PIXEL_SCALE)
        assert "Program: BCD 234" in summary
        assert "Fatal" not in summary
        assert "V0: 0x002" in registers

    def test_cleared_seed_field(self):
        """A cleared Number field arrives as None and runs unseeded."""
        image, summary, registers, trace = gradio_app.run_program("Random glyphs", None, 1, 700, False, None)
        assert "Program: Random glyphs" in summary
        assert "Fatal" not in summary
        assert image.shape == (32 * gradio_app.PIXEL_SCALE, 64 * gradio_app.PIXEL_SCALE)
