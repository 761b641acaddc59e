"""Display: the 64x32 monochrome frame buffer.

The executor is the only writer (CLS and DRW); renderers read it through
rows() or render().
"""

from typing import Iterable, Tuple


WIDTH = 64
HEIGHT = 32
SPRITE_WIDTH = 8


class Display:
    """XOR-blitted bit plane, one byte per pixel (0 or 1)."""

    def __init__(self, width: int = WIDTH, height: int = HEIGHT):
        self.width = width
        self.height = height
        self._pixels = bytearray(width * height)

    def clear(self) -> None:
        self._pixels = bytearray(self.width * self.height)

    def pixel(self, x: int, y: int) -> int:
        """Value (0 or 1) of the pixel at column x, row y."""
        if not (0 <= x < self.width and 0 <= y < self.height):
            raise IndexError(f"Pixel ({x}, {y}) outside {self.width}x{self.height} display")
        return self._pixels[y * self.width + x]

    def draw_sprite(self, x: int, y: int, rows: Iterable[int], wrap: bool = False) -> bool:
        """XOR an 8-pixel-wide sprite onto the display.

        The start position is taken modulo the display size. Pixels that run
        past the right or bottom edge are clipped, or wrapped around when
        wrap is set.

        Args:
            x: Column of the sprite's left edge
            y: Row of the sprite's top edge
            rows: One byte per sprite row, most significant bit leftmost
            wrap: Wrap overflowing pixels instead of clipping them

        Returns:
            True if any lit pixel was turned off (collision)
        """
        x0 = x % self.width
        y0 = y % self.height

        # Collect the target cells first so collision is known before any
        # pixel changes.
        targets = []
        for row_offset, bits in enumerate(rows):
            py = y0 + row_offset
            if py >= self.height:
                if not wrap:
                    break
                py %= self.height
            for bit in range(SPRITE_WIDTH):
                if not (bits >> (SPRITE_WIDTH - 1 - bit)) & 1:
                    continue
                px = x0 + bit
                if px >= self.width:
                    if not wrap:
                        break
                    px %= self.width
                targets.append(py * self.width + px)

        collision = any(self._pixels[i] for i in targets)
        for i in targets:
            self._pixels[i] ^= 1
        return collision

    def rows(self) -> Tuple[Tuple[int, ...], ...]:
        """Read-only copy of the frame buffer, one tuple per row."""
        return tuple(
            tuple(self._pixels[r * self.width:(r + 1) * self.width])
            for r in range(self.height)
        )

    def lit_count(self) -> int:
        return sum(self._pixels)

    def render(self, on: str = "#", off: str = ".") -> str:
        """Text rendering of the frame buffer, one line per row."""
        return "\n".join(
            "".join(on if p else off for p in row)
            for row in self.rows()
        )
