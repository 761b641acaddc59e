"""Memory: the flat 4 KiB address space of the CHIP-8.

Layout:
    0x000-0x1FF  Reserved for the interpreter. The hexadecimal font lives
                 at FONT_START inside this area.
    0x200-0xFFF  Program space. ROM images are copied to PROGRAM_START.

Instructions are 2 bytes long and stored big-endian (most significant
byte first).
"""

import logging
from typing import Iterable

from .errors import AddressOutOfRange, RomTooLarge


logger = logging.getLogger(__name__)

MEMORY_SIZE = 4096
PROGRAM_START = 0x200
MAX_ROM_SIZE = MEMORY_SIZE - PROGRAM_START

FONT_START = 0x050
FONT_GLYPH_SIZE = 5
FONT_DATA = bytes([
    0xF0, 0x90, 0x90, 0x90, 0xF0,  # 0
    0x20, 0x60, 0x20, 0x20, 0x70,  # 1
    0xF0, 0x10, 0xF0, 0x80, 0xF0,  # 2
    0xF0, 0x10, 0xF0, 0x10, 0xF0,  # 3
    0x90, 0x90, 0xF0, 0x10, 0x10,  # 4
    0xF0, 0x80, 0xF0, 0x10, 0xF0,  # 5
    0xF0, 0x80, 0xF0, 0x90, 0xF0,  # 6
    0xF0, 0x10, 0x20, 0x40, 0x40,  # 7
    0xF0, 0x90, 0xF0, 0x90, 0xF0,  # 8
    0xF0, 0x90, 0xF0, 0x10, 0xF0,  # 9
    0xF0, 0x90, 0xF0, 0x90, 0x90,  # A
    0xE0, 0x90, 0xE0, 0x90, 0xE0,  # B
    0xF0, 0x80, 0x80, 0x80, 0xF0,  # C
    0xE0, 0x90, 0x90, 0x90, 0xE0,  # D
    0xF0, 0x80, 0xF0, 0x80, 0xF0,  # E
    0xF0, 0x80, 0xF0, 0x80, 0x80,  # F
])


def font_address(digit: int) -> int:
    """Address of the built-in glyph for the low nibble of digit."""
    return FONT_START + FONT_GLYPH_SIZE * (digit & 0xF)


class Memory:
    """Bounds-checked 4096-byte memory image.

    The font table is written into low memory on construction; the rest
    of the image starts zeroed.
    """

    def __init__(self):
        self._data = bytearray(MEMORY_SIZE)
        self._data[FONT_START:FONT_START + len(FONT_DATA)] = FONT_DATA

    def __len__(self) -> int:
        return MEMORY_SIZE

    def load(self, rom: bytes) -> None:
        """Copy a ROM image into memory at PROGRAM_START.

        Bytes past the end of the image keep their previous value.

        Args:
            rom: Raw ROM bytes

        Raises:
            RomTooLarge: If the image is larger than MAX_ROM_SIZE
        """
        rom = bytes(rom)
        if len(rom) > MAX_ROM_SIZE:
            raise RomTooLarge(len(rom), MAX_ROM_SIZE)
        self._data[PROGRAM_START:PROGRAM_START + len(rom)] = rom
        logger.info("Loaded %d byte ROM at 0x%03X", len(rom), PROGRAM_START)

    def fetch_word(self, address: int) -> int:
        """Read the big-endian 16-bit word at address and address + 1.

        Raises:
            AddressOutOfRange: If either byte lies outside memory
        """
        self._check(address, 2)
        return (self._data[address] << 8) | self._data[address + 1]

    def read_byte(self, address: int) -> int:
        self._check(address, 1)
        return self._data[address]

    def write_byte(self, address: int, value: int) -> None:
        self._check(address, 1)
        self._data[address] = value & 0xFF

    def read_block(self, address: int, length: int) -> bytes:
        """Read length bytes starting at address.

        The whole range is checked before anything is read.
        """
        self._check(address, length)
        return bytes(self._data[address:address + length])

    def write_block(self, address: int, data: Iterable[int]) -> None:
        """Write data starting at address.

        The whole range is checked before anything is written, so a failing
        write leaves memory untouched.
        """
        data = bytes(value & 0xFF for value in data)
        self._check(address, len(data))
        self._data[address:address + len(data)] = data

    def dump(self) -> str:
        """Hex view of the full image, 16 bytes per row with a row offset."""
        lines = []
        for offset in range(0, MEMORY_SIZE, 16):
            row = " ".join(f"{b:02x}" for b in self._data[offset:offset + 16])
            lines.append(f"{offset:04x}: {row}")
        return "\n".join(lines)

    def _check(self, address: int, length: int) -> None:
        if address < 0 or length < 0 or address + length > MEMORY_SIZE:
            raise AddressOutOfRange(address, max(length, 1))
