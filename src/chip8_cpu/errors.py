"""Exception hierarchy for the CHIP-8 CPU.

Every fault raised by the package derives from Chip8Error so a driver can
catch the whole family in one place. None of these are transient: they are
logic faults in the program or the emulator, and nothing retries them.

Hierarchy:
    Chip8Error
        DecodeError
            InvalidOpcode
        MemoryAccessError
            AddressOutOfRange
            RomTooLarge
        StackError
            StackOverflow
            StackUnderflow
        CPUHalted
        CycleLimitExceeded
"""


class Chip8Error(Exception):
    """Base class for all CHIP-8 emulation faults."""


class DecodeError(Chip8Error):
    """A 16-bit word could not be decoded into an instruction."""


class InvalidOpcode(DecodeError):
    """Opcode does not match any entry of the instruction table.

    Attributes:
        opcode: The raw 16-bit value that failed to decode
    """

    def __init__(self, opcode: int):
        self.opcode = opcode
        if opcode >= 0:
            super().__init__(f"Invalid opcode: 0x{opcode:04X}")
        else:
            super().__init__(f"Invalid opcode: {opcode}")


class MemoryAccessError(Chip8Error):
    """Memory could not be read or written."""


class AddressOutOfRange(MemoryAccessError):
    """Access outside the 4 KiB address space.

    Attributes:
        address: First address of the failed access
        length: Number of bytes the access needed
    """

    def __init__(self, address: int, length: int = 1):
        self.address = address
        self.length = length
        if length == 1:
            message = f"Address out of range: 0x{address:X}"
        else:
            message = f"Address range out of bounds: 0x{address:X}..0x{address + length - 1:X}"
        super().__init__(message)


class RomTooLarge(MemoryAccessError):
    """ROM image does not fit between the load address and the end of memory.

    Attributes:
        size: Size of the rejected image in bytes
        limit: Largest image that fits
    """

    def __init__(self, size: int, limit: int):
        self.size = size
        self.limit = limit
        super().__init__(f"ROM is {size} bytes, at most {limit} bytes fit")


class StackError(Chip8Error):
    """Call stack discipline was violated."""


class StackOverflow(StackError):
    """CALL with all 16 stack slots in use."""

    def __init__(self, depth: int, pc: int):
        self.depth = depth
        self.pc = pc
        super().__init__(f"Stack overflow at PC=0x{pc:03X} (depth {depth})")


class StackUnderflow(StackError):
    """RET with an empty stack."""

    def __init__(self, pc: int):
        self.pc = pc
        super().__init__(f"Stack underflow at PC=0x{pc:03X}")


class CPUHalted(Chip8Error):
    """Step requested on a CPU that has already halted."""

    def __init__(self):
        super().__init__("CPU is halted")


class CycleLimitExceeded(Chip8Error, RuntimeError):
    """run() reached its cycle budget without the CPU halting."""

    def __init__(self, limit: int):
        self.limit = limit
        super().__init__(f"Max cycles ({limit}) exceeded")
