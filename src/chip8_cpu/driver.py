"""CycleDriver: paces a Chip8CPU in frames.

One frame is 1/timer_hz seconds: a fixed batch of cycle ticks followed by
one clock tick of the timers. Input, rendering and timers only touch the
state between instructions, all on the driver's thread, so no locking is
needed.

Fx0A waits do not stall the frame loop: the waiting instruction is simply
re-executed every cycle, and timers keep counting down meanwhile.
"""

import logging
import time
from typing import Callable, Optional

from .cpu import Chip8CPU


logger = logging.getLogger(__name__)

DEFAULT_INSTRUCTIONS_PER_SECOND = 700
TIMER_HZ = 60


class CycleDriver:
    """Frame-based scheduler for a Chip8CPU.

    The driver runs indefinitely, so give the CPU a trace_limit or
    trace_enabled=False; an unbounded trace keeps two snapshots per
    instruction.

    Attributes:
        cpu: The CPU being driven
        instructions_per_frame: Cycle ticks executed per timer tick
        frame_duration: Seconds per frame when running in real time
        frames: Number of frames completed
    """

    def __init__(
        self,
        cpu: Chip8CPU,
        instructions_per_second: int = DEFAULT_INSTRUCTIONS_PER_SECOND,
        timer_hz: int = TIMER_HZ,
        clock: Callable[[], float] = time.perf_counter,
        sleep: Callable[[float], None] = time.sleep,
        on_frame: Optional[Callable[[Chip8CPU], None]] = None
    ):
        """Initialize the driver.

        Args:
            cpu: CPU with a ROM loaded
            instructions_per_second: Nominal instruction rate
            timer_hz: Timer tick rate (60 on real hardware)
            clock: Monotonic time source in seconds
            sleep: Sleep function used to hold the frame rate
            on_frame: Called with the CPU after every frame (renderer/input hook)
        """
        if instructions_per_second <= 0 or timer_hz <= 0:
            raise ValueError("instructions_per_second and timer_hz must be positive")
        self.cpu = cpu
        self.instructions_per_frame = max(1, instructions_per_second // timer_hz)
        self.frame_duration = 1.0 / timer_hz
        self.clock = clock
        self.sleep = sleep
        self.on_frame = on_frame
        self.frames = 0

        if cpu.trace_enabled and cpu.trace_limit is None:
            logger.warning("Driving a CPU with an unbounded trace; pass trace_limit or trace_enabled=False")

    def run_frame(self) -> bool:
        """Run one frame: a batch of cycle ticks, then one timer tick.

        Returns:
            False if the CPU is halted and nothing ran, True otherwise

        Raises:
            Chip8Error: A fatal fault from the CPU (which is then halted)
        """
        if self.cpu.is_halted():
            return False

        for _ in range(self.instructions_per_frame):
            if self.cpu.is_halted():
                break
            self.cpu.step()

        self.cpu.tick_timers()
        self.frames += 1
        if self.on_frame is not None:
            self.on_frame(self.cpu)
        return True

    def run_frames(self, count: int, realtime: bool = False) -> int:
        """Run up to count frames.

        Args:
            count: Number of frames to run
            realtime: Sleep between frames to hold timer_hz

        Returns:
            Number of frames actually run (fewer if the CPU halted)
        """
        ran = 0
        deadline = self.clock()
        for _ in range(count):
            if not self.run_frame():
                break
            ran += 1
            if realtime:
                deadline += self.frame_duration
                remaining = deadline - self.clock()
                if remaining > 0:
                    self.sleep(remaining)
                else:
                    # Running behind; don't try to catch up with a burst
                    deadline = self.clock()
        logger.debug("Ran %d frames (%d total)", ran, self.frames)
        return ran
