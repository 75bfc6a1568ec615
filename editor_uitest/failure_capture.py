"""
failure_capture.py - Buffered whole-screen screenshots with ordered flush

Screenshots are grabbed from the OS display (not the editor's own surface),
so they show whatever window is on top, including native dialogs. They are
held in memory and only written when flush() is called, typically once at
the end of a scenario and once more when a poll gives up.

On disk the frames of one case land in

    <artifact root>/images-<platform>/<category dir>/<case>_<HH_MM_SS_us>/

with their capture ordinal prepended to the file name, so a plain directory
listing replays the scenario in order.
"""

import asyncio
import io
import logging
import time
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from .config import Category, HarnessConfig
from .paths import prefix_filename
from .retry import Sleep

logger = logging.getLogger(__name__)

Grabber = Callable[[], bytes]

CASE_DIR_SUFFIX = "_%H_%M_%S_%f"


def grab_screen() -> bytes:
    """Grab every attached screen and return it as PNG bytes."""
    from PIL import ImageGrab

    image = ImageGrab.grab(all_screens=True)
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


@dataclass(frozen=True)
class CapturedFrame:
    """One buffered screenshot awaiting flush."""

    full_path: str
    data: bytes
    timestamp: float
    sequence: int

    @property
    def sort_key(self) -> Tuple[float, int]:
        return (self.timestamp, self.sequence)


class ScreenshotSession:
    """
    Collects screenshots for one scenario and persists them in order.

    Usage:
        session = ScreenshotSession(config, Category.CREATE)
        session.set_dir("create_project_by_command")
        await session.capture("select_template.png")
        ...
        session.flush()

    set_dir() is the only thing that empties the buffer; calling flush()
    twice for the same case writes the same frames twice.
    """

    def __init__(self, config: Optional[HarnessConfig] = None,
                 category: Category = Category.CREATE,
                 grabber: Optional[Grabber] = None,
                 clock: Callable[[], float] = time.time,
                 sleep: Sleep = asyncio.sleep):
        """
        Args:
            config: Harness configuration (artifact root, settle delay)
            category: Initial screenshot category
            grabber: Returns the encoded screen image; defaults to Pillow
            clock: Wall-clock source used to stamp frames
            sleep: Awaitable sleep used for the settle delay
        """
        self.config = config or HarnessConfig()
        self.category = Category(category)
        self._grabber = grabber or grab_screen
        self._clock = clock
        self._sleep = sleep
        self._current_dir = ""
        self._frames: List[CapturedFrame] = []
        self._sequence = 0

    def set_category(self, category: Category) -> None:
        """Select the category directory for subsequent captures."""
        self.category = Category(category)

    def set_dir(self, case_name: str, now: Optional[datetime] = None) -> str:
        """
        Start a new case: pick its directory and drop any buffered frames.

        Args:
            case_name: Human readable case name
            now: Start time to use for the suffix (defaults to now)

        Returns:
            The case directory name, e.g. "my_case_14_03_59_123456"
        """
        now = now or datetime.now()
        self._current_dir = case_name + now.strftime(CASE_DIR_SUFFIX)
        self._frames = []
        self._sequence = 0
        return self._current_dir

    def get_dir(self) -> str:
        """Category directory and case directory, joined with '/'."""
        return f"{self.category.directory}/{self._current_dir}"

    def case_directory(self) -> Path:
        return self.config.image_root / self.category.directory / self._current_dir

    @property
    def frames(self) -> Tuple[CapturedFrame, ...]:
        return tuple(self._frames)

    def __len__(self) -> int:
        return len(self._frames)

    async def capture(self, file_name: str) -> CapturedFrame:
        """
        Wait for rendering to settle, then grab the screen into the buffer.

        Nothing is written to disk here.

        Args:
            file_name: File name the frame gets (before the ordinal prefix)

        Returns:
            The buffered frame
        """
        await self._sleep(self.config.settle_delay)
        data = await asyncio.to_thread(self._grabber)
        frame = CapturedFrame(
            full_path=str(self.case_directory() / file_name),
            data=data,
            timestamp=self._clock(),
            sequence=self._sequence,
        )
        self._sequence += 1
        self._frames.append(frame)
        logger.debug("Captured %s (%d bytes)", file_name, len(data))
        return frame

    async def flush(self) -> List[Path]:
        """
        Write buffered frames, oldest first, with their ordinal prefixed.

        Returns:
            Paths written, in capture order; empty if nothing was buffered
        """
        if not self._frames:
            return []

        written = []
        ordered = sorted(self._frames, key=lambda f: f.sort_key)
        for ordinal, frame in enumerate(ordered):
            target = Path(prefix_filename(frame.full_path, ordinal))
            await asyncio.to_thread(_write_frame, target, frame.data)
            written.append(target)

        logger.info("Saved %d screenshot(s) to %s", len(written), written[0].parent)
        return written


def _write_frame(target: Path, data: bytes) -> None:
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(data)
