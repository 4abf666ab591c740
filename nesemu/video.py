"""Video layer: an off-screen primary buffer blitted onto a driver-provided surface."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

# Colour index used to clear freshly created or initialised surfaces
CLEAR_COLOR = 0

Rgb = tuple[int, int, int]


class VideoError(Exception):
    """The video driver could not be initialised."""


@dataclass(eq=False)
class Bitmap:
    """An 8-bit indexed image; row ``y`` starts at ``y * pitch`` in ``data``."""

    width: int
    height: int
    pitch: int = 0
    data: bytearray | None = None

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"invalid bitmap size {self.width}x{self.height}")
        if not self.pitch:
            self.pitch = self.width
        if self.pitch < self.width:
            raise ValueError("pitch must not be smaller than width")
        size = self.pitch * self.height
        if self.data is None:
            self.data = bytearray(size)
        elif len(self.data) < size:
            raise ValueError("bitmap data is too small for its dimensions")

    def clear(self, color: int) -> None:
        """Fill the whole bitmap with one colour index."""
        self.data[:] = bytes((color & 0xFF,)) * len(self.data)


@dataclass
class Rect:
    """A rectangle on the primary buffer."""

    x: int
    y: int
    w: int
    h: int


@dataclass
class VideoDriver:
    """Callbacks a display back end supplies.

    ``init`` raises if the mode is not available. ``lock_write`` returns the
    surface to draw on. The optional hooks may be left as ``None``.
    ``custom_blit`` receives ``-1`` as the dirty count when a full redraw is needed.
    """

    name: str
    init: Callable[[int, int], None]
    lock_write: Callable[[], Bitmap]
    set_palette: Callable[[Sequence[Rgb]], None]
    shutdown: Callable[[], None] | None = None
    set_mode: Callable[[int, int], None] | None = None
    clear: Callable[[int], None] | None = None
    free_write: Callable[[int, Sequence[Rect] | None], None] | None = None
    custom_blit: Callable[[Bitmap, int, Sequence[Rect]], None] | None = None
    invalidate: bool = False


def _copy_rows(
    dest: Bitmap, dest_off: int, src: Bitmap, src_off: int, width: int, rows: int
) -> None:
    for _ in range(rows):
        dest.data[dest_off:dest_off + width] = src.data[src_off:src_off + width]
        src_off += src.pitch
        dest_off += dest.pitch


class Video:
    """Owns the primary buffer and pushes it to the driver's surface."""

    def __init__(self, driver: VideoDriver, width: int, height: int) -> None:
        self.driver: VideoDriver | None = None
        self.buffer: Bitmap | None = None
        self.screen: Bitmap | None = None

        try:
            driver.init(width, height)
        except Exception as exc:
            raise VideoError(
                f"video initialization failed for {driver.name} at {width}x{height}"
            ) from exc

        self.driver = driver
        self.screen = driver.lock_write()
        if driver.clear is not None:
            driver.clear(CLEAR_COLOR)
        else:
            self.screen.clear(CLEAR_COLOR)
        if driver.free_write is not None:
            driver.free_write(-1, None)

        logger.info(
            "video driver: %s at %dx%d", driver.name, self.screen.width, self.screen.height
        )

    def set_mode(self, width: int, height: int) -> None:
        """Create a fresh primary buffer of the resolution the machine wants."""
        self.buffer = None
        buffer = Bitmap(width, height)
        buffer.clear(CLEAR_COLOR)
        self.buffer = buffer

    def set_palette(self, palette: Sequence[Rgb]) -> None:
        """Hand a palette to the driver."""
        if self.driver is None:
            raise RuntimeError("video is shut down")
        self.driver.set_palette(palette)

    def _require_buffer(self) -> Bitmap:
        if self.buffer is None:
            raise RuntimeError("no video mode set")
        return self.buffer

    def blit(
        self,
        bitmap: Bitmap,
        src_x: int,
        src_y: int,
        dest_x: int,
        dest_y: int,
        width: int,
        height: int,
    ) -> None:
        """Copy a region of ``bitmap`` onto the primary buffer, clipped to both."""
        primary = self._require_buffer()

        if src_y >= bitmap.height:
            return
        if src_y + height > bitmap.height:
            height = bitmap.height - src_y
        if src_x >= bitmap.width:
            return
        if src_x + width > bitmap.width:
            width = bitmap.width - src_x

        if dest_y + height <= 0:
            return
        if dest_y < 0:
            height += dest_y
            src_y -= dest_y
            dest_y = 0
        if dest_y >= primary.height:
            return
        if dest_y + height > primary.height:
            height = primary.height - dest_y

        if dest_x + width <= 0:
            return
        if dest_x < 0:
            width += dest_x
            src_x -= dest_x
            dest_x = 0
        if dest_x >= primary.width:
            return
        if dest_x + width > primary.width:
            width = primary.width - dest_x

        if width <= 0 or height <= 0:
            return

        _copy_rows(
            primary,
            dest_y * primary.pitch + dest_x,
            bitmap,
            src_y * bitmap.pitch + src_x,
            width,
            height,
        )

    def _blit_screen(self, num_dirties: int, dirty_rects: Sequence[Rect]) -> None:
        driver = self.driver
        primary = self._require_buffer()
        screen = driver.lock_write()
        self.screen = screen

        if primary.height <= screen.height:
            src_y = 0
            blit_height = primary.height
            dest_y = (screen.height - blit_height) >> 1
        else:
            src_y = (primary.height - screen.height) >> 1
            blit_height = screen.height
            dest_y = 0

        if primary.width <= screen.width:
            src_x = 0
            blit_width = primary.width
            dest_x = (screen.width - blit_width) >> 1
        else:
            src_x = (primary.width - screen.width) >> 1
            blit_width = screen.width
            dest_x = 0

        if num_dirties == -1:
            _copy_rows(
                screen,
                dest_y * screen.pitch + dest_x,
                primary,
                src_y * primary.pitch + src_x,
                blit_width,
                blit_height,
            )
        else:
            for rect in dirty_rects[:num_dirties]:
                if blit_height <= 0:
                    break
                rows = min(rect.h, blit_height)
                _copy_rows(
                    screen,
                    (dest_y + rect.y) * screen.pitch + rect.x + dest_x,
                    primary,
                    (src_y + rect.y) * primary.pitch + rect.x + src_x,
                    rect.w,
                    rows,
                )
                blit_height -= rows

        if driver.free_write is not None:
            driver.free_write(num_dirties, dirty_rects)

    def flush(self) -> None:
        """Push the whole primary buffer to the display."""
        driver = self.driver
        if driver is None:
            raise RuntimeError("video is shut down")
        primary = self._require_buffer()

        if driver.invalidate:
            driver.invalidate = False
        num_dirties = -1
        dirty_rects: list[Rect] = []

        if driver.custom_blit is not None:
            driver.custom_blit(primary, num_dirties, dirty_rects)
        else:
            self._blit_screen(num_dirties, dirty_rects)

    def shutdown(self) -> None:
        """Drop the primary buffer and shut the driver down."""
        driver = self.driver
        if driver is None:
            return
        self.buffer = None
        if driver.shutdown is not None:
            driver.shutdown()
        self.driver = None