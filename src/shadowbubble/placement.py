"""Cursor-aware overlay placement.

``compute_position`` is pure geometry. ``BubblePlacer`` wraps it for one
overlay and freezes the computed position for the whole visibility cycle so
the bubble does not follow the cursor while the user reads it.
"""

import logging

from shadowbubble.models import PlacementStrategy, Point, Position, PreferredSide, Size

logger = logging.getLogger(__name__)


def _clamp_axis(value: float, size: int, extent: int, margin: int) -> int:
    """Clamp one axis to ``[margin, extent - size - margin]``.

    When the overlay is too large to keep the margin, fall back to keeping it
    on-screen (``[0, extent - size]``), and pin to 0 if it cannot fit at all.
    """
    lo, hi = margin, extent - size - margin
    if hi < lo:
        lo, hi = 0, max(0, extent - size)
    return int(round(max(lo, min(value, hi))))


def clamp_position(x: float, y: float, overlay: Size, margin: int, screen: Size) -> Position:
    """Clamp a top-left corner so the overlay stays on screen with margin clearance."""
    return Position(
        x=_clamp_axis(x, overlay.width, screen.width, margin),
        y=_clamp_axis(y, overlay.height, screen.height, margin),
    )


def _fits_right(cursor: Point, overlay: Size, margin: int, screen: Size) -> bool:
    return cursor.x + margin + overlay.width <= screen.width


def _fits_left(cursor: Point, overlay: Size, margin: int) -> bool:
    return cursor.x - margin - overlay.width >= 0


def _near_cursor(
    cursor: Point, overlay: Size, margin: int, screen: Size, preferred_side: PreferredSide
) -> tuple[float, float]:
    if cursor.y + margin + overlay.height > screen.height:
        y = max(0, cursor.y - overlay.height - margin)
    else:
        y = cursor.y + margin

    right_x = cursor.x + margin
    left_x = cursor.x - margin - overlay.width
    fits_right = _fits_right(cursor, overlay, margin, screen)
    fits_left = _fits_left(cursor, overlay, margin)

    if preferred_side is PreferredSide.RIGHT:
        if fits_right:
            x = right_x
        elif fits_left:
            x = left_x
        else:
            x = max(0, (screen.width - overlay.width) // 2)
    else:
        if fits_left:
            x = left_x
        elif fits_right:
            x = right_x
        else:
            x = max(0, (screen.width - overlay.width) // 2)
    return x, y


def _dock_near_cursor(cursor: Point, overlay: Size, margin: int, screen: Size) -> tuple[float, float]:
    x = cursor.x + margin
    y = cursor.y - overlay.height / 2
    if x + overlay.width > screen.width - margin:
        x = cursor.x - overlay.width - margin
    return x, y


def _corner(overlay: Size, margin: int, screen: Size) -> tuple[float, float]:
    return screen.width - overlay.width - margin, screen.height - overlay.height - margin


def compute_position(
    cursor: Point | None,
    overlay: Size,
    margin: int,
    strategy: PlacementStrategy,
    screen: Size,
    preferred_side: PreferredSide = PreferredSide.RIGHT,
) -> Position:
    """Compute where to put an overlay of ``overlay`` size on ``screen``.

    Args:
        cursor: Current cursor location; ignored by corner-snap. Strategies
            that need a cursor fall back to corner-snap when it is None.
        overlay: Overlay width and height.
        margin: Clearance from the cursor and from screen edges.
        strategy: One of ``PlacementStrategy``.
        screen: Working screen area.
        preferred_side: Side of the cursor tried first by near-cursor.

    Returns:
        Integer top-left Position. The overlay rectangle always lies inside
        the screen, with ``margin`` clearance wherever there is room for it.
    """
    if margin < 0:
        raise ValueError(f"margin must be >= 0, got {margin}")

    if strategy is PlacementStrategy.CORNER_SNAP or cursor is None:
        x, y = _corner(overlay, margin, screen)
    elif strategy is PlacementStrategy.NEAR_CURSOR:
        x, y = _near_cursor(cursor, overlay, margin, screen, preferred_side)
    elif strategy is PlacementStrategy.DOCK_NEAR_CURSOR:
        x, y = _dock_near_cursor(cursor, overlay, margin, screen)
    else:
        raise ValueError(f"Unknown placement strategy: {strategy}")

    return clamp_position(x, y, overlay, margin, screen)


class BubblePlacer:
    """Positions one overlay per visibility cycle.

    The cursor is tracked continuously but the position is only computed on
    ``show()`` (or an explicit ``reposition()``) and then stays frozen until
    ``hide()``.
    """

    def __init__(
        self,
        overlay: Size,
        screen: Size,
        margin: int = 24,
        strategy: PlacementStrategy = PlacementStrategy.NEAR_CURSOR,
        preferred_side: PreferredSide = PreferredSide.RIGHT,
    ):
        self.overlay = overlay
        self.screen = screen
        self.margin = margin
        self.strategy = strategy
        self.preferred_side = preferred_side
        self._cursor = Point(0, 0)
        self._position = Position(0, 0)
        self._positioned = False
        self._visible = False

    @property
    def position(self) -> Position:
        return self._position

    @property
    def is_visible(self) -> bool:
        return self._visible

    @property
    def last_cursor(self) -> Point:
        return self._cursor

    def track_cursor(self, cursor: Point) -> None:
        self._cursor = cursor

    def _compute(self) -> Position:
        return compute_position(
            self._cursor,
            self.overlay,
            self.margin,
            self.strategy,
            self.screen,
            self.preferred_side,
        )

    def show(self, initial: Position | None = None) -> Position:
        """Make the overlay visible, computing its position if not yet frozen."""
        if not self._positioned:
            if initial is not None:
                self._position = clamp_position(
                    initial.x, initial.y, self.overlay, self.margin, self.screen
                )
            else:
                self._position = self._compute()
            self._positioned = True
            logger.debug("Overlay positioned at (%d, %d)", self._position.x, self._position.y)
        self._visible = True
        return self._position

    def hide(self) -> None:
        self._visible = False
        self._positioned = False

    def reposition(self) -> Position | None:
        """Recompute from the latest cursor. No-op while hidden."""
        if not self._visible:
            return None
        self._position = self._compute()
        return self._position
