"""
Frame Collector - main document plus reachable same-origin iframes.
"""

from typing import Any, List, Tuple

from ..diagnostics import get_logger

logger = get_logger(__name__)


async def collect_frames(page, include_iframes: bool = True) -> List[Tuple[str, Any]]:
    """
    Enumerate frames to analyze.

    Returns ``[(frame_id, frame), ...]`` with the main frame first as
    ``"main"``; reachable children follow as ``f1``, ``f2``, ... in
    discovery order. A child whose no-op evaluation throws is cross-origin
    (or detached) and is skipped silently.
    """
    main = page.main_frame
    frames: List[Tuple[str, Any]] = [("main", main)]
    if not include_iframes:
        return frames
    for frame in page.frames:
        if frame is main:
            continue
        try:
            await frame.evaluate("() => 1")
        except Exception:
            continue
        frames.append((f"f{len(frames)}", frame))
    logger.debug(f"Collected {len(frames)} frame(s)")
    return frames
