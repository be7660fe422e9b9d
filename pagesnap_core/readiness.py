"""
Page readiness heuristics.

A page is ready once network traffic has gone soft-idle (at most
``max_inflight`` non-document requests for ``idle_ms``) and the body has
elements and visible text. Giving up is a warning, not a failure: the
caller proceeds with whatever has rendered.
"""

import asyncio
from typing import Any, Dict, Optional

from .diagnostics import get_logger
from .exceptions import ReadinessTimeout

logger = get_logger(__name__)

DENSITY_PROBE_JS = """
() => {
    const body = document.body;
    if (!body) return { nodes: 0, chars: 0 };
    return {
        nodes: body.getElementsByTagName('*').length,
        chars: (body.innerText || '').length
    };
}
"""


async def probe_density(page) -> Optional[Dict[str, Any]]:
    try:
        return await page.evaluate(DENSITY_PROBE_JS)
    except Exception as e:
        # navigation in progress: execution context destroyed
        logger.debug(f"Density probe failed: {e}")
        return None


async def wait_for_ready(
    page,
    monitor=None,
    timeout_ms: int = 8000,
    idle_ms: int = 500,
    max_inflight: int = 2,
    check_interval_ms: int = 200,
    strict: bool = False,
) -> bool:
    """
    Poll soft idle + density until ready or ``timeout_ms``.

    Args:
        page: Playwright page object
        monitor: RequestMonitor of the session (idle check skipped when None)
        timeout_ms: Maximum wait time
        idle_ms: How long in-flight requests must stay at or under ``max_inflight``
        strict: Raise ReadinessTimeout instead of returning False

    Returns:
        True if ready, False on timeout
    """
    loop = asyncio.get_event_loop()
    start = loop.time()
    interval = check_interval_ms / 1000
    quiet_since: Optional[float] = None

    while (loop.time() - start) * 1000 < timeout_ms:
        now = loop.time()
        idle = True
        if monitor is not None:
            if monitor.inflight <= max_inflight:
                quiet_since = quiet_since if quiet_since is not None else now
                idle = (now - quiet_since) * 1000 >= idle_ms
            else:
                quiet_since = None
                idle = False

        if idle:
            stats = await probe_density(page)
            if stats and stats.get("nodes", 0) > 0 and stats.get("chars", 0) > 0:
                logger.debug(f"Page ready after {int((loop.time() - start) * 1000)}ms ({stats})")
                return True

        await asyncio.sleep(interval)

    inflight = monitor.inflight if monitor is not None else "n/a"
    if strict:
        raise ReadinessTimeout(f"Page not ready after {timeout_ms}ms (inflight={inflight})")
    logger.warning(f"Page not ready after {timeout_ms}ms (inflight={inflight}); continuing")
    return False
