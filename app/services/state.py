"""Process-wide pipeline state, built once at startup."""

import asyncio
import time
from dataclasses import dataclass
from typing import Callable, Optional

Clock = Callable[[], float]


def now_millis(clock: Clock = time.time) -> int:
    return int(clock() * 1000)


@dataclass
class PipelineState:
    """Mutable state shared by the fetch coordinator and the sync worker."""

    # Epoch seconds when the last fetch cycle started
    last_fetch_at: Optional[float] = None
    sync_task: Optional[asyncio.Task] = None
