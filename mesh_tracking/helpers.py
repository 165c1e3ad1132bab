# helpers.py
"""Small utility classes that don't fit elsewhere."""
from typing import Optional


class FpsMeter:
    """
    Exponential moving average of the frame rate.
    The first interval seeds the average directly.
    """

    def __init__(self, alpha: float = 0.05):
        self.alpha = alpha
        self.fps: Optional[float] = None
        self._prev_time: Optional[float] = None

    def tick(self, now: float) -> Optional[float]:
        """Register a frame finished at ``now`` (seconds); returns the smoothed FPS."""
        prev, self._prev_time = self._prev_time, now
        if prev is None or now <= prev:
            return self.fps

        curr = 1.0 / (now - prev)
        if self.fps is None:
            self.fps = curr
        else:
            self.fps = self.alpha * curr + (1.0 - self.alpha) * self.fps
        return self.fps
