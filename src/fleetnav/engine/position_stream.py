# position_stream.py
# Abstract position source for real-mode sessions.
# Device location mechanics live outside the engine; this is only the seam.

import logging
from typing import Callable, Iterable, List, Optional, Protocol

from .models import PositionSample

logger = logging.getLogger(__name__)

SampleCallback = Callable[[PositionSample], None]


class PositionStream(Protocol):
    def subscribe(self, callback: SampleCallback) -> Callable[[], None]:
        """Start delivering samples to callback. Returns an unsubscribe callable."""
        ...


class PushPositionStream:
    """
    Position stream fed by the host (GPS bridge, replay file, console input).

    Samples pushed while nobody is subscribed are dropped.
    """

    def __init__(self) -> None:
        self._callback: Optional[SampleCallback] = None
        self.dropped = 0

    @property
    def is_subscribed(self) -> bool:
        return self._callback is not None

    def subscribe(self, callback: SampleCallback) -> Callable[[], None]:
        if self._callback is not None:
            raise RuntimeError("PushPositionStream already has a subscriber.")
        self._callback = callback

        def unsubscribe() -> None:
            if self._callback is callback:
                self._callback = None

        return unsubscribe

    def push(self, sample: PositionSample) -> bool:
        """Deliver one sample. Returns False when it was dropped."""
        if self._callback is None:
            self.dropped += 1
            logger.debug(f"Dropped position sample ({sample.lat}, {sample.lon}): no subscriber")
            return False
        self._callback(sample)
        return True

    def replay(self, samples: Iterable[PositionSample]) -> List[bool]:
        return [self.push(s) for s in samples]
