from __future__ import annotations

from typing import Optional, Protocol

from tqdm import tqdm


class ProgressReporter(Protocol):
    """Receives the fraction of the time window covered so far."""

    def report(self, fraction_done: float) -> None: ...

    def close(self) -> None: ...


class NullProgress:
    """Progress reporter that discards updates."""

    def report(self, fraction_done: float) -> None:
        pass

    def close(self) -> None:
        pass


class TqdmProgress:
    """Terminal progress bar over the window span, in percent."""

    def __init__(self, desc: str = "Searching", bar: Optional[tqdm] = None):
        self.bar = bar or tqdm(total=100, desc=desc, unit="%", bar_format="{l_bar}{bar}| {n:.1f}/{total:.0f}%")
        self.shown = 0.0

    def report(self, fraction_done: float) -> None:
        target = max(0.0, min(1.0, fraction_done)) * 100
        if target > self.shown:
            self.bar.update(target - self.shown)
            self.shown = target

    def close(self) -> None:
        self.bar.close()
