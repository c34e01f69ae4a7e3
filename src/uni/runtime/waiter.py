from __future__ import annotations

import math
import time
from typing import Callable, Optional, TypeVar

from rich.console import Console

from uni.utils.errors import WaitTimeout

T = TypeVar("T")


class Waiter:
    """Bounded polling: re-evaluate a predicate once per interval until it is truthy.

    The predicate runs once immediately and then once per interval until
    ``timeout_seconds`` have elapsed. Progress is a ``label:`` prefix
    followed by one dot per poll. Exceptions raised by the predicate
    propagate unchanged, which lets callers abort a wait early.
    """

    def __init__(
        self,
        console: Optional[Console] = None,
        interval: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.console = console or Console(stderr=True)
        self.interval = interval
        self.sleep = sleep

    def wait(self, timeout_seconds: int, label: str, predicate: Callable[[], T]) -> T:
        result = predicate()
        if result:
            return result

        self._write(f"{label}: ")
        for _ in range(self.attempts(timeout_seconds)):
            self.sleep(self.interval)
            self._write(".")

            result = predicate()
            if result:
                self._write("\n")
                return result

        self._write(" (timeout)\n")
        raise WaitTimeout(label, timeout_seconds)

    def attempts(self, timeout_seconds: float) -> int:
        """Number of polls that fit in the budget after the first check."""
        return math.ceil(round(timeout_seconds / self.interval, 6))

    def _write(self, text: str) -> None:
        self.console.print(text, end="", markup=False, highlight=False)
