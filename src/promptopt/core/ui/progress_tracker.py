"""Progress tracker for batch optimization runs using tqdm."""

import time
from types import TracebackType
from typing import Dict, Optional, Type

from tqdm import tqdm

BAR_FORMAT = "{l_bar}{bar}| {n_fmt}/{total_fmt} prompts [{elapsed}<{remaining}, {rate_fmt}]"


class ProgressTracker:
    """One tick per finished prompt, with failure count and best score so far."""

    def __init__(self, total: int, desc: str = "Optimizing prompts", disable: bool = False):
        """Initialize tracker for total prompts; disable hides the bar but keeps counting."""
        self.total = total
        self.desc = desc
        self.disable = disable
        self.completed = 0
        self.failed = 0
        self.best_score = 0.0
        self._pbar: Optional[tqdm] = None
        self._start_time: Optional[float] = None

    def start(self) -> None:
        self._start_time = time.time()
        self._pbar = tqdm(
            total=self.total,
            desc=self.desc,
            bar_format=BAR_FORMAT,
            dynamic_ncols=True,
            disable=self.disable,
        )

    def close(self) -> None:
        if self._pbar is not None:
            self._pbar.close()
            self._pbar = None

    def __enter__(self) -> "ProgressTracker":
        self.start()
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        self.close()

    @property
    def elapsed(self) -> float:
        """Seconds since start(), 0 before it."""
        return time.time() - self._start_time if self._start_time else 0.0

    def postfix(self) -> Dict[str, str]:
        return {
            "ok": str(self.completed - self.failed),
            "failed": str(self.failed),
            "best": f"{self.best_score:.1%}",
        }

    def item_done(self, success: bool, best_score: Optional[float] = None) -> None:
        """Count one finished prompt and refresh the bar."""
        self.completed += 1
        if not success:
            self.failed += 1
        if best_score is not None:
            self.best_score = max(self.best_score, best_score)
        if self._pbar is not None:
            self._pbar.set_postfix(self.postfix())
            self._pbar.update(1)
