"""Cooldown countdown used for on-screen feedback only."""

from __future__ import annotations

import logging
from typing import Callable, Optional, Protocol

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())


class Scheduler(Protocol):
    def schedule(self, delay_s: float, callback: Callable[[], None]) -> None:
        ...


class CountdownTimer:
    """一定間隔で残り秒数を通知し、終了時に一度だけon_finishを呼ぶ。

    キャンセルはできない。新しいタイマーを開始しても前のタイマーは止まらない。

    Args:
        scheduler: 遅延実行に使うスケジューラ。
        total_s: カウントダウンの合計時間（秒）。
        interval_s: 通知間隔（秒）。
        on_tick: 残り秒数を受け取るコールバック。
        on_finish: 終了時のコールバック。
    """

    def __init__(
        self,
        scheduler: Scheduler,
        total_s: float,
        interval_s: float,
        on_tick: Callable[[int], None],
        on_finish: Optional[Callable[[], None]] = None,
    ) -> None:
        if interval_s <= 0:
            raise ValueError("interval_s must be positive")
        self.scheduler = scheduler
        self.total_ms = int(round(total_s * 1000))
        self.interval_ms = int(round(interval_s * 1000))
        self.on_tick = on_tick
        self.on_finish = on_finish
        self._started = False
        self._finished = False

    @property
    def finished(self) -> bool:
        return self._finished

    def start(self) -> None:
        if self._started:
            logger.debug("Countdown already started; ignoring start()")
            return
        self._started = True
        self._step(self.total_ms)

    def _step(self, remaining_ms: int) -> None:
        if remaining_ms <= 0:
            self._finished = True
            if self.on_finish is not None:
                self.on_finish()
            return

        self.on_tick(remaining_ms // 1000)
        delay_ms = min(self.interval_ms, remaining_ms)
        self.scheduler.schedule(delay_ms / 1000.0, lambda: self._step(remaining_ms - delay_ms))
