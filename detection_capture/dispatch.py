"""Single-worker dispatcher that serializes controller callbacks."""

from __future__ import annotations

import logging
import queue
import threading
from typing import Any, Callable, Optional, Set, Tuple

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())

_Task = Tuple[Callable[..., Any], Tuple[Any, ...]]


class SerialDispatcher:
    """1本のワーカースレッドでキューのコールバックを順番に実行する。

    検出結果の受信、キャプチャ処理、再アームはすべてこのワーカー上で実行され、
    互いに割り込まない。遅延実行はタイマーの発火時にキューへ積み直す。

    Args:
        name: ワーカースレッド名。
    """

    def __init__(self, name: str = "CaptureDispatch") -> None:
        self.name = name
        self._queue: "queue.Queue[Optional[_Task]]" = queue.Queue()
        self._thread: Optional[threading.Thread] = None
        self._timers: Set[threading.Timer] = set()
        self._lock = threading.Lock()
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> None:
        """ワーカースレッドを起動する。"""
        if self._running:
            return
        self._running = True
        self._thread = threading.Thread(target=self._run_loop, name=self.name, daemon=True)
        self._thread.start()
        logger.debug("Dispatcher %s started", self.name)

    def post(self, callback: Callable[..., Any], *args: Any) -> None:
        """コールバックをキューの末尾に積む。"""
        self._queue.put((callback, args))

    def schedule(self, delay_s: float, callback: Callable[[], None]) -> None:
        """delay_s秒後にコールバックをワーカー上で実行する。0以下なら即座にキューへ積む。"""
        if delay_s <= 0:
            self.post(callback)
            return

        timer = threading.Timer(delay_s, self._fire, args=(callback,))
        timer.daemon = True
        with self._lock:
            if not self._running:
                logger.debug("Dispatcher stopped; dropping delayed callback")
                return
            self._timers.add(timer)
        timer.start()

    def _fire(self, callback: Callable[[], None]) -> None:
        current = threading.current_thread()
        with self._lock:
            self._timers.discard(current)  # type: ignore[arg-type]
            if not self._running:
                return
        self.post(callback)

    def _run_loop(self) -> None:
        while True:
            task = self._queue.get()
            if task is None:
                logger.debug("Dispatcher sentinel received; exiting")
                break
            callback, args = task
            try:
                callback(*args)
            except Exception:
                logger.exception("Dispatched callback %r failed", callback)

    def stop(self, timeout: Optional[float] = None) -> None:
        """保留中のタイマーを止め、キューに積まれた処理を終えてからスレッドを停止する。"""
        with self._lock:
            if not self._running:
                return
            self._running = False
            timers = list(self._timers)
            self._timers.clear()
        for timer in timers:
            timer.cancel()
        self._queue.put(None)
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        logger.debug("Dispatcher %s stopped", self.name)
