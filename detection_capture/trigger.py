"""Detection-triggered capture controller."""

from __future__ import annotations

import enum
import logging
import time
from typing import Callable, Optional, Protocol, Sequence

from .annotate import annotate
from .config import DEFAULT_POLICY, TriggerPolicy
from .countdown import CountdownTimer, Scheduler
from .detections import Detection, DetectionBatch, FrameSnapshot
from .storage import CaptureSaveError

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())

SAVED_MESSAGE = "Saved"
SAVE_FAILED_MESSAGE = "Failed to save image."
CAPTURE_NAME_PREFIX = "DetectedImage"

FrameSource = Callable[[], Optional[FrameSnapshot]]
Annotator = Callable[[FrameSnapshot, Sequence[Detection], int], FrameSnapshot]


class ImageSink(Protocol):
    def save(self, image: FrameSnapshot, name: str) -> object:
        ...


class Presenter(Protocol):
    def show_batch(self, batch: DetectionBatch) -> None:
        ...

    def set_detection_count(self, count: int) -> None:
        ...

    def set_countdown_visible(self, visible: bool) -> None:
        ...

    def set_countdown_text(self, text: str) -> None:
        ...

    def show_toast(self, message: str) -> None:
        ...


class ControllerState(enum.Enum):
    READY = "ready"
    CAPTURING = "capturing"
    COOLDOWN = "cooldown"


class CaptureController:
    """検出数に応じてキャプチャ、保存、クールダウン、再アームを行う状態機械。

    on_batch とスケジューラから呼ばれるコールバックは同じ直列化されたコンテキスト
    （SerialDispatcher のワーカー）で実行される前提のため、状態はロックなしで扱う。

    - 条件1: 状態がREADYであること。
    - 条件2: 検出数がしきい値と完全に一致すること（2件のみ。3件は対象外）。

    Args:
        frame_source: キャプチャ時に現在のフレームを返す関数。取得できない場合はNone。
        sink: 注釈付き画像の保存先。
        presenter: 検出結果とカウントダウンの表示先。
        scheduler: 遅延実行に使うスケジューラ。
        policy: トリガー条件と時間設定。
        clock: 保存名に使うエポック秒を返す関数。
        annotator: 画像に検出結果を描画する関数。
        name_prefix: 保存名の接頭辞。保存名は "<接頭辞>_<エポックミリ秒>" になる。
    """

    def __init__(
        self,
        frame_source: FrameSource,
        sink: ImageSink,
        presenter: Presenter,
        scheduler: Scheduler,
        policy: TriggerPolicy = DEFAULT_POLICY,
        *,
        clock: Callable[[], float] = time.time,
        annotator: Annotator = annotate,
        name_prefix: str = CAPTURE_NAME_PREFIX,
    ) -> None:
        self.frame_source = frame_source
        self.sink = sink
        self.presenter = presenter
        self.scheduler = scheduler
        self.policy = policy
        self.clock = clock
        self.annotator = annotator
        self.name_prefix = name_prefix

        self._state = ControllerState.READY
        self._capture_count = 0

    @property
    def state(self) -> ControllerState:
        return self._state

    @property
    def capture_count(self) -> int:
        """保存処理まで到達したキャプチャの回数。"""
        return self._capture_count

    def on_batch(self, batch: DetectionBatch) -> None:
        """1フレーム分の検出結果を受け取り、表示を更新してトリガー条件を評価する。"""
        self.presenter.show_batch(batch)
        self.presenter.set_detection_count(batch.count)

        if self._state is not ControllerState.READY:
            return
        if batch.count != self.policy.threshold_count:
            return

        self._transition(ControllerState.CAPTURING)
        self.scheduler.schedule(self.policy.capture_delay_s, lambda: self._capture(batch))

    def _capture(self, batch: DetectionBatch) -> None:
        """トリガー時の検出結果でフレームに注釈を描き、保存してクールダウンに入る。

        フレーム取得や描画で例外が起きた場合は今回のキャプチャだけを中止してREADYに戻す。
        保存の失敗は通知したうえでクールダウンに入る。
        """
        try:
            frame = self.frame_source()
            if frame is None:
                logger.warning("No frame available at capture time; capture abandoned")
                if self.policy.release_on_missing_frame:
                    self._transition(ControllerState.READY)
                return
            annotated = self.annotator(frame, batch.detections, batch.count)
        except Exception:
            logger.exception("Capture failed before saving; capture abandoned")
            self._transition(ControllerState.READY)
            return

        name = f"{self.name_prefix}_{int(round(self.clock() * 1000))}"
        self._capture_count += 1
        try:
            location = self.sink.save(annotated, name)
        except CaptureSaveError as exc:
            logger.error("Failed to save capture %s: %s", name, exc)
            self.presenter.show_toast(SAVE_FAILED_MESSAGE)
        except Exception:
            logger.exception("Unexpected error while saving capture %s", name)
            self.presenter.show_toast(SAVE_FAILED_MESSAGE)
        else:
            logger.info("Saved capture %s to %s", name, location)
            self.presenter.show_toast(SAVED_MESSAGE)

        self._enter_cooldown()

    def _enter_cooldown(self) -> None:
        self._transition(ControllerState.COOLDOWN)

        self.presenter.set_countdown_visible(True)
        timer = CountdownTimer(
            self.scheduler,
            self.policy.countdown_total_s,
            self.policy.tick_interval_s,
            on_tick=lambda remaining: self.presenter.set_countdown_text(f"Wait: {remaining}s"),
            on_finish=self._on_countdown_finished,
        )
        timer.start()

        # Re-arm runs on its own timer, independent of the visible countdown.
        self.scheduler.schedule(self.policy.rearm_delay_s, self._rearm)

    def _on_countdown_finished(self) -> None:
        self.presenter.set_countdown_text("Done!")
        self.presenter.set_countdown_visible(False)

    def _rearm(self) -> None:
        self._transition(ControllerState.READY)

    def _transition(self, new_state: ControllerState) -> None:
        logger.debug("Capture state %s -> %s", self._state.name, new_state.name)
        self._state = new_state
