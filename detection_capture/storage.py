"""JPEG writer used to persist annotated captures."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Union

import cv2

from .config import DEFAULT_STORAGE, StorageConfig
from .detections import FrameSnapshot

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())


class CaptureSaveError(RuntimeError):
    """注釈付き画像の保存に失敗したことを表す。"""


class ImageWriter:
    """キャプチャ画像をJPEGとして出力ディレクトリに保存する。

    書き込み中のファイルは ``.part`` 拡張子で作成し、完了後に最終名へリネームする。
    そのため途中までしか書かれていない画像が最終名で見えることはない。

    Args:
        config: 保存先とJPEG品質の設定。
    """

    def __init__(self, config: StorageConfig = DEFAULT_STORAGE) -> None:
        self.config = config
        self.output_dir = Path(config.output_dir)

    def path_for(self, name: str) -> Path:
        return self.output_dir / f"{name}.jpg"

    def save(self, image: FrameSnapshot, name: str) -> Path:
        """画像を保存し、保存先のパスを返す。

        Args:
            image: 保存する画像。
            name: 拡張子を除いたファイル名。

        Raises:
            CaptureSaveError: エンコードまたは書き込みに失敗した場合。
        """
        try:
            ok, encoded = cv2.imencode(
                ".jpg",
                image.pixels,
                [int(cv2.IMWRITE_JPEG_QUALITY), int(self.config.jpeg_quality)],
            )
        except cv2.error as exc:
            raise CaptureSaveError(f"failed to encode {name} as JPEG: {exc}") from exc
        if not ok:
            raise CaptureSaveError(f"failed to encode {name} as JPEG")

        target = self.path_for(name)
        pending = target.with_name(target.name + ".part")
        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
            pending.write_bytes(encoded.tobytes())
            os.replace(pending, target)
        except OSError as exc:
            _discard(pending)
            raise CaptureSaveError(f"failed to write {target}: {exc}") from exc

        logger.debug("Wrote %d bytes to %s", encoded.size, target)
        return target


def _discard(path: Union[str, Path]) -> None:
    try:
        Path(path).unlink()
    except FileNotFoundError:
        pass
    except OSError as exc:
        logger.debug("Could not remove partial file %s: %s", path, exc)
