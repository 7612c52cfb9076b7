"""
Video sources for the sampling loop
"""

import logging
from typing import Optional, Protocol

import cv2
import numpy as np

logger = logging.getLogger(__name__)


class VideoSource(Protocol):
    def open(self) -> None:
        ...

    def read(self) -> np.ndarray:
        ...

    def release(self) -> None:
        ...


class CameraSource:
    """
    Webcam capture through OpenCV.

    Acquired by open(), released by release(); release is idempotent.
    """

    def __init__(self, device_index: int = 0, width: int = 640, height: int = 480):
        self.device_index = device_index
        self.width = width
        self.height = height
        self._capture: Optional[cv2.VideoCapture] = None

    @property
    def is_open(self) -> bool:
        return self._capture is not None and self._capture.isOpened()

    def open(self):
        if self.is_open:
            return

        capture = cv2.VideoCapture(self.device_index)
        if not capture.isOpened():
            capture.release()
            raise RuntimeError(f"No camera available at index {self.device_index}")

        capture.set(cv2.CAP_PROP_FRAME_WIDTH, self.width)
        capture.set(cv2.CAP_PROP_FRAME_HEIGHT, self.height)
        self._capture = capture
        logger.info(f"Camera {self.device_index} opened")

    def read(self) -> np.ndarray:
        if not self.is_open:
            raise RuntimeError("Camera is not open")

        ok, frame = self._capture.read()
        if not ok or frame is None:
            raise RuntimeError("Failed to read frame from camera")
        return frame

    def release(self):
        if self._capture is not None:
            self._capture.release()
            self._capture = None
            logger.info(f"Camera {self.device_index} released")
