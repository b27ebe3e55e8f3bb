import cv2
import logging
import numpy as np
from typing import Optional, Union

from gym_kiosk.exceptions import CameraError

logger = logging.getLogger(__name__)

MAX_WIDTH = 480


class Camera:
    """OpenCV capture device that yields downscaled BGR frames."""

    def __init__(self, source: Union[int, str] = 0, max_width: int = MAX_WIDTH):
        self.source = source
        self.max_width = max_width
        self._capture: Optional[cv2.VideoCapture] = None

    @property
    def is_open(self) -> bool:
        return self._capture is not None and self._capture.isOpened()

    def open(self):
        capture = cv2.VideoCapture(self.source)
        if not capture.isOpened():
            capture.release()
            raise CameraError(f"Could not open camera {self.source!r}")
        self._capture = capture
        logger.info(f"Camera {self.source!r} opened")

    def read(self) -> Optional[np.ndarray]:
        if not self.is_open:
            raise CameraError("Camera is not open")

        ret, frame = self._capture.read()
        if not ret:
            logger.warning("Could not read frame from camera")
            return None

        h, w = frame.shape[:2]
        if w > self.max_width:
            scale = self.max_width / w
            frame = cv2.resize(frame, (int(w * scale), int(h * scale)), interpolation=cv2.INTER_AREA)
        return frame

    def release(self):
        if self._capture is not None:
            self._capture.release()
            self._capture = None
            logger.info(f"Camera {self.source!r} released")
