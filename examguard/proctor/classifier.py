"""
Emotion classifier contract and frame normalization

The model itself is external: anything exposing
``classify(frame) -> probabilities over EMOTION_LABELS`` can be plugged in.
"""

import os
import logging
from functools import lru_cache
from typing import Protocol, Sequence, Tuple

import cv2
import numpy as np

from .labels import EMOTION_LABELS

logger = logging.getLogger(__name__)

# Input shape expected by the bundled emotion model (grayscale 96x96)
MODEL_INPUT_SIZE: Tuple[int, int] = (96, 96)

MODELS_DIR = os.path.join(os.path.dirname(__file__), "weights")


class EmotionClassifier(Protocol):
    def classify(self, frame: np.ndarray) -> Sequence[float]:
        ...


def preprocess_frame(frame: np.ndarray, size: Tuple[int, int] = MODEL_INPUT_SIZE) -> np.ndarray:
    """
    Normalize a camera frame to the classifier's input tensor.

    Nearest-neighbour resize, channel mean to grayscale, scale to [0, 1],
    shaped (1, height, width, 1).

    Raises:
        ValueError: empty frame
    """
    if frame is None or frame.size == 0:
        raise ValueError("Empty frame")

    resized = cv2.resize(frame, size, interpolation=cv2.INTER_NEAREST)
    if resized.ndim == 3:
        gray = resized.mean(axis=2)
    else:
        gray = resized

    tensor = gray.astype(np.float32) / 255.0
    return tensor.reshape(1, size[1], size[0], 1)


@lru_cache(maxsize=4)
def load_keras_model(model_path: str):
    """
    Load a Keras emotion model once per path.

    Requires the optional ``ml`` extra (TensorFlow).
    """
    from tensorflow import keras

    if not os.path.exists(model_path):
        raise FileNotFoundError(
            f"Emotion model not found at {model_path}. Place the exported model in {MODELS_DIR}"
        )

    logger.info(f"Loading emotion model from: {model_path}")
    return keras.models.load_model(model_path)


class KerasEmotionClassifier:
    """Emotion classifier backed by a Keras model (lazy loaded)"""

    def __init__(self, model_path: str = None, labels: Sequence[str] = EMOTION_LABELS):
        self.model_path = model_path or os.path.join(MODELS_DIR, "emotion_model.keras")
        self.labels = tuple(labels)
        self._model = None

    @property
    def model(self):
        if self._model is None:
            self._model = load_keras_model(self.model_path)
        return self._model

    def classify(self, frame: np.ndarray) -> Sequence[float]:
        tensor = frame if frame.ndim == 4 else preprocess_frame(frame)
        prediction = self.model.predict(tensor, verbose=0)
        return [float(p) for p in np.asarray(prediction).reshape(-1)]
