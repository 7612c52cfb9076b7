"""Emotion label set produced by the classifier, in output-vector order"""

EMOTION_LABELS = ("angry", "disgust", "fear", "happy", "sad", "surprise", "neutral")

_ALIASES = {
    "anger": "angry",
    "disgusted": "disgust",
    "fearful": "fear",
    "happiness": "happy",
    "sadness": "sad",
    "surprised": "surprise",
}


def normalize_emotion(label: str) -> str:
    """Lower-case a label and fold common aliases onto the canonical set"""
    key = str(label).strip().lower()
    return _ALIASES.get(key, key)


def is_known_emotion(label: str) -> bool:
    return normalize_emotion(label) in EMOTION_LABELS
