"""
Tests for the Evidence Aggregator
"""
import pytest

from examguard.proctor.aggregator import EvidenceAggregator
from examguard.proctor.labels import EMOTION_LABELS, is_known_emotion, normalize_emotion


def one_hot(label, confidence=0.9):
    """Probability vector with `confidence` on `label`"""
    rest = (1.0 - confidence) / (len(EMOTION_LABELS) - 1)
    return [confidence if l == label else rest for l in EMOTION_LABELS]


LOW_CONFIDENCE = [0.1] * len(EMOTION_LABELS)


class TestObserve:
    """Decision rule on probability vectors"""

    def test_confident_frame_is_classified(self):
        aggregator = EvidenceAggregator()
        observation = aggregator.observe(one_hot('happy'))

        assert observation.face_detected is True
        assert observation.emotion == 'happy'
        assert aggregator.total_frames == 1
        assert aggregator.emotion_counts == {'happy': 1}

    def test_low_confidence_is_face_missing(self):
        aggregator = EvidenceAggregator(seconds_per_sample=2.0)
        observation = aggregator.observe(LOW_CONFIDENCE)

        assert observation.face_detected is False
        assert observation.emotion is None
        assert aggregator.face_missing_seconds == 2.0
        assert aggregator.total_frames == 0

    def test_threshold_boundary_counts_as_detected(self):
        aggregator = EvidenceAggregator(confidence_threshold=0.4)
        probabilities = [0.4, 0.1, 0.1, 0.1, 0.1, 0.1, 0.1]

        assert aggregator.observe(probabilities).face_detected is True

    def test_wrong_vector_length(self):
        aggregator = EvidenceAggregator()
        with pytest.raises(ValueError):
            aggregator.observe([0.5, 0.5])

    def test_empty_vector(self):
        with pytest.raises(ValueError):
            EvidenceAggregator().observe([])


class TestPercentages:
    """Emotion share of classified frames"""

    def test_percentages_exclude_missing_frames(self):
        """Test 10 detected + 5 missing frames: percentages are over 10"""
        aggregator = EvidenceAggregator()
        for _ in range(6):
            aggregator.observe(one_hot('neutral'))
        for _ in range(4):
            aggregator.observe(one_hot('fear'))
        for _ in range(5):
            aggregator.observe(LOW_CONFIDENCE)

        summary = aggregator.snapshot()

        assert summary.emotion_percentages == {'neutral': 60, 'fear': 40}
        assert summary.face_missing_seconds == 5.0
        assert summary.total_frames == 10

    def test_floor_percentages_never_exceed_100(self):
        aggregator = EvidenceAggregator()
        for label in ('happy', 'sad', 'neutral'):
            aggregator.observe(one_hot(label))

        percentages = aggregator.get_percentages()

        assert percentages == {'happy': 33, 'sad': 33, 'neutral': 33}
        assert sum(percentages.values()) <= 100

    def test_no_frames(self):
        assert EvidenceAggregator().get_percentages() == {}


class TestMissingStreak:
    """Critical warning fires once per streak"""

    def test_warning_fires_after_streak_exceeds_threshold(self):
        aggregator = EvidenceAggregator(warning_streak=5)
        flags = [aggregator.observe(LOW_CONFIDENCE).critical_warning for _ in range(12)]

        # 6th miss exceeds the streak and resets it; 12th exceeds it again
        assert flags == [False] * 5 + [True] + [False] * 5 + [True]

    def test_detected_frame_resets_streak(self):
        aggregator = EvidenceAggregator(warning_streak=2)
        aggregator.observe(LOW_CONFIDENCE)
        aggregator.observe(LOW_CONFIDENCE)
        aggregator.observe(one_hot('neutral'))

        assert aggregator.missing_streak == 0
        assert aggregator.observe(LOW_CONFIDENCE).critical_warning is False


class TestSnapshot:

    def test_tab_switches_in_summary(self):
        aggregator = EvidenceAggregator()
        aggregator.record_tab_switch()
        aggregator.record_tab_switch()

        data = aggregator.snapshot().to_dict()

        assert data['tab_switch_count'] == 2
        assert 'emotion_stats' in data

    def test_reset(self):
        aggregator = EvidenceAggregator()
        aggregator.observe(LOW_CONFIDENCE)
        aggregator.observe(one_hot('sad'))
        aggregator.record_error()
        aggregator.reset()

        assert aggregator.face_missing_seconds == 0.0
        assert aggregator.total_frames == 0
        assert aggregator.classification_errors == 0
        assert aggregator.emotion_counts == {}


class TestLabels:

    @pytest.mark.parametrize('raw,expected', [('Anger', 'angry'), ('FEAR', 'fear'), (' neutral ', 'neutral')])
    def test_normalize(self, raw, expected):
        assert normalize_emotion(raw) == expected

    def test_unknown(self):
        assert is_known_emotion('contempt') is False
