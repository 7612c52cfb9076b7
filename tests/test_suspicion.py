"""
Tests for the Suspicion Evaluator
"""
import sys

import pytest

from examguard.proctor.suspicion import SuspicionEvaluator, as_number, evaluate_suspicion


class TestSuspicionRules:
    """Additive warning rules"""

    def test_not_proctored_short_circuits(self):
        """Test unproctored exams never produce warnings"""
        evidence = {
            'face_missing_seconds': 900,
            'emotion_stats': {'fear': 50},
            'tab_switch_count': 10,
        }
        result = evaluate_suspicion(evidence, is_proctored=False)

        assert result.warnings == []
        assert result.suspicion_count == 0

    def test_combined_rules(self):
        """Test face missing (2) + fear (1) + tab switches (1)"""
        evidence = {
            'face_missing_seconds': 400,
            'emotion_stats': {'fear': 10, 'neutral': 90},
            'tab_switch_count': 5,
        }
        result = evaluate_suspicion(evidence, is_proctored=True)

        assert result.suspicion_count == 4
        assert result.warnings == [
            'Face not detected for 7 minutes',
            'Suspicious emotion detected: fear',
            'Tab switched 5 times',
        ]

    def test_thresholds_are_exclusive(self):
        """Test values equal to a threshold do not trigger"""
        evidence = {'face_missing_seconds': 300, 'tab_switch_count': 3}
        result = evaluate_suspicion(evidence, is_proctored=True)

        assert result.suspicion_count == 0

    def test_each_negative_emotion_counts(self):
        evidence = {'emotion_stats': {'fear': 5, 'angry': 3, 'disgust': 1, 'sad': 40}}
        result = evaluate_suspicion(evidence, is_proctored=True)

        assert result.suspicion_count == 3
        assert len(result.warnings) == 3

    def test_zero_percentage_not_present(self):
        result = evaluate_suspicion({'emotion_stats': {'fear': 0}}, is_proctored=True)
        assert result.suspicion_count == 0

    def test_alias_labels(self):
        """Test 'anger' and capitalised labels fold onto the canonical set"""
        result = evaluate_suspicion({'emotion_stats': {'Anger': 4}}, is_proctored=True)
        assert result.warnings == ['Suspicious emotion detected: angry']

    def test_camel_case_evidence(self):
        evidence = {'faceMissingDuration': 301, 'emotionStats': {}, 'tabSwitchCount': 4}
        result = evaluate_suspicion(evidence, is_proctored=True)
        assert result.suspicion_count == 3

    def test_monotonic_in_face_missing(self):
        """Test more missing time never lowers the count"""
        counts = [
            evaluate_suspicion({'face_missing_seconds': s}, True).suspicion_count
            for s in (0, 299, 300, 301, 1000)
        ]
        assert counts == sorted(counts)

    def test_custom_thresholds(self):
        evaluator = SuspicionEvaluator(face_missing_threshold=60, tab_switch_threshold=0)
        result = evaluator.evaluate({'face_missing_seconds': 61, 'tab_switch_count': 1}, True)
        assert result.suspicion_count == 3

    def test_from_config(self):
        evaluator = SuspicionEvaluator.from_config({
            'FACE_MISSING_THRESHOLD_SECONDS': 10,
            'TAB_SWITCH_THRESHOLD': 1,
            'NEGATIVE_EMOTIONS': ['sad'],
        })
        result = evaluator.evaluate({'emotion_stats': {'sad': 1, 'fear': 9}}, True)
        assert result.warnings == ['Suspicious emotion detected: sad']


class TestMalformedEvidence:
    """The evaluator is total"""

    @pytest.mark.parametrize('evidence', [None, {}, [], 'garbage', {'emotion_stats': 'oops'}])
    def test_garbage_counts_as_zero(self, evidence):
        result = evaluate_suspicion(evidence, is_proctored=True)
        assert result.suspicion_count == 0

    def test_percent_strings(self):
        result = evaluate_suspicion({'emotion_stats': {'fear': '12%'}}, is_proctored=True)
        assert result.suspicion_count == 1

    def test_none_values(self):
        evidence = {'face_missing_seconds': None, 'emotion_stats': {'fear': None}, 'tab_switch_count': None}
        assert evaluate_suspicion(evidence, True).suspicion_count == 0

    def test_infinity_trips_face_missing(self):
        assert as_number(float('inf')) == sys.float_info.max
        assert evaluate_suspicion({'face_missing_seconds': float('inf')}, True).suspicion_count == 2

    def test_unbounded_values_never_lower_count(self):
        counts = [
            evaluate_suspicion({'face_missing_seconds': value, 'tab_switch_count': value}, True).suspicion_count
            for value in (301, 1e300, float('inf'), 'inf')
        ]
        assert counts == [3, 3, 3, 3]

    @pytest.mark.parametrize('value', [float('nan'), float('-inf'), '-inf'])
    def test_nan_and_negative_infinity_are_zero(self, value):
        assert as_number(value) == 0.0

    @pytest.mark.parametrize('value,expected', [(12, 12.0), ('7.5', 7.5), (' 3 % ', 3.0), ('x', 0.0), (None, 0.0)])
    def test_as_number(self, value, expected):
        assert as_number(value) == expected
