"""
Tests for the Attempt Client and Proctoring Reporter

HTTP is served by httpx.MockTransport, so nothing leaves the process.
"""
import json
from unittest.mock import Mock

import httpx
import pytest

from examguard.errors import Forbidden, NotFound, Rejected, TransientFailure
from examguard.proctor.aggregator import EvidenceSummary
from examguard.proctor.client import AttemptClient, StartedAttempt
from examguard.proctor.reporter import ProctoringReporter

ATTEMPT = StartedAttempt(
    attempt_id='attempt-1',
    attempt_token='a' * 64,
    time_limit_minutes=30,
    started_at='2026-01-01T09:00:00',
)


def make_client(handler):
    return AttemptClient('http://examguard.test', auth_token='jwt', transport=httpx.MockTransport(handler))


class TestAttemptClient:
    """Request shapes and error mapping"""

    def test_start(self):
        seen = {}

        def handler(request):
            seen['path'] = request.url.path
            seen['auth'] = request.headers['Authorization']
            seen['body'] = json.loads(request.content)
            return httpx.Response(201, json={
                'attempt_id': 'attempt-1',
                'attempt_token': 'b' * 64,
                'time_limit_minutes': 45,
                'started_at': '2026-01-01T09:00:00',
            })

        attempt = make_client(handler).start('exam-1')

        assert seen == {'path': '/api/exams/start', 'auth': 'Bearer jwt', 'body': {'exam_id': 'exam-1'}}
        assert attempt.time_limit_minutes == 45
        assert attempt.attempt_token == 'b' * 64

    def test_submit_payload(self):
        seen = {}

        def handler(request):
            seen['body'] = json.loads(request.content)
            return httpx.Response(200, json={'score': 100})

        summary = EvidenceSummary(
            face_missing_seconds=12.0,
            emotion_percentages={'neutral': 100},
            total_frames=20,
            tab_switch_count=1,
            timestamp='2026-01-01T09:10:00',
        )
        result = make_client(handler).submit(ATTEMPT, {'q1': 'A'}, summary)

        assert result == {'score': 100}
        assert seen['body']['attempt_token'] == 'a' * 64
        assert seen['body']['answers'] == [{'question_id': 'q1', 'selected_option': 'A'}]
        assert seen['body']['proctoring']['emotion_stats'] == {'neutral': 100}
        assert seen['body']['proctoring']['tab_switch_count'] == 1

    @pytest.mark.parametrize('status,error_cls', [
        (400, Rejected),
        (403, Forbidden),
        (404, NotFound),
        (500, TransientFailure),
        (503, TransientFailure),
    ])
    def test_error_mapping(self, status, error_cls):
        def handler(request):
            return httpx.Response(status, json={'error': 'nope', 'reason': 'some_reason', 'attempt_id': 'x'})

        with pytest.raises(error_cls) as exc_info:
            make_client(handler).fetch('attempt-1')

        assert exc_info.value.reason == 'some_reason'
        assert exc_info.value.details == {'attempt_id': 'x'}

    def test_non_json_error_body(self):
        def handler(request):
            return httpx.Response(502, text='Bad Gateway')

        with pytest.raises(TransientFailure):
            make_client(handler).fetch('attempt-1')

    def test_network_failure_is_transient(self):
        def handler(request):
            raise httpx.ConnectError('connection refused', request=request)

        with pytest.raises(TransientFailure):
            make_client(handler).fetch('attempt-1')


class TestAutoSubmit:
    """Time-up flow"""

    def test_stops_monitor_and_submits(self):
        seen = {}

        def handler(request):
            seen['body'] = json.loads(request.content)
            return httpx.Response(200, json={'score': 50})

        monitor = Mock()
        monitor.stop.return_value = EvidenceSummary(0.0, {}, 0, 0, '2026-01-01T09:30:00')

        result = make_client(handler).auto_submit(ATTEMPT, {}, monitor=monitor)

        monitor.stop.assert_called_once()
        assert result == {'score': 50}
        assert seen['body']['answers'] == []

    @pytest.mark.parametrize('reason', ['already_submitted', 'time_exceeded'])
    def test_informational_rejections(self, reason):
        def handler(request):
            return httpx.Response(400, json={'error': 'late', 'reason': reason})

        assert make_client(handler).auto_submit(ATTEMPT, {'q1': 'A'}) is None

    def test_other_rejections_propagate(self):
        def handler(request):
            return httpx.Response(400, json={'error': 'bad', 'reason': 'invalid_request'})

        with pytest.raises(Rejected):
            make_client(handler).auto_submit(ATTEMPT, {})

    def test_invalid_token_reraised(self):
        def handler(request):
            return httpx.Response(403, json={'error': 'Invalid attempt token', 'reason': 'invalid_token'})

        with pytest.raises(Forbidden) as exc_info:
            make_client(handler).auto_submit(ATTEMPT, {})

        assert exc_info.value.reason == 'invalid_token'


class TestProctoringReporter:
    """Fire-and-forget push on a background worker"""

    def test_reports_are_sent(self):
        bodies = []

        def handler(request):
            bodies.append((request.url.path, json.loads(request.content)))
            return httpx.Response(200, json={'success': True})

        reporter = ProctoringReporter(make_client(handler), 'attempt-1')
        reporter.report(1.0, camera_on=True, face_detected=True, emotion='happy')
        reporter.report(1.0, camera_on=True, face_detected=False, tab_switched=True)
        reporter.close(wait=True)

        assert reporter.sent == 2
        assert bodies[0] == ('/api/exams/attempts/attempt-1/proctoring', {
            'interval_seconds': 1.0,
            'camera_on': True,
            'face_detected': True,
            'emotion': 'happy',
            'tab_switched': False,
        })
        assert bodies[1][1]['tab_switched'] is True

    def test_failures_are_counted_not_raised(self):
        def handler(request):
            return httpx.Response(503, json={'error': 'down'})

        reporter = ProctoringReporter(make_client(handler), 'attempt-1')
        future = reporter.report(1.0, camera_on=True, face_detected=True)
        future.result(timeout=5)
        reporter.close()

        assert reporter.failed == 1
        assert reporter.sent == 0

    def test_closed_reporter_drops_reports(self):
        reporter = ProctoringReporter(Mock(), 'attempt-1')
        reporter.close()

        assert reporter.report(1.0, camera_on=True, face_detected=True) is None
