"""
Bloom API Tests - Endpoint Integration

Tests the Flask API endpoints.

Run with: pytest tests/test_api.py -v

Note: These tests require the server to NOT be running,
as they use Flask's test client.
"""

import sys
import json
import logging
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def client():
    """Create a test client for the Flask app."""
    from server import app

    app.config['TESTING'] = True
    with app.test_client() as client:
        yield client


@pytest.fixture
def payload():
    """A small member history, pinned to UTC and a Wednesday afternoon."""
    return {
        "now": "2024-03-06T15:00:00",
        "timezone": "UTC",
        "moments": [
            {"id": "m1", "created_at": "2024-03-06T09:00:00", "type": "write",
             "moods": ["joyful"], "text_content": "Morning light"},
            {"id": "m2", "created_at": "2024-03-05T20:00:00", "type": "photo", "moods": ["calm", "tired"]},
            {"id": "m3", "created_at": "2024-03-04T08:00:00", "type": "voice", "moods": ["grateful"]},
        ],
        "completions": [
            {"ritual_id": "r1", "completion_date": "2024-03-05", "duration_minutes": 12, "mood": "good"},
            {"ritual_id": "r1", "completion_date": "2024-03-06", "mood": "great"},
        ],
        "anchor_logs": [
            {"anchor_id": "a1", "log_date": "2024-03-05"},
            {"anchor_id": "a1", "log_date": "2024-03-06"},
        ],
        "anchors": [{"id": "a1", "label": "Drink water", "type": "grow"}],
        "member_rituals": [
            {"id": "mr1", "ritual_id": "r1", "ritual": {"id": "r1", "name": "Stretch", "category": "morning"}},
        ],
    }


def post(client, url, body):
    return client.post(url, data=json.dumps(body), content_type='application/json')


# =============================================================================
# HEALTH & INFO TESTS
# =============================================================================

def test_health_endpoint(client):
    """Health endpoint should return success."""
    response = client.get('/api/health')

    assert response.status_code == 200
    data = json.loads(response.data)
    assert data['success'] is True
    assert data['data']['status'] == 'healthy'
    assert 'rate_limit' in data['data']
    assert data['timestamp'].endswith('Z')


def test_info_endpoint(client):
    """Info endpoint should return version and endpoints."""
    response = client.get('/api/info')

    assert response.status_code == 200
    data = json.loads(response.data)
    assert data['success'] is True
    assert 'version' in data['data']
    assert '/api/analytics/report' in data['data']['endpoints']
    assert 'moments' in data['data']['collections']


# =============================================================================
# ANALYTICS TESTS
# =============================================================================

def test_moments_analytics(client, payload):
    """Emotion analytics should summarise moods and rhythm."""
    response = post(client, '/api/analytics/moments', payload)

    assert response.status_code == 200
    data = json.loads(response.data)['data']
    assert data['total_moments'] == 3
    assert data['now'] == '2024-03-06T15:00:00'
    assert data['streak']['current'] == 3
    assert len(data['time_buckets']) == 4
    assert data['ingestion']['skipped_count'] == 0


def test_mood_insight(client, payload):
    """Mood tag in the path is matched case-insensitively."""
    response = post(client, '/api/analytics/moments/mood/Calm', payload)

    assert response.status_code == 200
    data = json.loads(response.data)['data']
    assert data['mood'] == 'calm'
    assert data['count'] == 1
    assert data['peak_time'] == 'evening'
    assert data['narrative']


def test_progress_analytics(client, payload):
    response = post(client, '/api/analytics/progress', payload)

    assert response.status_code == 200
    data = json.loads(response.data)['data']
    assert data['today'] == '2024-03-06'
    assert data['week']['ritual_days'] == 2
    assert len(data['day_activity']) == 30
    assert set(data['narratives']) == {'week', 'mood', 'moments'}


def test_seed_analytics_with_day(client, payload):
    response = post(client, '/api/analytics/seeds', dict(payload, day='2024-03-05'))

    assert response.status_code == 200
    data = json.loads(response.data)['data']
    assert data['summary']['best_current_streak'] == 2
    assert data['day']['date'] == '2024-03-05'
    assert data['day']['seeds'][0]['count'] == 1


def test_seed_analytics_rejects_bad_day(client, payload):
    response = post(client, '/api/analytics/seeds', dict(payload, day='05/03/2024'))

    assert response.status_code == 400
    data = json.loads(response.data)
    assert data['success'] is False
    assert data['data']['error_type'] == 'InvalidTimestampError'


def test_ritual_insights(client, payload):
    response = post(client, '/api/analytics/rituals', payload)

    assert response.status_code == 200
    data = json.loads(response.data)['data']
    assert data['rituals'][0]['stats']['current_streak'] == 2
    assert data['strongest_ritual'] == 'r1'
    assert data['narratives']['week']['title']


def test_full_report(client, payload):
    response = post(client, '/api/analytics/report', payload)

    assert response.status_code == 200
    data = json.loads(response.data)['data']
    assert set(data) == {'now', 'moments', 'progress', 'seeds', 'rituals', 'ingestion'}
    assert data['moments']['now'] == data['seeds']['now']


def test_empty_body_returns_empty_state(client):
    """A member with no history still gets a full, empty report."""
    response = post(client, '/api/analytics/moments', {"timezone": "UTC"})

    assert response.status_code == 200
    data = json.loads(response.data)['data']
    assert data['total_moments'] == 0
    assert data['top_days'] == []
    assert data['share_quote']


def test_malformed_rows_are_reported(client, payload):
    payload['moments'].append({"id": "bad", "created_at": "yesterday", "type": "photo"})
    response = post(client, '/api/analytics/moments', payload)

    assert response.status_code == 200
    data = json.loads(response.data)['data']
    assert data['total_moments'] == 3
    assert data['ingestion']['skipped_count'] == 1


# =============================================================================
# ERROR HANDLING TESTS
# =============================================================================

def test_analytics_requires_json(client):
    """Analytics endpoints should reject non-JSON bodies."""
    response = client.post('/api/analytics/moments', data='moments', content_type='text/plain')

    assert response.status_code == 400
    data = json.loads(response.data)
    assert data['success'] is False
    assert data['error'] == 'JSON body required'


def test_unknown_timezone(client, payload):
    response = post(client, '/api/analytics/progress', dict(payload, timezone='Mars/Olympus'))

    assert response.status_code == 400
    data = json.loads(response.data)
    assert data['data']['error_type'] == 'InvalidTimezoneError'
    assert 'Mars/Olympus' in data['error']


def test_rejected_request_logged_with_its_status(client, payload, caplog):
    """Client errors are logged with the status actually returned, without a traceback."""
    with caplog.at_level(logging.INFO):
        response = post(client, '/api/analytics/rituals', dict(payload, timezone='Mars/Olympus'))

    assert response.status_code == 400
    request_logs = [r for r in caplog.records if getattr(r, 'endpoint', None) == 'ritual_insights']
    assert [r.status_code for r in request_logs] == [400]
    assert request_logs[0].levelno == logging.WARNING
    assert request_logs[0].exc_info is None


def test_collection_must_be_list(client):
    response = post(client, '/api/analytics/moments', {"moments": {"id": "m1"}})

    assert response.status_code == 400
    assert json.loads(response.data)['success'] is False


def test_payload_row_limit(client, payload, monkeypatch):
    import server

    monkeypatch.setattr(server.Config, 'MAX_RECORDS', 2)
    response = post(client, '/api/analytics/report', payload)

    assert response.status_code == 413
    data = json.loads(response.data)
    assert data['data']['error_type'] == 'PayloadTooLargeError'


def test_404_for_unknown_endpoint(client):
    """Unknown endpoints should return 404."""
    response = client.get('/api/nonexistent')
    assert response.status_code == 404


def test_method_not_allowed(client):
    """Analytics endpoints only accept POST."""
    response = client.get('/api/analytics/report')
    assert response.status_code == 405


def test_cors_headers(client):
    """Responses should include CORS headers for browser clients."""
    response = client.get('/api/health', headers={'Origin': 'http://localhost:3000'})

    assert response.status_code == 200
    assert 'Access-Control-Allow-Origin' in response.headers
