import re

import pytest

from app import globals as app_globals
from database import DatabaseManager


@pytest.fixture
def employee(add_employee):
    return add_employee('E1', 'Eve', join_date='2024-01-01')


def test_first_post_creates_record(client, employee):
    response = client.post('/api/attendance', json={'emp_id': 'E1', 'date': '2024-01-03', 'status': 'Present'})
    assert response.status_code == 201
    body = response.get_json()
    assert body['success'] is True
    assert body['status'] == 'created'
    assert body['data']['emp_id'] == 'E1'
    assert body['data']['date'] == '2024-01-03'
    assert re.fullmatch(r'\d{2}:\d{2}:\d{2}', body['data']['time'])


def test_second_post_same_day_is_already_marked(client, employee):
    client.post('/api/attendance', json={'emp_id': 'E1', 'date': '2024-01-03'})
    response = client.post('/api/attendance', json={'employeeId': 'E1', 'date': '2024-01-03T12:00:00Z'})

    assert response.status_code == 200
    assert response.get_json() == {'success': True, 'status': 'already_marked', 'message': 'Already marked'}
    assert len(client.get('/api/attendance').get_json()['data']) == 1


@pytest.mark.parametrize('payload', [
    {'date': '2024-01-03'},
    {'emp_id': 'E1'},
    {'emp_id': 'E1', 'date': 'tomorrow'},
    {'emp_id': 'E1', 'date': '2024-01-03', 'time': 'noon'},
    {'emp_id': 'E1', 'date': '2024-01-03', 'status': 'Absent'},
])
def test_malformed_payloads_are_rejected(client, employee, payload):
    response = client.post('/api/attendance', json=payload)
    assert response.status_code == 400
    assert response.get_json()['success'] is False


def test_unknown_employee_is_404(client):
    response = client.post('/api/attendance', json={'emp_id': 'NOPE', 'date': '2024-01-03'})
    assert response.status_code == 404


def test_form_payload_is_accepted(client, employee):
    response = client.post('/api/attendance', data={'empId': 'E1', 'date': '2024-01-04'})
    assert response.status_code == 201


def test_list_is_newest_first_and_filterable(client, employee, add_employee):
    add_employee('E2', 'Bob')
    for emp_id, day in [('E1', '2024-01-02'), ('E1', '2024-01-04'), ('E2', '2024-01-03')]:
        client.post('/api/attendance', json={'emp_id': emp_id, 'date': day})

    dates = [r['date'] for r in client.get('/api/attendance').get_json()['data']]
    assert dates == ['2024-01-04', '2024-01-03', '2024-01-02']

    only_e1 = client.get('/api/attendance?emp_id=E1&start=2024-01-03').get_json()['data']
    assert [(r['emp_id'], r['date']) for r in only_e1] == [('E1', '2024-01-04')]

    assert client.get('/api/attendance?start=bad').status_code == 400


def test_photo_is_returned_unless_excluded(client, employee):
    client.post('/api/attendance', json={'emp_id': 'E1', 'date': '2024-01-03', 'photo': 'data:image/png;base64,AAAA'})
    with_photo = client.get('/api/attendance').get_json()['data'][0]
    without = client.get('/api/attendance?include_photo=0').get_json()['data'][0]
    assert with_photo['photo'] == 'data:image/png;base64,AAAA'
    assert 'photo' not in without


def test_timeline_fills_absent_days(client, employee):
    client.post('/api/attendance', json={'emp_id': 'E1', 'date': '2024-01-03'})

    body = client.get('/api/attendance/timeline/E1').get_json()
    assert body['effective_start'] == '2024-01-01'
    assert body['start_source'] == 'join_date'
    assert [(e['date'], e['status']) for e in body['data']] == [
        ('2024-01-01', 'Absent'),
        ('2024-01-02', 'Absent'),
        ('2024-01-03', 'Present'),
        ('2024-01-04', 'Absent'),
        ('2024-01-05', 'Absent'),
    ]

    descending = client.get('/api/attendance/timeline/E1?order=desc').get_json()['data']
    assert descending[0]['date'] == '2024-01-05'
    assert client.get('/api/attendance/timeline/E1?order=sideways').status_code == 400


def test_timeline_with_legacy_join_date_starts_at_first_record(app, client):
    # Rows written before join dates were validated may hold free text
    app_globals.database.add_employee('L1', 'Legacy', join_date='sometime in 2023')
    client.post('/api/attendance', json={'emp_id': 'L1', 'date': '2024-01-04'})

    body = client.get('/api/attendance/timeline/L1').get_json()
    assert body['start_source'] == 'first_record'
    assert [e['status'] for e in body['data']] == ['Present', 'Absent']


def test_timeline_for_unknown_employee_is_404(client):
    assert client.get('/api/attendance/timeline/NOPE').status_code == 404


def test_recording_broadcasts_event(client, employee):
    client_queue = app_globals.event_broadcaster.add_client()
    client.post('/api/attendance', json={'emp_id': 'E1', 'date': '2024-01-03'})
    client.post('/api/attendance', json={'emp_id': 'E1', 'date': '2024-01-03'})

    first, second = client_queue.get_nowait(), client_queue.get_nowait()
    assert first.startswith('event: attendance_marked\n')
    assert second.startswith('event: already_marked\n')
    assert '"emp_id": "E1"' in first


def test_store_unavailable_is_503(client, employee, monkeypatch):
    from core.errors import StoreUnavailable

    def locked(*args, **kwargs):
        raise StoreUnavailable('database is locked')

    monkeypatch.setattr(DatabaseManager, 'insert_attendance', locked)
    response = client.post('/api/attendance', json={'emp_id': 'E1', 'date': '2024-01-03'})
    assert response.status_code == 503
    assert response.get_json()['success'] is False


def test_failed_name_lookup_keeps_committed_record(client, employee, monkeypatch):
    from core.errors import StoreUnavailable

    def unavailable(*args, **kwargs):
        raise StoreUnavailable('database is locked')

    client_queue = app_globals.event_broadcaster.add_client()
    monkeypatch.setattr(DatabaseManager, 'get_employee', unavailable)
    response = client.post('/api/attendance', json={'emp_id': 'E1', 'date': '2024-01-05'})
    monkeypatch.undo()

    assert response.status_code == 201
    assert response.get_json()['data']['date'] == '2024-01-05'
    assert len(client.get('/api/attendance?emp_id=E1').get_json()['data']) == 1
    assert '"name": "E1"' in client_queue.get_nowait()
