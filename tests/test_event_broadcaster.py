import json

from app.models.event_broadcaster import EventBroadcaster, format_sse_message


def parse(message):
    lines = message.strip().split('\n')
    assert lines[0].startswith('event: ')
    return lines[0][len('event: '):], json.loads(lines[1][len('data: '):])


def test_broadcast_reaches_every_client():
    broadcaster = EventBroadcaster()
    first, second = broadcaster.add_client(), broadcaster.add_client()

    delivered = broadcaster.broadcast_attendance_update('E1', 'Eve', 'created', record={'id': 1})

    assert delivered == 2
    event_type, payload = parse(first.get_nowait())
    assert event_type == 'attendance_marked'
    assert payload['data']['emp_id'] == 'E1'
    assert 'timestamp' in payload
    assert parse(second.get_nowait())[0] == 'attendance_marked'


def test_already_marked_uses_its_own_event_type():
    broadcaster = EventBroadcaster()
    client_queue = broadcaster.add_client()
    broadcaster.broadcast_attendance_update('E1', None, 'already_marked', distance=0.123456)

    event_type, payload = parse(client_queue.get_nowait())
    assert event_type == 'already_marked'
    assert payload['data']['name'] == 'E1'
    assert payload['data']['distance'] == 0.1235


def test_full_client_is_dropped():
    broadcaster = EventBroadcaster(queue_size=1)
    slow = broadcaster.add_client()

    broadcaster.broadcast_system_message('one')
    assert broadcaster.broadcast_system_message('two') == 0
    assert broadcaster.get_client_count() == 0
    assert parse(slow.get_nowait())[1]['data']['message'] == 'one'


def test_message_ends_with_blank_line():
    assert format_sse_message({'type': 'connected'}).endswith('\n\n')
