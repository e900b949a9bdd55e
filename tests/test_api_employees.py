from app import globals as app_globals


def test_create_and_fetch_employee(client, add_employee):
    created = add_employee('E1', 'Eve', department='Ops', joinDate='2024-01-02', join_date=None)
    assert created['emp_id'] == 'E1'
    assert created['join_date'] == '2024-01-02'
    assert created['department'] == 'Ops'
    assert created['active'] is True

    response = client.get('/api/employees/E1')
    assert response.status_code == 200
    assert response.get_json()['data']['name'] == 'Eve'


def test_list_is_ordered_by_name(client, add_employee):
    add_employee('E2', 'Zed')
    add_employee('E1', 'Amy')
    add_employee('E3', 'Bob', active=False)

    names = [e['name'] for e in client.get('/api/employees').get_json()['data']]
    assert names == ['Amy', 'Bob', 'Zed']

    active = client.get('/api/employees?active_only=1').get_json()['data']
    assert [e['emp_id'] for e in active] == ['E1', 'E2']


def test_duplicate_emp_id_conflicts(client, add_employee):
    add_employee('E1', 'Eve')
    response = client.post('/api/employees', json={'emp_id': 'E1', 'name': 'Other'})
    assert response.status_code == 409
    assert response.get_json()['success'] is False


def test_create_requires_id_and_name(client):
    response = client.post('/api/employees', json={'name': 'Nobody'})
    assert response.status_code == 400
    assert response.get_json()['message'] == 'Missing emp_id or name'


def test_create_rejects_malformed_join_date(client):
    response = client.post('/api/employees', json={'emp_id': 'E1', 'name': 'Eve', 'join_date': '01/02/2024'})
    assert response.status_code == 400
    assert response.get_json()['field'] == 'join_date'


def test_photo_is_enrolled_into_gallery(client, add_employee, make_photo):
    created = add_employee('E1', 'Eve', photo=make_photo('red'))
    assert created['descriptor_count'] == 1
    assert created['has_photo'] is True
    assert app_globals.face_recognition_manager.gallery.employee_ids() == ['E1']

    with_photo = client.get('/api/employees/E1?include_photo=1').get_json()['data']
    assert with_photo['photo'].startswith('data:image/png;base64,')


def test_photo_without_face_is_kept_but_not_enrolled(client, make_photo):
    response = client.post('/api/employees', json={'emp_id': 'E1', 'name': 'Eve', 'photo': make_photo('gray')})
    assert response.status_code == 201
    body = response.get_json()
    assert body['face_enrolled'] is False
    assert body['data']['descriptor_count'] == 0
    assert app_globals.face_recognition_manager.gallery.is_empty()


def test_update_metadata(client, add_employee):
    add_employee('E1', 'Eve')
    response = client.put('/api/employees/E1', json={'name': 'Eve Adams', 'join_date': '2023-12-01'})
    assert response.status_code == 200
    data = response.get_json()['data']
    assert data['name'] == 'Eve Adams'
    assert data['join_date'] == '2023-12-01'


def test_update_rejects_empty_body_and_id_change(client, add_employee):
    add_employee('E1', 'Eve')
    assert client.put('/api/employees/E1', json={}).status_code == 400
    assert client.put('/api/employees/E1', json={'emp_id': 'E2', 'name': 'X'}).status_code == 400


def test_replacing_photo_replaces_descriptors(client, add_employee, make_photo):
    add_employee('E1', 'Eve', photo=make_photo('red'))
    client.post('/api/employees/E1/photos', json={'photo': make_photo('green')})
    assert client.get('/api/employees/E1').get_json()['data']['descriptor_count'] == 2

    response = client.put('/api/employees/E1', json={'photo': make_photo('blue')})
    assert response.get_json()['face_enrolled'] is True
    assert response.get_json()['data']['descriptor_count'] == 1


def test_deactivating_removes_employee_from_gallery(client, add_employee, make_photo):
    add_employee('E1', 'Eve', photo=make_photo('red'))
    client.put('/api/employees/E1', json={'active': False})
    assert app_globals.face_recognition_manager.gallery.is_empty()


def test_add_photo_without_face_is_unprocessable(client, add_employee, make_photo):
    add_employee('E1', 'Eve')
    response = client.post('/api/employees/E1/photos', json={'photo': make_photo('gray')})
    assert response.status_code == 422
    assert client.post('/api/employees/E1/photos', json={}).status_code == 400


def test_delete_keeps_attendance_history(client, add_employee, make_photo):
    add_employee('E1', 'Eve', photo=make_photo('red'))
    client.post('/api/attendance', json={'emp_id': 'E1', 'date': '2024-01-03'})

    assert client.delete('/api/employees/E1').status_code == 200
    assert client.get('/api/employees/E1').status_code == 404
    assert client.delete('/api/employees/E1').status_code == 404
    assert app_globals.face_recognition_manager.gallery.is_empty()
    assert len(client.get('/api/attendance?emp_id=E1').get_json()['data']) == 1


def test_unknown_employee_is_404(client):
    response = client.get('/api/employees/NOPE')
    assert response.status_code == 404
    assert response.get_json() == {'success': False, 'message': 'Employee NOPE not found'}
