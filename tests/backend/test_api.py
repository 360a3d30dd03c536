import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from backend.create_admin import create_admin
from backend.database import Base, get_db
from backend.main import app


@pytest.fixture
def client():
    engine = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)

    def override_get_db():
        db = testing_session_local()
        try:
            yield db
        finally:
            db.close()

    setup = testing_session_local()
    create_admin(setup, 'admin@example.com', 'admin-pass')
    setup.close()

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


def _auth(token: str) -> dict:
    return {'Authorization': f'Bearer {token}'}


def _signup(client: TestClient, email: str, user_type: str = 'student', **extra) -> dict:
    response = client.post('/api/auth/signup', json={
        'firstName': 'Test',
        'lastName': email.split('@')[0].title(),
        'email': email,
        'password': 'secret123',
        'userType': user_type,
        **extra,
    })
    assert response.status_code == 201
    return response.json()


def _login(client: TestClient, email: str, password: str = 'secret123') -> str:
    response = client.post('/api/auth/login', json={'email': email, 'password': password})
    assert response.status_code == 200
    return response.json()['token']


def test_health_route(client) -> None:
    assert client.get('/').json() == {'status': 'Tutoring Marketplace API Running'}


def test_profile_requires_bearer_token(client) -> None:
    response = client.get('/api/auth/profile')

    assert response.status_code == 401
    assert response.json() == {'error': 'No token provided'}


def test_duplicate_signup_renders_error_envelope(client) -> None:
    _signup(client, 'sam@example.com')

    response = client.post('/api/auth/signup', json={
        'firstName': 'Sam',
        'lastName': 'Again',
        'email': 'sam@example.com',
        'password': 'secret123',
        'userType': 'student',
    })

    assert response.status_code == 409
    assert response.json() == {'error': 'Email already registered'}


def test_body_validation_errors_render_as_400(client) -> None:
    token = _signup(client, 'sam@example.com')['token']

    response = client.post(
        '/api/tutor/create-request',
        json={'subject': 'Math', 'priority': 'urgent', 'requestedTime': '1hour'},
        headers=_auth(token),
    )

    assert response.status_code == 400
    assert response.json() == {'error': 'Priority must be low, medium, or high.'}


def test_students_cannot_approve_tutors(client) -> None:
    token = _signup(client, 'sam@example.com')['token']
    applicant = _signup(client, 'tia@example.com', user_type='tutor')['user']

    response = client.post(f"/api/tutor/approve-tutor/{applicant['id']}", headers=_auth(token))

    assert response.status_code == 403
    assert response.json() == {'error': 'Only admins can perform this action'}


def test_full_tutoring_lifecycle_over_http(client) -> None:
    student_token = _signup(client, 'sam@example.com')['token']
    applicant = _signup(
        client,
        'tia@example.com',
        user_type='tutor',
        tutorProfile={'subjects': ['Math'], 'availability': ['1hour']},
    )
    assert applicant['user']['userType'] == 'student'
    assert applicant['user']['applicationStatus'] == 'pending'

    admin_token = _login(client, 'admin@example.com', 'admin-pass')
    pending = client.get('/api/tutor/pending-applications', headers=_auth(admin_token)).json()
    assert [entry['user']['email'] for entry in pending['applications']] == ['tia@example.com']

    approved = client.post(f"/api/tutor/approve-tutor/{applicant['user']['id']}", headers=_auth(admin_token))
    assert approved.json()['user']['userType'] == 'tutor'
    tutor_token = _login(client, 'tia@example.com')

    created = client.post(
        '/api/tutor/create-request',
        json={'subject': 'Math', 'description': 'Fractions', 'priority': 'high', 'requestedTime': '1hour'},
        headers=_auth(student_token),
    )
    assert created.status_code == 201
    request_id = created.json()['request']['id']

    open_requests = client.get('/api/tutor/requests', headers=_auth(tutor_token)).json()['requests']
    assert [item['id'] for item in open_requests] == [request_id]
    assert open_requests[0]['studentName'] == 'Test Sam'

    accepted = client.post(
        '/api/tutor/accept-request',
        json={'requestId': request_id, 'tutorName': 'Tia'},
        headers=_auth(tutor_token),
    ).json()
    assert accepted['success'] is True
    assert accepted['tutorEmail'] == 'tia@example.com'
    session_id = accepted['sessionRef']['id']
    assert accepted['sessionRef']['meetingLink'].endswith(accepted['sessionRef']['meetingPassword'])

    again = client.post('/api/tutor/accept-request', json={'requestId': request_id}, headers=_auth(tutor_token))
    assert again.status_code == 409

    student_sessions = client.get('/api/tutor/student-sessions', headers=_auth(student_token)).json()['sessions']
    assert [item['id'] for item in student_sessions] == [session_id]

    non_finite = client.post(
        '/api/tutor/complete-session',
        content=f'{{"sessionId": {session_id}, "hoursSpent": NaN}}',
        headers={**_auth(tutor_token), 'Content-Type': 'application/json'},
    )
    assert non_finite.status_code == 400
    assert 'error' in non_finite.json()

    completed = client.post(
        '/api/tutor/complete-session',
        json={'sessionId': session_id, 'hoursSpent': 1.5},
        headers=_auth(tutor_token),
    )
    assert completed.json()['success'] is True

    stats = client.get('/api/tutor/stats', headers=_auth(student_token)).json()
    assert stats['stats'] == {'requestsMade': 1, 'sessionsCompleted': 1, 'hoursLearned': '1.5'}
    my_requests = client.get('/api/tutor/my-requests', headers=_auth(student_token)).json()['requests']
    assert my_requests[0]['status'] == 'completed'


def test_denied_applicant_can_still_log_in(client) -> None:
    applicant = _signup(client, 'tia@example.com', user_type='tutor')['user']
    admin_token = _login(client, 'admin@example.com', 'admin-pass')

    denied = client.post(
        f"/api/tutor/deny-tutor/{applicant['id']}",
        json={'reason': 'insufficient experience'},
        headers=_auth(admin_token),
    )
    assert denied.json() == {'success': True, 'message': 'Application denied'}

    token = _login(client, 'tia@example.com')
    status = client.get('/api/tutor/application-status', headers=_auth(token)).json()
    assert status['status'] == 'denied'
    assert status['userType'] == 'student'
    assert status['application']['denialReason'] == 'insufficient experience'
