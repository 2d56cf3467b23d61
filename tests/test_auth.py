from storeadmin.models import AuditLog, User, UserRole, UserStatus
from tests.conftest import PASSWORD, make_user


def _login(client, email, role='customer', password=PASSWORD):
    return client.post(f'/api/v1/auth/{role}/login', json={
        'email': email,
        'password': password,
    })


def _actions(app):
    with app.app_context():
        return [entry.action for entry in
                AuditLog.query.order_by(AuditLog.id).all()]


def test_login_per_role(app, admin_id, customer_id):
    admin = _login(app.test_client(), 'admin@example.com', role='admin')
    customer = _login(app.test_client(), ' JANE@example.com ')

    assert admin.status_code == 200
    assert admin.get_json()['data']['user']['role'] == 'admin'
    assert customer.status_code == 200
    assert customer.get_json()['data']['user']['email'] == 'jane@example.com'
    assert customer.get_json()['data']['user']['lastLoginAt'] is not None


def test_login_rejects_wrong_role_and_password(app, admin_id, customer_id):
    admin_as_customer = _login(app.test_client(), 'admin@example.com')
    wrong_password = _login(app.test_client(), 'jane@example.com',
                            password='nope-nope')
    unknown = _login(app.test_client(), 'ghost@example.com')

    for response in (admin_as_customer, wrong_password, unknown):
        assert response.status_code == 401
        assert response.get_json()['message'] == 'Invalid credentials'
    assert _actions(app) == ['LOGIN_FAILED'] * 3


def test_login_requires_fields(app):
    response = app.test_client().post('/api/v1/auth/customer/login',
                                      json={'email': 'jane@example.com'})

    assert response.status_code == 400


def test_inactive_account_cannot_log_in(app):
    make_user(app, 'blocked@example.com', status=UserStatus.SUSPENDED)

    response = _login(app.test_client(), 'blocked@example.com')

    assert response.status_code == 401
    assert response.get_json()['message'] == 'Account is not active'


def test_deactivated_session_is_rejected(app, customer_client, customer_id,
                                         admin_client):
    admin_client.patch(f'/api/v1/users/customers/{customer_id}/status',
                       json={'status': 'inactive'})

    response = customer_client.get('/api/v1/auth/me')

    assert response.status_code == 401
    assert response.get_json()['message'] == 'Account is not active'


def test_register_logs_in_new_customer(app):
    client = app.test_client()

    response = client.post('/api/v1/auth/customer/register', json={
        'fullName': 'Ada Lovelace',
        'email': 'Ada@Example.com',
        'password': 'engine1843',
        'phone': '555-0101',
    })

    assert response.status_code == 201
    user = response.get_json()['data']['user']
    assert user['email'] == 'ada@example.com'
    assert user['username'] == f"user{user['id']}"
    assert user['role'] == 'customer'
    me = client.get('/api/v1/auth/me')
    assert me.get_json()['data']['user']['id'] == user['id']
    assert 'REGISTER_CUSTOMER' in _actions(app)


def test_register_validation(app, customer_id):
    client = app.test_client()
    duplicate = client.post('/api/v1/auth/customer/register', json={
        'fullName': 'Jane Again',
        'email': 'jane@example.com',
        'password': 'secret123',
    })
    short_password = client.post('/api/v1/auth/customer/register', json={
        'fullName': 'Bob',
        'email': 'bob@example.com',
        'password': '123',
    })
    bad_email = client.post('/api/v1/auth/customer/register', json={
        'fullName': 'Bob',
        'email': 'not-an-email',
        'password': 'secret123',
    })

    assert duplicate.status_code == 400
    assert duplicate.get_json()['message'] == \
        'User with this email already exists'
    assert short_password.status_code == 400
    assert bad_email.status_code == 400
    with app.app_context():
        assert User.query.filter_by(role=UserRole.CUSTOMER).count() == 1


def test_logout_ends_session(app, customer_client):
    response = customer_client.post('/api/v1/auth/logout')

    assert response.status_code == 200
    assert customer_client.get('/api/v1/auth/me').status_code == 401
    assert _actions(app)[-1] == 'LOGOUT'


def test_health_is_public(app):
    response = app.test_client().get('/health')

    assert response.status_code == 200
    assert response.get_json()['success'] is True
