from flask import Blueprint
from flask_login import login_user, logout_user, login_required, current_user
from storeadmin.extensions import db
from storeadmin.errors import Conflict, InvalidInput, Unauthorized
from storeadmin.models import User, UserRole, UserStatus
from storeadmin.services.audit_service import actor_fields, log_audit
from storeadmin.utils import api_response, get_json_body, optional_text, \
    require_text
from datetime import datetime
import logging
import re

logger = logging.getLogger(__name__)

bp = Blueprint('auth', __name__)

EMAIL_PATTERN = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')


def normalize_email(value):
    if not isinstance(value, str) or not EMAIL_PATTERN.match(value.strip()):
        raise InvalidInput('Please provide a valid email')
    return value.strip().lower()


def _login(required_role):
    data = get_json_body()
    email = (data.get('email') or '').strip().lower()
    password = data.get('password') or ''

    if not email or not password:
        raise InvalidInput('Email and password are required')

    user = User.query.filter_by(email=email).first()
    if (not user or user.role != required_role
            or not user.check_password(password)):
        log_audit(
            actor_id=None,
            actor_role='ANONYMOUS',
            action='LOGIN_FAILED',
            target_type='USER',
            target_id=user.id if user else None,
            payload={
                'role': required_role.value,
                'reason': 'invalid_credentials' if user else 'user_not_found'}
        )
        raise Unauthorized('Invalid credentials')

    if not user.is_active:
        raise Unauthorized('Account is not active')

    login_user(user, remember=True)
    user.last_login_at = datetime.utcnow()
    db.session.commit()

    log_audit(
        actor_id=user.id,
        actor_role=user.role.value.upper(),
        action='LOGIN_SUCCESS',
        target_type='USER',
        target_id=user.id,
        payload={'event': 'login_success'}
    )
    return api_response(data={'user': user.to_dict()},
                        message='Login successful')


@bp.route('/api/v1/auth/admin/login', methods=['POST'])
def admin_login():
    return _login(UserRole.ADMIN)


@bp.route('/api/v1/auth/customer/login', methods=['POST'])
def customer_login():
    return _login(UserRole.CUSTOMER)


@bp.route('/api/v1/auth/customer/register', methods=['POST'])
def customer_register():
    data = get_json_body()
    full_name = require_text(data, 'fullName', min_length=2, max_length=255,
                             label='Full name')
    email = normalize_email(data.get('email'))
    password = data.get('password') or ''
    if not isinstance(password, str) or len(password) < 6:
        raise InvalidInput('Password must be at least 6 characters long')
    phone = optional_text(data, 'phone', max_length=20)

    if User.query.filter_by(email=email).first():
        raise Conflict('User with this email already exists')

    user = User(
        full_name=full_name,
        email=email,
        phone=phone,
        role=UserRole.CUSTOMER,
        status=UserStatus.ACTIVE
    )
    user.set_password(password)
    db.session.add(user)
    db.session.flush()
    # Auto username for new users (unique & human-friendly)
    user.username = f"user{user.id}"
    db.session.commit()

    log_audit(
        actor_id=user.id,
        actor_role='CUSTOMER',
        action='REGISTER_CUSTOMER',
        target_type='USER',
        target_id=user.id,
        payload={'email': email}
    )

    login_user(user, remember=True)
    return api_response(data={'user': user.to_dict()},
                        message='Registration successful', status=201)


@bp.route('/api/v1/auth/me', methods=['GET'])
@login_required
def me():
    return api_response(data={'user': current_user.to_dict()})


@bp.route('/api/v1/auth/logout', methods=['POST'])
@login_required
def logout():
    actor_id, actor_role = actor_fields(current_user)
    logout_user()
    log_audit(
        actor_id=actor_id,
        actor_role=actor_role,
        action='LOGOUT',
        target_type='USER',
        target_id=actor_id
    )
    return api_response(message='Logged out successfully')
