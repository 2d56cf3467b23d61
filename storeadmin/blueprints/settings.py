from flask import Blueprint, current_app
from flask_login import login_required, current_user
from storeadmin.extensions import db
from storeadmin.errors import Conflict, InvalidInput, Unauthorized
from storeadmin.models import SystemSetting, User
from storeadmin.middleware import role_required
from storeadmin.services.audit_service import actor_fields, log_audit
from storeadmin.blueprints.auth import normalize_email
from storeadmin.utils import api_response, get_json_body, optional_text, \
    parse_bool, require_text
import logging

logger = logging.getLogger(__name__)

bp = Blueprint('settings', __name__)

SYSTEM_SETTINGS_KEY = 'system'


def default_system_settings():
    return {
        'siteName': current_app.config['SITE_NAME'],
        'frontendUrl': current_app.config['FRONTEND_URL'],
        'adminEmail': current_app.config['ADMIN_EMAIL'],
        'currency': 'USD',
        'taxRate': float(current_app.config['ORDER_TAX_RATE']),
        'shippingFee': float(current_app.config['ORDER_SHIPPING_FEE']),
        'maintenanceMode': False,
    }


def _audit(action, payload=None):
    actor_id, actor_role = actor_fields(current_user)
    log_audit(
        actor_id=actor_id,
        actor_role=actor_role,
        action=action,
        target_type='USER',
        target_id=actor_id,
        payload=payload
    )


@bp.route('/api/v1/settings/profile', methods=['PUT'])
@login_required
def update_profile():
    data = get_json_body()
    if 'fullName' in data:
        current_user.full_name = require_text(
            data, 'fullName', min_length=2, max_length=255,
            label='Full name')
    if 'phone' in data:
        current_user.phone = optional_text(data, 'phone', max_length=20)
    if 'avatar' in data:
        current_user.avatar = optional_text(data, 'avatar', max_length=500)
    db.session.commit()

    _audit('PROFILE_UPDATE', {'fields': sorted(data)})
    return api_response(data=current_user.to_dict(),
                        message='Profile updated successfully')


@bp.route('/api/v1/settings/password', methods=['PUT'])
@login_required
def change_password():
    data = get_json_body()
    current_password = data.get('currentPassword') or ''
    new_password = data.get('newPassword') or ''

    if not current_user.check_password(current_password):
        raise Unauthorized('Current password is incorrect')
    if not isinstance(new_password, str) or len(new_password) < 6:
        raise InvalidInput('New password must be at least 6 characters long')

    current_user.set_password(new_password)
    db.session.commit()

    _audit('PASSWORD_CHANGE')
    return api_response(message='Password changed successfully')


@bp.route('/api/v1/settings/email', methods=['PUT'])
@login_required
def change_email():
    data = get_json_body()
    email = normalize_email(data.get('email'))
    if not current_user.check_password(data.get('password') or ''):
        raise Unauthorized('Password is incorrect')
    if User.query.filter(User.email == email,
                         User.id != current_user.id).first():
        raise Conflict('Email is already in use')

    previous = current_user.email
    current_user.email = email
    db.session.commit()

    _audit('EMAIL_CHANGE', {'from': previous, 'to': email})
    return api_response(data=current_user.to_dict(),
                        message='Email updated successfully')


@bp.route('/api/v1/settings/system', methods=['GET'])
@login_required
@role_required('admin')
def get_system_settings():
    settings = default_system_settings()
    stored = db.session.get(SystemSetting, SYSTEM_SETTINGS_KEY)
    if stored:
        settings.update(stored.get_value() or {})
    return api_response(data=settings)


@bp.route('/api/v1/settings/system', methods=['PUT'])
@login_required
@role_required('admin')
def update_system_settings():
    data = get_json_body()
    defaults = default_system_settings()
    unknown = sorted(set(data) - set(defaults))
    if unknown:
        raise InvalidInput(f"Unknown settings: {', '.join(unknown)}")
    if 'maintenanceMode' in data:
        data['maintenanceMode'] = parse_bool(data['maintenanceMode'])

    stored = db.session.get(SystemSetting, SYSTEM_SETTINGS_KEY)
    if not stored:
        stored = SystemSetting(key=SYSTEM_SETTINGS_KEY)
        stored.set_value({})
        db.session.add(stored)
    values = stored.get_value() or {}
    values.update(data)
    stored.set_value(values)
    stored.updated_by = current_user.id
    db.session.commit()

    _audit('SYSTEM_SETTINGS_UPDATE', {'fields': sorted(data)})
    defaults.update(values)
    return api_response(data=defaults,
                        message='System settings updated successfully')
