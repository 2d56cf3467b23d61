from flask import request, jsonify
from flask_login import current_user, logout_user
from functools import wraps
import logging

logger = logging.getLogger(__name__)

# Exact paths that never require login
LOGIN_WHITELIST = [
    '/health',
    '/api/v1/auth/admin/login',
    '/api/v1/auth/customer/login',
    '/api/v1/auth/customer/register',
]

# Catalog and content that anonymous visitors may browse
PUBLIC_BROWSE_PREFIXES = (
    '/api/v1/products',
    '/api/v1/categories',
    '/api/v1/reviews',
    '/api/v1/blogs',
)


def is_public_browse_path(path: str) -> bool:
    return path.startswith(PUBLIC_BROWSE_PREFIXES)


def is_static_file(path):
    return path.startswith('/static/')


def _unauthorized(message):
    return jsonify({'success': False, 'message': message}), 401


def setup_auth_middleware(app):

    @app.before_request
    def require_login():
        path = request.path
        method = request.method.upper()

        # UserMixin.is_authenticated already folds in is_active, so a
        # deactivated account only shows up as "not anonymous".
        if not current_user.is_anonymous and not current_user.is_active:
            logger.warning(
                "Rejecting request from inactive user %s", current_user.id)
            logout_user()
            return _unauthorized('Account is not active')

        # Allow static files
        if is_static_file(path):
            return None

        # Allow whitelist paths
        if path in LOGIN_WHITELIST:
            return None

        # Allow anonymous browsing for safe methods; the views decide
        # which of these still need a login.
        if method in (
            'GET',
            'HEAD',
                'OPTIONS') and is_public_browse_path(path):
            return None

        if path.startswith('/api/') and not current_user.is_authenticated:
            return _unauthorized('Access token required')

        return None


def role_required(*allowed_roles):
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not current_user.is_authenticated:
                return _unauthorized('Access token required')

            # allowed_roles is a list of role values.
            if current_user.role.value not in allowed_roles:
                logger.warning(
                    "User %s attempted to access roles %s, current role: %s",
                    current_user.id,
                    allowed_roles,
                    current_user.role.value,
                )
                return jsonify({
                    'success': False,
                    'message': 'Insufficient permissions',
                }), 403

            return f(*args, **kwargs)
        return decorated_function
    return decorator


def owner_or_admin_required(id_param='customer_id'):
    """Allow the customer named in the URL, or any admin."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not current_user.is_authenticated:
                return _unauthorized('Access token required')

            owner_id = kwargs.get(id_param)
            if owner_id != current_user.id and not current_user.is_admin:
                logger.warning(
                    "User %s attempted to access resources of user %s",
                    current_user.id,
                    owner_id,
                )
                return jsonify({
                    'success': False,
                    'message': 'No permission to access this resource',
                }), 403

            return f(*args, **kwargs)
        return decorated_function
    return decorator
