from flask import current_app, jsonify, request
from datetime import datetime
from decimal import Decimal, InvalidOperation
from sqlalchemy import func
from storeadmin.errors import InvalidInput
from storeadmin.extensions import db
import random
import re
import time

TWO_PLACES = Decimal('0.01')


def api_response(data=None, message=None, status=200, pagination=None,
                 **extra):
    body = {'success': True}
    if message:
        body['message'] = message
    if data is not None:
        body['data'] = data
    if pagination is not None:
        body['pagination'] = pagination
    body.update(extra)
    return jsonify(body), status


def get_json_body():
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise InvalidInput('Request body must be a JSON object')
    return data


def get_request_data():
    # Multipart forms carry file uploads alongside the plain fields.
    if request.mimetype == 'multipart/form-data' or request.form:
        return request.form.to_dict()
    return get_json_body()


def get_page_args():
    per_page_default = current_app.config.get('ITEMS_PER_PAGE', 20)
    per_page_max = current_app.config.get('MAX_ITEMS_PER_PAGE', 100)
    page = request.args.get('page', 1, type=int) or 1
    limit = request.args.get('limit', per_page_default, type=int)
    if page < 1:
        page = 1
    if not limit or limit < 1:
        limit = per_page_default
    return page, min(limit, per_page_max)


def paginate_query(query, page=1, per_page=20):
    pagination = query.paginate(
        page=page,
        per_page=per_page,
        error_out=False
    )
    return pagination.items, {
        'page': pagination.page,
        'limit': pagination.per_page,
        'total': pagination.total,
        'pages': pagination.pages,
    }


def generate_reference(prefix, spread=1000):
    """Human readable identifier like ``ORD-1700000000000-123``."""
    millis = int(time.time() * 1000)
    return f'{prefix}-{millis}-{random.randrange(spread)}'


def slugify(value):
    slug = re.sub(r'[^a-z0-9]+', '-', (value or '').lower())
    return slug.strip('-')


def parse_enum(enum_cls, value, field, required=True):
    if value is None or value == '':
        if required:
            raise InvalidInput(f'{field} is required')
        return None
    for member in enum_cls:
        if member.value == value:
            return member
    allowed = ', '.join(member.value for member in enum_cls)
    raise InvalidInput(f'Invalid {field}. Allowed values: {allowed}')


def parse_int(value, field, minimum=None, maximum=None, required=True):
    if value is None or value == '':
        if required:
            raise InvalidInput(f'{field} is required')
        return None
    if isinstance(value, bool):
        raise InvalidInput(f'{field} must be an integer')
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise InvalidInput(f'{field} must be an integer')
    if isinstance(value, float) and value != number:
        raise InvalidInput(f'{field} must be an integer')
    if minimum is not None and number < minimum:
        raise InvalidInput(f'{field} must be at least {minimum}')
    if maximum is not None and number > maximum:
        raise InvalidInput(f'{field} must be at most {maximum}')
    return number


def parse_decimal(value, field, minimum=None, required=True,
                  exclusive_minimum=False):
    if value is None or value == '':
        if required:
            raise InvalidInput(f'{field} is required')
        return None
    if isinstance(value, bool):
        raise InvalidInput(f'{field} must be a number')
    try:
        number = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise InvalidInput(f'{field} must be a number')
    if not number.is_finite():
        raise InvalidInput(f'{field} must be a number')
    if minimum is not None:
        if exclusive_minimum and number <= minimum:
            raise InvalidInput(f'{field} must be greater than {minimum}')
        if not exclusive_minimum and number < minimum:
            raise InvalidInput(f'{field} must be at least {minimum}')
    return number.quantize(TWO_PLACES)


def parse_bool(value, default=False):
    if value is None or value == '':
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ('1', 'true', 'yes', 'on')


def parse_date(value, field):
    if not value:
        return None
    try:
        return datetime.strptime(value, '%Y-%m-%d')
    except ValueError:
        raise InvalidInput(f'{field} must use the YYYY-MM-DD format')


def require_text(data, field, min_length=1, max_length=None, label=None):
    label = label or field
    value = data.get(field)
    if not isinstance(value, str) or len(value.strip()) < min_length:
        if min_length > 1:
            raise InvalidInput(
                f'{label} must be at least {min_length} characters long')
        raise InvalidInput(f'{label} is required')
    value = value.strip()
    if max_length is not None and len(value) > max_length:
        raise InvalidInput(f'{label} must not exceed {max_length} characters')
    return value


def optional_text(data, field, max_length=None, label=None):
    value = data.get(field)
    if value is None:
        return None
    if not isinstance(value, str):
        raise InvalidInput(f'{label or field} must be a string')
    value = value.strip()
    if max_length is not None and len(value) > max_length:
        raise InvalidInput(
            f'{label or field} must not exceed {max_length} characters')
    return value or None


def status_counts(model, column, filters=()):
    """Row count per enum value of ``column``, keyed by the wire value."""
    rows = db.session.query(column, func.count(model.id)).filter(
        *filters).group_by(column).all()
    return {value.value: count for value, count in rows if value is not None}
