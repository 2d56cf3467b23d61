from flask import Blueprint, request
from flask_login import login_required, current_user
from sqlalchemy import func, or_
from storeadmin.extensions import db
from storeadmin.errors import Conflict, CustomerNotFound, InvalidInput
from storeadmin.models import Order, OrderStatus, User, UserRole, \
    UserStatus, money
from storeadmin.middleware import role_required
from storeadmin.services.audit_service import actor_fields, log_audit
from storeadmin.blueprints.auth import normalize_email
from storeadmin.utils import api_response, get_json_body, get_page_args, \
    optional_text, paginate_query, parse_enum, require_text, status_counts
from datetime import datetime, timedelta
import logging

logger = logging.getLogger(__name__)

bp = Blueprint('users', __name__)


def _get_customer(customer_id):
    customer = db.session.get(User, customer_id)
    if not customer or customer.role != UserRole.CUSTOMER:
        raise CustomerNotFound()
    return customer


def _order_totals(customer_ids):
    if not customer_ids:
        return {}
    rows = db.session.query(
        Order.customer_id,
        func.count(Order.id),
        func.coalesce(func.sum(Order.total_amount), 0)
    ).filter(
        Order.customer_id.in_(customer_ids),
        Order.status != OrderStatus.CANCELLED
    ).group_by(Order.customer_id).all()
    return {
        customer_id: (count, total)
        for customer_id, count, total in rows
    }


@bp.route('/api/v1/users/customers', methods=['GET'])
@login_required
@role_required('admin')
def list_customers():
    page, limit = get_page_args()
    query = User.query.filter(User.role == UserRole.CUSTOMER)

    search = (request.args.get('search') or '').strip()
    if search:
        query = query.filter(or_(
            User.full_name.contains(search, autoescape=True),
            User.email.contains(search, autoescape=True),
            User.phone.contains(search, autoescape=True)))
    if request.args.get('status'):
        query = query.filter(User.status == parse_enum(
            UserStatus, request.args.get('status'), 'status'))

    customers, pagination = paginate_query(
        query.order_by(User.created_at.desc(), User.id.desc()), page, limit)
    totals = _order_totals([customer.id for customer in customers])

    data = []
    for customer in customers:
        count, spent = totals.get(customer.id, (0, 0))
        item = customer.to_dict()
        item['orderCount'] = count
        item['totalSpent'] = money(spent)
        data.append(item)
    return api_response(data=data, pagination=pagination)


@bp.route('/api/v1/users/customers/stats', methods=['GET'])
@login_required
@role_required('admin')
def customer_stats():
    counts = status_counts(
        User, User.status, filters=(User.role == UserRole.CUSTOMER,))
    since = datetime.utcnow() - timedelta(days=30)
    new_customers = User.query.filter(
        User.role == UserRole.CUSTOMER,
        User.created_at >= since).count()
    return api_response(data={
        'totalCustomers': sum(counts.values()),
        'activeCustomers': counts.get(UserStatus.ACTIVE.value, 0),
        'inactiveCustomers': counts.get(UserStatus.INACTIVE.value, 0),
        'suspendedCustomers': counts.get(UserStatus.SUSPENDED.value, 0),
        'newCustomersLast30Days': new_customers,
    })


@bp.route('/api/v1/users/customers', methods=['POST'])
@login_required
@role_required('admin')
def create_customer():
    data = get_json_body()
    full_name = require_text(data, 'fullName', min_length=2, max_length=255,
                             label='Full name')
    email = normalize_email(data.get('email'))
    password = data.get('password') or ''
    if not isinstance(password, str) or len(password) < 6:
        raise InvalidInput('Password must be at least 6 characters long')
    status = parse_enum(UserStatus, data.get('status'), 'status',
                        required=False) or UserStatus.ACTIVE

    if User.query.filter_by(email=email).first():
        raise Conflict('User with this email already exists')

    customer = User(
        full_name=full_name,
        email=email,
        phone=optional_text(data, 'phone', max_length=20),
        role=UserRole.CUSTOMER,
        status=status
    )
    customer.set_password(password)
    db.session.add(customer)
    db.session.flush()
    customer.username = f"user{customer.id}"
    db.session.commit()

    actor_id, actor_role = actor_fields(current_user)
    log_audit(
        actor_id=actor_id,
        actor_role=actor_role,
        action='CUSTOMER_CREATE',
        target_type='USER',
        target_id=customer.id,
        payload={'email': email}
    )
    return api_response(data=customer.to_dict(),
                        message='Customer created successfully', status=201)


@bp.route('/api/v1/users/customers/<int:customer_id>', methods=['GET'])
@login_required
@role_required('admin')
def get_customer(customer_id):
    customer = _get_customer(customer_id)
    count, spent = _order_totals([customer.id]).get(customer.id, (0, 0))

    data = customer.to_dict()
    data['orderCount'] = count
    data['totalSpent'] = money(spent)
    data['recentOrders'] = [
        order.to_dict(with_items=False)
        for order in customer.orders.order_by(
            Order.order_date.desc()).limit(5)
    ]
    data['addresses'] = [address.to_dict() for address in customer.addresses]
    return api_response(data=data)


@bp.route('/api/v1/users/customers/<int:customer_id>/status',
          methods=['PATCH'])
@login_required
@role_required('admin')
def update_customer_status(customer_id):
    data = get_json_body()
    status = parse_enum(UserStatus, data.get('status'), 'status')
    customer = _get_customer(customer_id)
    previous = customer.status
    customer.status = status
    db.session.commit()

    actor_id, actor_role = actor_fields(current_user)
    log_audit(
        actor_id=actor_id,
        actor_role=actor_role,
        action='CUSTOMER_STATUS_UPDATE',
        target_type='USER',
        target_id=customer.id,
        payload={'from': previous.value, 'to': status.value}
    )
    return api_response(data=customer.to_dict(),
                        message='Customer status updated successfully')
