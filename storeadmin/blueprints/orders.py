from flask import Blueprint, request
from flask_login import login_required, current_user
from sqlalchemy import func, or_
from storeadmin.extensions import db
from storeadmin.errors import Forbidden, OrderNotFound
from storeadmin.models import Order, OrderStatus, PaymentStatus, User, money
from storeadmin.middleware import role_required, owner_or_admin_required
from storeadmin.services import order_service
from storeadmin.services.audit_service import actor_fields, log_audit
from storeadmin.utils import api_response, get_json_body, get_page_args, \
    paginate_query, parse_date, parse_enum, status_counts
from datetime import timedelta
import logging

logger = logging.getLogger(__name__)

bp = Blueprint('orders', __name__)


def _filtered_orders(args):
    query = Order.query
    if args.get('status'):
        query = query.filter(Order.status == parse_enum(
            OrderStatus, args.get('status'), 'status'))
    if args.get('paymentStatus'):
        query = query.filter(Order.payment_status == parse_enum(
            PaymentStatus, args.get('paymentStatus'), 'paymentStatus'))
    start = parse_date(args.get('startDate'), 'startDate')
    if start:
        query = query.filter(Order.order_date >= start)
    end = parse_date(args.get('endDate'), 'endDate')
    if end:
        query = query.filter(Order.order_date < end + timedelta(days=1))

    search = (args.get('search') or '').strip()
    if search:
        query = query.join(User, User.id == Order.customer_id).filter(or_(
            Order.order_number.contains(search, autoescape=True),
            User.full_name.contains(search, autoescape=True),
            User.email.contains(search, autoescape=True)))
    return query.order_by(Order.order_date.desc(), Order.id.desc())


@bp.route('/api/v1/orders', methods=['GET'])
@login_required
@role_required('admin')
def list_orders():
    page, limit = get_page_args()
    orders, pagination = paginate_query(
        _filtered_orders(request.args), page, limit)
    return api_response(
        data=[order.to_dict(with_items=False) for order in orders],
        pagination=pagination)


@bp.route('/api/v1/orders/stats', methods=['GET'])
@login_required
@role_required('admin')
def order_stats():
    counts = status_counts(Order, Order.status)
    revenue = db.session.query(
        func.coalesce(func.sum(Order.total_amount), 0)
    ).filter(Order.status == OrderStatus.DELIVERED).scalar()
    average = db.session.query(func.avg(Order.total_amount)).filter(
        Order.status != OrderStatus.CANCELLED).scalar()
    return api_response(data={
        'totalOrders': sum(counts.values()),
        'byStatus': counts,
        'byPaymentStatus': status_counts(Order, Order.payment_status),
        'totalRevenue': money(revenue or 0),
        'averageOrderValue': money(average or 0),
    })


@bp.route('/api/v1/orders/customer/<int:customer_id>', methods=['GET'])
@login_required
@owner_or_admin_required('customer_id')
def list_customer_orders(customer_id):
    page, limit = get_page_args()
    query = Order.query.filter_by(customer_id=customer_id).order_by(
        Order.order_date.desc(), Order.id.desc())
    orders, pagination = paginate_query(query, page, limit)
    return api_response(
        data=[order.to_dict() for order in orders],
        pagination=pagination)


@bp.route('/api/v1/orders/<int:order_id>', methods=['GET'])
@login_required
def get_order(order_id):
    order = db.session.get(Order, order_id)
    if not order:
        raise OrderNotFound()
    if not current_user.is_admin and order.customer_id != current_user.id:
        raise Forbidden('No permission to access this resource')
    return api_response(data=order.to_dict())


@bp.route('/api/v1/orders', methods=['POST'])
@login_required
def create_order():
    data = get_json_body()
    # Customers always order for themselves; admins name the customer.
    customer_id = (
        data.get('customerId') if current_user.is_admin else current_user.id)

    order = order_service.create_order(
        customer_id,
        data.get('items'),
        shipping_address=data.get('shippingAddress'),
        billing_address=data.get('billingAddress'),
        payment_method=data.get('paymentMethod'),
        notes=data.get('notes'),
        shipping_address_id=data.get('shippingAddressId'),
        billing_address_id=data.get('billingAddressId')
    )

    actor_id, actor_role = actor_fields(current_user)
    log_audit(
        actor_id=actor_id,
        actor_role=actor_role,
        action='ORDER_CREATE',
        target_type='ORDER',
        target_id=order.id,
        payload={
            'orderNumber': order.order_number,
            'customerId': order.customer_id,
            'totalAmount': order.total_amount,
            'itemCount': len(order.items),
        }
    )
    return api_response(data=order.to_dict(),
                        message='Order created successfully', status=201)


@bp.route('/api/v1/orders/<int:order_id>/status', methods=['PUT'])
@login_required
@role_required('admin')
def update_order_status(order_id):
    data = get_json_body()
    order, previous = order_service.update_order_status(
        order_id, data.get('status'))

    if previous != order.status:
        actor_id, actor_role = actor_fields(current_user)
        log_audit(
            actor_id=actor_id,
            actor_role=actor_role,
            action='ORDER_STATUS_UPDATE',
            target_type='ORDER',
            target_id=order.id,
            payload={'from': previous.value, 'to': order.status.value}
        )
    return api_response(data=order.to_dict(),
                        message='Order status updated successfully')
