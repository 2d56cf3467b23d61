from flask import Blueprint, request
from flask_login import login_required, current_user
from sqlalchemy import func, or_
from storeadmin.extensions import db, atomic
from storeadmin.errors import InvalidInput, NotFound, OrderNotFound
from storeadmin.models import Order, OrderItem, ReturnOrder, ReturnStatus, \
    User, money
from storeadmin.middleware import role_required
from storeadmin.services.audit_service import actor_fields, log_audit
from storeadmin.utils import api_response, generate_reference, \
    get_json_body, get_page_args, optional_text, paginate_query, \
    parse_decimal, parse_enum, parse_int, require_text, status_counts
from datetime import datetime
from decimal import Decimal
import logging

logger = logging.getLogger(__name__)

bp = Blueprint('returns', __name__)

TERMINAL_STATUSES = {
    ReturnStatus.RETURNED,
    ReturnStatus.SCRAPPED,
    ReturnStatus.CANCELLED,
}


def _to_money(value):
    return Decimal(value or 0).quantize(Decimal('0.01'))

NEXT_STATUSES = {
    ReturnStatus.INITIATED: {ReturnStatus.IN_PROGRESS},
    ReturnStatus.IN_PROGRESS: {ReturnStatus.QC_IN_PROGRESS},
    ReturnStatus.QC_IN_PROGRESS: {
        ReturnStatus.RETURNED,
        ReturnStatus.SCRAPPED,
    },
}


def can_transition(current, new):
    if current in TERMINAL_STATUSES:
        return False
    if new == ReturnStatus.CANCELLED:
        return True
    return new in NEXT_STATUSES.get(current, set())


def _audit(action, return_order, payload):
    actor_id, actor_role = actor_fields(current_user)
    log_audit(
        actor_id=actor_id,
        actor_role=actor_role,
        action=action,
        target_type='RETURN_ORDER',
        target_id=return_order.id,
        payload=payload
    )


@bp.route('/api/v1/return-orders', methods=['GET'])
@login_required
@role_required('admin')
def list_returns():
    page, limit = get_page_args()
    query = ReturnOrder.query.join(
        Order, Order.id == ReturnOrder.order_id).join(
        User, User.id == ReturnOrder.customer_id)

    if request.args.get('status') and request.args.get('status') != 'all':
        query = query.filter(ReturnOrder.status == parse_enum(
            ReturnStatus, request.args.get('status'), 'status'))
    search = (request.args.get('search') or '').strip()
    if search:
        query = query.filter(or_(
            ReturnOrder.return_id.contains(search, autoescape=True),
            Order.order_number.contains(search, autoescape=True),
            User.full_name.contains(search, autoescape=True)))

    returns, pagination = paginate_query(
        query.order_by(ReturnOrder.return_date.desc(),
                       ReturnOrder.id.desc()), page, limit)
    return api_response(
        data=[return_order.to_dict() for return_order in returns],
        pagination=pagination)


@bp.route('/api/v1/return-orders/stats', methods=['GET'])
@login_required
@role_required('admin')
def return_stats():
    counts = status_counts(ReturnOrder, ReturnOrder.status)
    refunded = db.session.query(
        func.coalesce(func.sum(ReturnOrder.refund_amount), 0)
    ).filter(ReturnOrder.status == ReturnStatus.RETURNED).scalar()
    return api_response(data={
        'totalReturns': sum(counts.values()),
        'initiatedReturns': counts.get(ReturnStatus.INITIATED.value, 0),
        'inProgressReturns': counts.get(ReturnStatus.IN_PROGRESS.value, 0),
        'qcInProgressReturns': counts.get(
            ReturnStatus.QC_IN_PROGRESS.value, 0),
        'completedReturns': counts.get(ReturnStatus.RETURNED.value, 0),
        'scrappedReturns': counts.get(ReturnStatus.SCRAPPED.value, 0),
        'cancelledReturns': counts.get(ReturnStatus.CANCELLED.value, 0),
        'totalRefundAmount': money(refunded or 0),
    })


@bp.route('/api/v1/return-orders/<int:return_pk>', methods=['GET'])
@login_required
@role_required('admin')
def get_return(return_pk):
    return_order = db.session.get(ReturnOrder, return_pk)
    if not return_order:
        raise NotFound('Return order not found')
    return api_response(data=return_order.to_dict())


@bp.route('/api/v1/return-orders', methods=['POST'])
@login_required
@role_required('admin')
def create_return():
    data = get_json_body()
    order_id = parse_int(data.get('orderId'), 'orderId', minimum=1)
    product_id = parse_int(data.get('productId'), 'productId', minimum=1)
    quantity = parse_int(data.get('quantity'), 'quantity', minimum=1)
    reason = require_text(data, 'reason', label='Reason')
    refund_amount = parse_decimal(
        data.get('refundAmount'), 'refundAmount', minimum=0)

    with atomic():
        # Returns against one order are serialised on the order row.
        order = Order.query.filter_by(id=order_id).with_for_update().first()
        if not order:
            raise OrderNotFound()
        ordered, line_total = db.session.query(
            func.coalesce(func.sum(OrderItem.quantity), 0),
            func.coalesce(func.sum(OrderItem.total), 0)
        ).filter(
            OrderItem.order_id == order.id,
            OrderItem.product_id == product_id
        ).one()
        if not ordered:
            raise InvalidInput('Product is not part of this order')

        # Cancelled returns give their quantity and refund back.
        returned, refunded = db.session.query(
            func.coalesce(func.sum(ReturnOrder.quantity), 0),
            func.coalesce(func.sum(ReturnOrder.refund_amount), 0)
        ).filter(
            ReturnOrder.order_id == order.id,
            ReturnOrder.product_id == product_id,
            ReturnOrder.status != ReturnStatus.CANCELLED
        ).one()
        if quantity + returned > ordered:
            raise InvalidInput(
                f'Return quantity cannot exceed ordered quantity ({ordered})',
                extra={'alreadyReturned': returned})

        line_total = _to_money(line_total)
        refunded = _to_money(refunded)
        if refunded + refund_amount > line_total:
            raise InvalidInput(
                'Refund amount cannot exceed the order line total',
                extra={
                    'lineTotal': money(line_total),
                    'alreadyRefunded': money(refunded),
                })

        return_order = ReturnOrder(
            return_id=generate_reference('RET'),
            order_id=order.id,
            customer_id=order.customer_id,
            product_id=product_id,
            quantity=quantity,
            reason=reason,
            status=ReturnStatus.INITIATED,
            refund_amount=refund_amount,
            notes=optional_text(data, 'notes')
        )
        db.session.add(return_order)

    _audit('RETURN_CREATE', return_order, {
        'returnId': return_order.return_id,
        'orderId': order.id,
        'refundAmount': refund_amount,
    })
    return api_response(data=return_order.to_dict(),
                        message='Return order created successfully',
                        status=201)


@bp.route('/api/v1/return-orders/<int:return_pk>/status', methods=['PUT'])
@login_required
@role_required('admin')
def update_return_status(return_pk):
    data = get_json_body()
    status = parse_enum(ReturnStatus, data.get('status'), 'status')
    tracking_number = optional_text(data, 'trackingNumber', max_length=100)
    notes = optional_text(data, 'notes')

    with atomic():
        return_order = ReturnOrder.query.filter_by(
            id=return_pk).with_for_update().first()
        if not return_order:
            raise NotFound('Return order not found')

        previous = return_order.status
        if status != previous:
            if not can_transition(previous, status):
                raise InvalidInput(
                    f'Cannot change return status from {previous.value} '
                    f'to {status.value}')
            return_order.status = status
            if status in TERMINAL_STATUSES:
                return_order.processed_date = datetime.utcnow()
        if tracking_number is not None:
            return_order.tracking_number = tracking_number
        if notes is not None:
            return_order.notes = notes

    _audit('RETURN_STATUS_UPDATE', return_order, {
        'from': previous.value,
        'to': return_order.status.value,
    })
    return api_response(data=return_order.to_dict(),
                        message='Return order status updated successfully')
