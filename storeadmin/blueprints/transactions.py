from flask import Blueprint, request
from flask_login import login_required, current_user
from sqlalchemy import or_
from storeadmin.extensions import db
from storeadmin.errors import Forbidden, TransactionNotFound
from storeadmin.models import PaymentMethod, Transaction, \
    TransactionStatus, TransactionType, User
from storeadmin.middleware import role_required, owner_or_admin_required
from storeadmin.services import ledger_service
from storeadmin.services.audit_service import actor_fields, log_audit
from storeadmin.utils import api_response, get_json_body, get_page_args, \
    paginate_query, parse_date, parse_enum
from datetime import timedelta
import logging

logger = logging.getLogger(__name__)

bp = Blueprint('transactions', __name__)


def _filtered_transactions(args):
    query = Transaction.query.join(User, User.id == Transaction.customer_id)
    if args.get('status'):
        query = query.filter(Transaction.status == parse_enum(
            TransactionStatus, args.get('status'), 'status'))
    if args.get('transactionType'):
        query = query.filter(Transaction.transaction_type == parse_enum(
            TransactionType, args.get('transactionType'), 'transactionType'))
    if args.get('paymentMethod'):
        query = query.filter(Transaction.payment_method == parse_enum(
            PaymentMethod, args.get('paymentMethod'), 'paymentMethod'))
    start = parse_date(args.get('startDate'), 'startDate')
    if start:
        query = query.filter(Transaction.created_at >= start)
    end = parse_date(args.get('endDate'), 'endDate')
    if end:
        query = query.filter(Transaction.created_at < end + timedelta(days=1))
    search = (args.get('search') or '').strip()
    if search:
        query = query.filter(or_(
            Transaction.transaction_id.contains(search, autoescape=True),
            Transaction.gateway_transaction_id.contains(
                search, autoescape=True),
            User.full_name.contains(search, autoescape=True),
            User.email.contains(search, autoescape=True)))
    return query.order_by(Transaction.created_at.desc(),
                          Transaction.id.desc())


def _audit(action, transaction, payload):
    actor_id, actor_role = actor_fields(current_user)
    log_audit(
        actor_id=actor_id,
        actor_role=actor_role,
        action=action,
        target_type='TRANSACTION',
        target_id=transaction.id,
        payload=payload
    )


@bp.route('/api/v1/transactions/stats', methods=['GET'])
@login_required
@role_required('admin')
def transaction_stats():
    return api_response(data=ledger_service.transaction_stats())


@bp.route('/api/v1/transactions', methods=['GET'])
@login_required
@role_required('admin')
def list_transactions():
    page, limit = get_page_args()
    transactions, pagination = paginate_query(
        _filtered_transactions(request.args), page, limit)
    return api_response(
        data=[transaction.to_dict() for transaction in transactions],
        pagination=pagination)


@bp.route('/api/v1/transactions/customer/<int:customer_id>',
          methods=['GET'])
@login_required
@owner_or_admin_required('customer_id')
def list_customer_transactions(customer_id):
    page, limit = get_page_args()
    query = Transaction.query.filter_by(customer_id=customer_id).order_by(
        Transaction.created_at.desc(), Transaction.id.desc())
    transactions, pagination = paginate_query(query, page, limit)
    return api_response(
        data=[transaction.to_dict() for transaction in transactions],
        pagination=pagination)


@bp.route('/api/v1/transactions/<int:transaction_pk>', methods=['GET'])
@login_required
def get_transaction(transaction_pk):
    transaction = db.session.get(Transaction, transaction_pk)
    if not transaction:
        raise TransactionNotFound()
    if (not current_user.is_admin
            and transaction.customer_id != current_user.id):
        raise Forbidden('No permission to access this resource')
    data = transaction.to_dict()
    data['refunds'] = [refund.to_dict() for refund in transaction.refunds]
    return api_response(data=data)


@bp.route('/api/v1/transactions', methods=['POST'])
@login_required
@role_required('admin')
def create_transaction():
    transaction = ledger_service.create_transaction(get_json_body())
    _audit('PAYMENT_TRANSACTION_CREATE', transaction, {
        'transactionId': transaction.transaction_id,
        'amount': transaction.amount,
        'transactionType': transaction.transaction_type.value,
    })
    return api_response(data=transaction.to_dict(),
                        message='Transaction created successfully',
                        status=201)


@bp.route('/api/v1/transactions/<int:transaction_pk>/status',
          methods=['PUT'])
@login_required
@role_required('admin')
def update_transaction_status(transaction_pk):
    data = get_json_body()
    transaction, previous = ledger_service.update_status(
        transaction_pk,
        data.get('status'),
        failure_reason=data.get('failureReason'),
        gateway_transaction_id=data.get('gatewayTransactionId')
    )
    if previous != transaction.status:
        _audit('PAYMENT_STATUS_UPDATE', transaction, {
            'from': previous.value,
            'to': transaction.status.value,
        })
    return api_response(data=transaction.to_dict(),
                        message='Transaction status updated successfully')


@bp.route('/api/v1/transactions/refund', methods=['POST'])
@login_required
@role_required('admin')
def process_refund():
    data = get_json_body()
    refund, original = ledger_service.process_refund(
        data.get('transactionId'), data.get('amount'), data.get('reason'))
    _audit('REFUND_PROCESS', refund, {
        'refundTransactionId': refund.transaction_id,
        'originalTransactionId': original.transaction_id,
        'amount': refund.amount,
        'originalStatus': original.status.value,
    })
    return api_response(
        data={
            'refund': refund.to_dict(),
            'originalTransaction': original.to_dict(),
        },
        message='Refund processed successfully',
        status=201)
