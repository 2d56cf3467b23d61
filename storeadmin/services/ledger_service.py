"""Payment transactions and refunds."""
from decimal import Decimal
from sqlalchemy import func
from storeadmin.extensions import db, atomic
from storeadmin.errors import CustomerNotFound, InvalidInput, \
    OrderNotFound, RefundExceedsOriginal, TransactionNotFound
from storeadmin.models import Order, PaymentMethod, PaymentStatus, \
    Transaction, TransactionStatus, TransactionType, User, money
from storeadmin.utils import generate_reference, optional_text, parse_decimal, \
    parse_enum, parse_int, status_counts
import logging

logger = logging.getLogger(__name__)

# Transaction status -> order payment status, applied on first arrival only
PAYMENT_STATUS_PROPAGATION = {
    TransactionStatus.COMPLETED: PaymentStatus.PAID,
    TransactionStatus.FAILED: PaymentStatus.FAILED,
    TransactionStatus.REFUNDED: PaymentStatus.REFUNDED,
}


def create_transaction(data):
    customer_id = parse_int(data.get('customerId'), 'customerId', minimum=1)
    order_id = parse_int(
        data.get('orderId'), 'orderId', minimum=1, required=False)
    amount = parse_decimal(
        data.get('amount'), 'amount', minimum=0, exclusive_minimum=True)
    transaction_type = parse_enum(
        TransactionType, data.get('transactionType'), 'transactionType')
    payment_method = parse_enum(
        PaymentMethod, data.get('paymentMethod'), 'paymentMethod')
    currency = (optional_text(data, 'currency', max_length=10) or 'USD').upper()
    metadata = data.get('metadata')
    if metadata is not None and not isinstance(metadata, dict):
        raise InvalidInput('metadata must be an object')

    if not db.session.get(User, customer_id):
        raise CustomerNotFound()
    if order_id is not None and not db.session.get(Order, order_id):
        raise OrderNotFound()

    with atomic():
        transaction = Transaction(
            transaction_id=generate_reference('TXN', spread=10000),
            customer_id=customer_id,
            order_id=order_id,
            amount=amount,
            currency=currency,
            transaction_type=transaction_type,
            status=TransactionStatus.PENDING,
            payment_method=payment_method,
            payment_gateway=optional_text(
                data, 'paymentGateway', max_length=50),
            gateway_transaction_id=optional_text(
                data, 'gatewayTransactionId', max_length=255),
            description=optional_text(data, 'description')
        )
        transaction.set_metadata(metadata)
        db.session.add(transaction)

    logger.info(
        "Transaction %s recorded: %s %s %s",
        transaction.transaction_id, transaction_type.value, amount, currency)
    return transaction


def update_status(transaction_pk, status, failure_reason=None,
                  gateway_transaction_id=None):
    """Move a transaction to ``status``.

    The owning order's payment status follows only when the transaction
    actually changes status, so repeating a call has no further effect.
    """
    new_status = parse_enum(TransactionStatus, status, 'status')
    failure_reason = optional_text(
        {'failureReason': failure_reason}, 'failureReason')
    gateway_transaction_id = optional_text(
        {'gatewayTransactionId': gateway_transaction_id},
        'gatewayTransactionId', max_length=255)

    with atomic():
        transaction = Transaction.query.filter_by(
            id=transaction_pk).with_for_update().first()
        if not transaction:
            raise TransactionNotFound()

        previous = transaction.status
        transaction.status = new_status
        if failure_reason is not None:
            transaction.failure_reason = failure_reason
        if gateway_transaction_id is not None:
            transaction.gateway_transaction_id = gateway_transaction_id

        payment_status = PAYMENT_STATUS_PROPAGATION.get(new_status)
        if (previous != new_status and payment_status is not None
                and transaction.order_id is not None):
            order = Order.query.filter_by(
                id=transaction.order_id).with_for_update().first()
            if order:
                order.payment_status = payment_status
                logger.info(
                    "Order %s payment status -> %s via %s",
                    order.order_number, payment_status.value,
                    transaction.transaction_id)

    return transaction, previous


def refunded_total(original):
    total = db.session.query(
        func.coalesce(func.sum(Transaction.amount), 0)
    ).filter(
        Transaction.original_transaction_id == original.id,
        Transaction.transaction_type == TransactionType.REFUND,
        Transaction.status == TransactionStatus.COMPLETED
    ).scalar()
    return Decimal(total or 0).quantize(Decimal('0.01'))


def process_refund(transaction_id, amount, reason=None):
    """Refund part or all of a completed transaction.

    Refunds are summed per original, so a series of partial refunds can
    never exceed what was paid. The original flips to ``refunded`` once the
    full amount has been returned.
    """
    if not isinstance(transaction_id, str) or not transaction_id.strip():
        raise InvalidInput('transactionId is required')
    amount = parse_decimal(amount, 'amount', minimum=0, exclusive_minimum=True)
    reason = optional_text({'reason': reason}, 'reason')

    with atomic():
        # Refund rows are themselves completed; they are never refundable.
        original = Transaction.query.filter(
            Transaction.transaction_id == transaction_id.strip(),
            Transaction.status == TransactionStatus.COMPLETED,
            Transaction.transaction_type != TransactionType.REFUND
        ).with_for_update().first()
        if not original:
            raise TransactionNotFound('Completed transaction not found')

        already_refunded = refunded_total(original)
        original_amount = Decimal(original.amount)
        if already_refunded + amount > original_amount:
            raise RefundExceedsOriginal(extra={
                'originalAmount': money(original_amount),
                'alreadyRefunded': money(already_refunded),
            })

        refund = Transaction(
            transaction_id=generate_reference('RFND', spread=10000),
            customer_id=original.customer_id,
            order_id=original.order_id,
            original_transaction_id=original.id,
            amount=amount,
            currency=original.currency,
            transaction_type=TransactionType.REFUND,
            status=TransactionStatus.COMPLETED,
            payment_method=original.payment_method,
            payment_gateway=original.payment_gateway,
            description=reason or f'Refund for {original.transaction_id}'
        )
        refund.set_metadata({
            'originalTransactionId': original.transaction_id,
            'reason': reason,
        })
        db.session.add(refund)

        fully_refunded = already_refunded + amount == original_amount
        if fully_refunded:
            original.status = TransactionStatus.REFUNDED
            if original.order_id is not None:
                order = Order.query.filter_by(
                    id=original.order_id).with_for_update().first()
                if order:
                    order.payment_status = PaymentStatus.REFUNDED

    logger.info(
        "Refund %s of %s against %s (full=%s)",
        refund.transaction_id, amount, transaction_id, fully_refunded)
    return refund, original


def transaction_stats():
    counts = status_counts(Transaction, Transaction.status)
    volume = db.session.query(
        func.coalesce(func.sum(Transaction.amount), 0)
    ).filter(
        Transaction.transaction_type == TransactionType.PAYMENT,
        Transaction.status == TransactionStatus.COMPLETED
    ).scalar()
    refunds = db.session.query(
        func.coalesce(func.sum(Transaction.amount), 0)
    ).filter(
        Transaction.transaction_type == TransactionType.REFUND,
        Transaction.status == TransactionStatus.COMPLETED
    ).scalar()
    return {
        'totalTransactions': sum(counts.values()),
        'byStatus': counts,
        'byType': status_counts(Transaction, Transaction.transaction_type),
        'byPaymentMethod': status_counts(
            Transaction, Transaction.payment_method),
        'completedVolume': money(volume or 0),
        'refundedVolume': money(refunds or 0),
    }
