import pytest
from storeadmin.extensions import db
from storeadmin.models import Order, PaymentStatus, Transaction, \
    TransactionStatus, TransactionType


@pytest.fixture
def order_id(customer_client, product_id):
    response = customer_client.post('/api/v1/orders', json={
        'items': [{'productId': product_id, 'quantity': 1}],
    })
    return response.get_json()['data']['id']


def _create(admin_client, customer_id, order_id=None, amount=100):
    body = {
        'customerId': customer_id,
        'amount': amount,
        'transactionType': 'payment',
        'paymentMethod': 'credit_card',
    }
    if order_id is not None:
        body['orderId'] = order_id
    return admin_client.post('/api/v1/transactions', json=body)


def _complete(admin_client, transaction):
    return admin_client.put(
        f"/api/v1/transactions/{transaction['id']}/status",
        json={'status': 'completed'})


def _payment_status(app, order_id):
    with app.app_context():
        return db.session.get(Order, order_id).payment_status


def test_create_transaction(admin_client, customer_id, order_id):
    response = _create(admin_client, customer_id, order_id)

    assert response.status_code == 201
    data = response.get_json()['data']
    assert data['transactionId'].startswith('TXN-')
    assert data['status'] == 'pending'
    assert data['currency'] == 'USD'
    assert data['orderId'] == order_id


def test_create_validates_references_and_amount(admin_client, customer_id):
    unknown_customer = _create(admin_client, 9999)
    unknown_order = _create(admin_client, customer_id, order_id=9999)
    zero = _create(admin_client, customer_id, amount=0)

    assert unknown_customer.status_code == 404
    assert unknown_customer.get_json()['message'] == 'Customer not found'
    assert unknown_order.status_code == 404
    assert unknown_order.get_json()['message'] == 'Order not found'
    assert zero.status_code == 400


def test_completion_marks_order_paid_once(app, admin_client, customer_id,
                                          order_id):
    transaction = _create(admin_client, customer_id,
                          order_id).get_json()['data']

    _complete(admin_client, transaction)
    assert _payment_status(app, order_id) == PaymentStatus.PAID

    with app.app_context():
        db.session.get(Order, order_id).payment_status = \
            PaymentStatus.PENDING
        db.session.commit()

    repeated = _complete(admin_client, transaction)

    assert repeated.status_code == 200
    assert _payment_status(app, order_id) == PaymentStatus.PENDING


def test_failure_propagates_to_order(app, admin_client, customer_id,
                                     order_id):
    transaction = _create(admin_client, customer_id,
                          order_id).get_json()['data']

    response = admin_client.put(
        f"/api/v1/transactions/{transaction['id']}/status",
        json={'status': 'failed', 'failureReason': 'Card declined'})

    assert response.get_json()['data']['failureReason'] == 'Card declined'
    assert _payment_status(app, order_id) == PaymentStatus.FAILED


def test_full_refund_flips_original(app, admin_client, customer_id,
                                    order_id):
    transaction = _create(admin_client, customer_id,
                          order_id).get_json()['data']
    _complete(admin_client, transaction)

    too_much = admin_client.post('/api/v1/transactions/refund', json={
        'transactionId': transaction['transactionId'],
        'amount': 150,
    })
    refund = admin_client.post('/api/v1/transactions/refund', json={
        'transactionId': transaction['transactionId'],
        'amount': 100,
        'reason': 'Damaged on arrival',
    })

    assert too_much.status_code == 400
    assert too_much.get_json()['message'] == \
        'Refund amount cannot exceed original transaction amount'
    assert refund.status_code == 201
    data = refund.get_json()['data']
    assert data['refund']['transactionId'].startswith('RFND-')
    assert data['refund']['transactionType'] == 'refund'
    assert data['refund']['status'] == 'completed'
    assert data['refund']['metadata']['originalTransactionId'] == \
        transaction['transactionId']
    assert data['originalTransaction']['status'] == 'refunded'
    assert _payment_status(app, order_id) == PaymentStatus.REFUNDED


def test_partial_refunds_are_bounded_cumulatively(app, admin_client,
                                                  customer_id):
    transaction = _create(admin_client, customer_id).get_json()['data']
    _complete(admin_client, transaction)
    url = '/api/v1/transactions/refund'
    txn_id = transaction['transactionId']

    first = admin_client.post(url, json={'transactionId': txn_id,
                                         'amount': 60})
    second = admin_client.post(url, json={'transactionId': txn_id,
                                          'amount': 50})
    third = admin_client.post(url, json={'transactionId': txn_id,
                                         'amount': 40})

    assert first.status_code == 201
    assert first.get_json()['data']['originalTransaction']['status'] == \
        'completed'
    assert second.status_code == 400
    assert third.status_code == 201
    assert third.get_json()['data']['originalTransaction']['status'] == \
        'refunded'
    with app.app_context():
        refunds = Transaction.query.filter_by(
            transaction_type=TransactionType.REFUND).all()
        assert sum(refund.amount for refund in refunds) == 100
        assert all(refund.status == TransactionStatus.COMPLETED
                   for refund in refunds)


def test_refund_requires_completed_original(admin_client, customer_id):
    transaction = _create(admin_client, customer_id).get_json()['data']

    pending = admin_client.post('/api/v1/transactions/refund', json={
        'transactionId': transaction['transactionId'],
        'amount': 10,
    })
    unknown = admin_client.post('/api/v1/transactions/refund', json={
        'transactionId': 'TXN-0-0',
        'amount': 10,
    })

    assert pending.status_code == 404
    assert pending.get_json()['message'] == 'Completed transaction not found'
    assert unknown.status_code == 404


def test_refund_rows_cannot_be_refunded(app, admin_client, customer_id,
                                        order_id):
    transaction = _create(admin_client, customer_id,
                          order_id).get_json()['data']
    _complete(admin_client, transaction)
    url = '/api/v1/transactions/refund'
    refund = admin_client.post(url, json={
        'transactionId': transaction['transactionId'],
        'amount': 100,
    }).get_json()['data']['refund']

    chained = admin_client.post(url, json={
        'transactionId': refund['transactionId'],
        'amount': 100,
    })

    assert chained.status_code == 404
    assert chained.get_json()['message'] == 'Completed transaction not found'
    with app.app_context():
        refunds = Transaction.query.filter_by(
            transaction_type=TransactionType.REFUND).all()
        assert len(refunds) == 1
        assert refunds[0].status == TransactionStatus.COMPLETED
    assert _payment_status(app, order_id) == PaymentStatus.REFUNDED


def test_transaction_visibility(admin_client, customer_client,
                                other_customer_client, customer_id):
    transaction = _create(admin_client, customer_id).get_json()['data']

    own = customer_client.get(f'/api/v1/transactions/customer/{customer_id}')
    foreign = other_customer_client.get(
        f"/api/v1/transactions/{transaction['id']}")
    create_as_customer = _create(customer_client, customer_id)

    assert own.get_json()['pagination']['total'] == 1
    assert foreign.status_code == 403
    assert create_as_customer.status_code == 403


def test_stats_and_filters(admin_client, customer_id):
    transaction = _create(admin_client, customer_id).get_json()['data']
    _complete(admin_client, transaction)
    _create(admin_client, customer_id, amount=25)

    stats = admin_client.get('/api/v1/transactions/stats').get_json()['data']
    completed = admin_client.get('/api/v1/transactions?status=completed')

    assert stats['totalTransactions'] == 2
    assert stats['byStatus'] == {'completed': 1, 'pending': 1}
    assert stats['completedVolume'] == 100.0
    assert completed.get_json()['pagination']['total'] == 1
