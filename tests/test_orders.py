import pytest
from sqlalchemy import event, update
from sqlalchemy.orm import Session
from storeadmin.extensions import db
from storeadmin.models import Order, OrderItem, Product, StockStatus
from tests.conftest import make_product


def _stock(app, product_id):
    with app.app_context():
        return db.session.get(Product, product_id).stock_quantity


def _place(client, *lines, **extra):
    body = {
        'items': [
            {'productId': product_id, 'quantity': quantity}
            for product_id, quantity in lines
        ],
    }
    body.update(extra)
    return client.post('/api/v1/orders', json=body)


def test_order_totals_and_stock_decrement(app, customer_client, customer_id):
    product_id = make_product(app, price='100.00', sale_price='80.00',
                              stock=5)

    response = _place(customer_client, (product_id, 2),
                      paymentMethod='credit_card')

    assert response.status_code == 201
    order = response.get_json()['data']
    assert order['customerId'] == customer_id
    assert order['status'] == 'pending'
    assert order['paymentStatus'] == 'pending'
    assert order['orderNumber'].startswith('ORD-')
    assert order['subtotal'] == 200.0
    assert order['taxAmount'] == 20.0
    assert order['shippingAmount'] == 50.0
    assert order['discountAmount'] == 0.0
    assert order['totalAmount'] == 270.0
    assert order['items'][0]['price'] == 100.0
    assert order['items'][0]['total'] == 200.0
    assert _stock(app, product_id) == 3


def test_insufficient_stock_rejects_whole_order(app, customer_client):
    plenty = make_product(app, name='Plenty', stock=50)
    scarce = make_product(app, name='Scarce', stock=5)

    response = _place(customer_client, (plenty, 1), (scarce, 10))

    assert response.status_code == 400
    assert response.get_json()['message'] == \
        'Insufficient stock for product Scarce'
    assert _stock(app, plenty) == 50
    assert _stock(app, scarce) == 5
    with app.app_context():
        assert Order.query.count() == 0
        assert OrderItem.query.count() == 0


def test_repeated_lines_are_checked_against_combined_quantity(
        app, customer_client):
    product_id = make_product(app, stock=5)

    response = _place(customer_client, (product_id, 3), (product_id, 3))

    assert response.status_code == 400
    assert _stock(app, product_id) == 5


@pytest.fixture
def stock_drained_during_flush(product_id):
    """Zero the product's stock right before the order row is flushed.

    Stands in for a competing writer on a backend where FOR UPDATE is a
    no-op, so only the conditional decrement can catch the shortfall.
    """
    fired = []

    def drain(session, flush_context, instances):
        if fired or not any(isinstance(obj, Order) for obj in session.new):
            return
        fired.append(True)
        session.connection().execute(
            update(Product).where(Product.id == product_id)
            .values(stock_quantity=0))

    event.listen(Session, 'before_flush', drain)
    yield fired
    event.remove(Session, 'before_flush', drain)


def test_conditional_decrement_stops_oversell(app, customer_client,
                                              product_id,
                                              stock_drained_during_flush):
    response = _place(customer_client, (product_id, 1))

    assert stock_drained_during_flush == [True]
    assert response.status_code == 400
    assert response.get_json()['message'] == \
        'Insufficient stock for product Desk Lamp'
    assert _stock(app, product_id) == 5
    with app.app_context():
        assert Order.query.count() == 0
        assert OrderItem.query.count() == 0


def test_missing_product_fails(app, customer_client, product_id):
    response = _place(customer_client, (product_id, 1), (9999, 1))

    assert response.status_code == 404
    assert response.get_json()['message'] == 'Product with ID 9999 not found'
    assert _stock(app, product_id) == 5


def test_empty_order_is_invalid(customer_client):
    response = customer_client.post('/api/v1/orders', json={'items': []})

    assert response.status_code == 400


def test_selling_out_marks_product_out_of_stock(app, customer_client,
                                                product_id):
    _place(customer_client, (product_id, 5))

    with app.app_context():
        product = db.session.get(Product, product_id)
        assert product.stock_quantity == 0
        assert product.stock_status == StockStatus.OUT_OF_STOCK


def test_order_item_snapshot_survives_product_changes(
        app, customer_client, admin_client, product_id):
    order = _place(customer_client, (product_id, 1)).get_json()['data']

    admin_client.put(f'/api/v1/products/{product_id}',
                     json={'name': 'Renamed Lamp', 'price': 999})
    response = customer_client.get(f"/api/v1/orders/{order['id']}")

    item = response.get_json()['data']['items'][0]
    assert item['productName'] == 'Desk Lamp'
    assert item['price'] == 100.0


def test_address_snapshot_survives_address_deletion(
        app, customer_client, customer_id, product_id):
    address = customer_client.post(
        f'/api/v1/addresses/customer/{customer_id}',
        json={
            'addressType': 'shipping',
            'streetAddress': '1 Main St',
            'city': 'Springfield',
            'state': 'IL',
            'postalCode': '62701',
            'country': 'US',
        }).get_json()['data']

    order = _place(customer_client, (product_id, 1),
                   shippingAddressId=address['id']).get_json()['data']
    customer_client.delete(f"/api/v1/addresses/{address['id']}")
    response = customer_client.get(f"/api/v1/orders/{order['id']}")

    shipping = response.get_json()['data']['shippingAddress']
    assert shipping['streetAddress'] == '1 Main St'
    assert shipping['city'] == 'Springfield'


def test_admin_places_order_for_customer(app, admin_client, customer_id,
                                         product_id):
    response = _place(admin_client, (product_id, 1), customerId=customer_id)

    assert response.status_code == 201
    assert response.get_json()['data']['customerId'] == customer_id


def test_order_for_admin_account_is_rejected(admin_client, admin_id,
                                             product_id):
    response = _place(admin_client, (product_id, 1), customerId=admin_id)

    assert response.status_code == 404
    assert response.get_json()['message'] == 'Customer not found'


def test_status_transitions(app, customer_client, admin_client, product_id):
    order = _place(customer_client, (product_id, 1)).get_json()['data']
    url = f"/api/v1/orders/{order['id']}/status"

    skipped = admin_client.put(url, json={'status': 'delivered'})
    assert skipped.status_code == 400

    admin_client.put(url, json={'status': 'confirmed'})
    shipped = admin_client.put(url, json={'status': 'shipped'})
    assert shipped.status_code == 200
    assert shipped.get_json()['data']['shippedDate'] is not None

    again = admin_client.put(url, json={'status': 'shipped'})
    assert again.status_code == 200

    delivered = admin_client.put(url, json={'status': 'delivered'})
    assert delivered.get_json()['data']['deliveredDate'] is not None

    cancelled = admin_client.put(url, json={'status': 'cancelled'})
    assert cancelled.status_code == 400


def test_cancelling_restores_stock(app, customer_client, admin_client,
                                   product_id):
    order = _place(customer_client, (product_id, 5)).get_json()['data']
    assert _stock(app, product_id) == 0

    response = admin_client.put(f"/api/v1/orders/{order['id']}/status",
                                json={'status': 'cancelled'})

    assert response.status_code == 200
    with app.app_context():
        product = db.session.get(Product, product_id)
        assert product.stock_quantity == 5
        assert product.stock_status == StockStatus.IN_STOCK


def test_customers_only_see_their_own_orders(
        customer_client, other_customer_client, customer_id, product_id):
    order = _place(customer_client, (product_id, 1)).get_json()['data']

    foreign = other_customer_client.get(f"/api/v1/orders/{order['id']}")
    foreign_list = other_customer_client.get(
        f'/api/v1/orders/customer/{customer_id}')
    admin_only = customer_client.get('/api/v1/orders')
    own = customer_client.get(f'/api/v1/orders/customer/{customer_id}')

    assert foreign.status_code == 403
    assert foreign_list.status_code == 403
    assert admin_only.status_code == 403
    assert own.status_code == 200
    assert own.get_json()['pagination']['total'] == 1


def test_admin_list_and_stats(customer_client, admin_client, product_id):
    _place(customer_client, (product_id, 1))
    _place(customer_client, (product_id, 2))

    listing = admin_client.get('/api/v1/orders?status=pending&limit=1')
    stats = admin_client.get('/api/v1/orders/stats')

    body = listing.get_json()
    assert len(body['data']) == 1
    assert body['pagination'] == {'page': 1, 'limit': 1, 'total': 2,
                                  'pages': 2}
    assert stats.get_json()['data']['byStatus'] == {'pending': 2}
