from storeadmin.extensions import db
from storeadmin.models import Cart, CartItem, Product
from storeadmin.services import cart_service
from tests.conftest import make_product


def test_cart_is_created_lazily_and_empty(customer_client):
    response = customer_client.get('/api/v1/cart')

    assert response.status_code == 200
    body = response.get_json()
    assert body['success'] is True
    assert body['data'] == {'items': [], 'totalItems': 0, 'totalPrice': 0.0}


def test_adding_beyond_stock_clamps_quantity(customer_client, product_id):
    customer_client.post('/api/v1/cart',
                         json={'productId': product_id, 'quantity': 3})
    response = customer_client.post('/api/v1/cart',
                                    json={'productId': product_id,
                                          'quantity': 4})

    assert response.status_code == 200
    cart = response.get_json()['data']
    assert len(cart['items']) == 1
    assert cart['items'][0]['quantity'] == 5
    assert cart['items'][0]['maxQuantity'] == 5
    assert cart['totalItems'] == 5
    assert cart['totalPrice'] == 500.0


def test_total_price_prefers_sale_price(app, customer_client):
    product_id = make_product(app, name='Kettle', price='40.00',
                              sale_price='30.00', stock=10)

    response = customer_client.post('/api/v1/cart',
                                    json={'productId': product_id,
                                          'quantity': 2})

    assert response.get_json()['data']['totalPrice'] == 60.0


def test_add_rejects_missing_and_out_of_stock_products(app, customer_client):
    sold_out = make_product(app, name='Sold Out', stock=0)

    missing = customer_client.post('/api/v1/cart',
                                   json={'productId': 9999, 'quantity': 1})
    out_of_stock = customer_client.post('/api/v1/cart',
                                        json={'productId': sold_out,
                                              'quantity': 1})

    assert missing.status_code == 404
    assert out_of_stock.status_code == 400
    assert out_of_stock.get_json()['message'] == 'Product is out of stock'


def test_add_requires_positive_quantity(customer_client, product_id):
    response = customer_client.post('/api/v1/cart',
                                    json={'productId': product_id,
                                          'quantity': 0})

    assert response.status_code == 400
    assert response.get_json()['success'] is False


def test_attribute_selection_matches_as_a_set(customer_client, product_id):
    customer_client.post('/api/v1/cart', json={
        'productId': product_id,
        'quantity': 1,
        'selectedAttributes': {'color': ['red', 'blue'], 'size': 'M'},
    })
    same = customer_client.post('/api/v1/cart', json={
        'productId': product_id,
        'quantity': 1,
        'selectedAttributes': {'size': 'M', 'color': ['blue', 'red']},
    })
    different = customer_client.post('/api/v1/cart', json={
        'productId': product_id,
        'quantity': 1,
        'selectedAttributes': {'size': 'L'},
    })

    assert len(same.get_json()['data']['items']) == 1
    items = different.get_json()['data']['items']
    assert sorted(item['quantity'] for item in items) == [1, 2]


def test_update_clamps_to_stock(customer_client, product_id):
    customer_client.post('/api/v1/cart',
                         json={'productId': product_id, 'quantity': 1})

    response = customer_client.put(f'/api/v1/cart/{product_id}',
                                   json={'quantity': 10})

    assert response.status_code == 200
    assert response.get_json()['data']['items'][0]['quantity'] == 5


def test_update_unknown_line_is_not_found(customer_client, product_id):
    response = customer_client.put(f'/api/v1/cart/{product_id}',
                                   json={'quantity': 1})

    assert response.status_code == 404


def test_remove_and_clear(customer_client, app):
    first = make_product(app, name='Pen', stock=10)
    second = make_product(app, name='Notebook', stock=10)
    customer_client.post('/api/v1/cart', json={'productId': first})
    customer_client.post('/api/v1/cart', json={'productId': second})

    removed = customer_client.delete(f'/api/v1/cart/{first}')
    assert [item['id'] for item in removed.get_json()['data']['items']] == [
        second]

    cleared = customer_client.delete('/api/v1/cart')
    assert cleared.get_json()['data']['items'] == []


def test_sync_replaces_merges_and_clamps(app, customer_client):
    lamp = make_product(app, name='Lamp', stock=4)
    chair = make_product(app, name='Chair', stock=10)
    customer_client.post('/api/v1/cart', json={'productId': chair,
                                               'quantity': 2})

    response = customer_client.post('/api/v1/cart/sync', json={'items': [
        {'id': lamp, 'quantity': 3},
        {'id': lamp, 'quantity': 3},
        {'id': 9999, 'quantity': 1},
        {'id': chair, 'quantity': 0},
    ]})

    assert response.status_code == 200
    items = response.get_json()['data']['items']
    assert [(item['id'], item['quantity']) for item in items] == [(lamp, 4)]
    with app.app_context():
        assert CartItem.query.count() == 1


def test_sync_requires_an_array(customer_client):
    response = customer_client.post('/api/v1/cart/sync',
                                    json={'items': 'nope'})

    assert response.status_code == 400
    assert response.get_json()['message'] == 'Items must be an array'


def test_carts_are_per_user(customer_client, other_customer_client,
                            product_id):
    customer_client.post('/api/v1/cart', json={'productId': product_id})

    response = other_customer_client.get('/api/v1/cart')

    assert response.get_json()['data']['items'] == []


def test_cart_requires_login(app):
    response = app.test_client().get('/api/v1/cart')

    assert response.status_code == 401
    assert response.get_json() == {
        'success': False,
        'message': 'Access token required',
    }


def test_cart_line_never_exceeds_current_stock(app, customer_client,
                                               product_id):
    customer_client.post('/api/v1/cart',
                         json={'productId': product_id, 'quantity': 50})

    with app.app_context():
        item = CartItem.query.one()
        assert item.quantity <= db.session.get(
            Product, product_id).stock_quantity


def test_concurrently_created_cart_is_reused(app, customer_id, monkeypatch):
    with app.app_context():
        existing = Cart(user_id=customer_id)
        db.session.add(existing)
        db.session.commit()
        existing_id = existing.id

        # Make the lookup miss once, as if another request inserted the
        # cart between our read and our insert.
        query_cls = type(Cart.query)
        original_first = query_cls.first
        calls = []

        def first_misses_once(query):
            calls.append(query)
            if len(calls) == 1:
                return None
            return original_first(query)

        monkeypatch.setattr(query_cls, 'first', first_misses_once)

        cart = cart_service.get_or_create_cart(customer_id)

        assert cart.id == existing_id
        assert Cart.query.count() == 1
