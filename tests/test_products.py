import pytest
from storeadmin.extensions import db
from storeadmin.models import Product, ProductImage, ProductStatus
from tests.conftest import FakeAssetStore, image_file, login, make_product


def _product(**overrides):
    body = {
        'name': 'Standing Desk',
        'sku': 'DESK-001',
        'price': 450,
        'salePrice': 399.99,
        'stockQuantity': 12,
        'status': 'active',
        'attributes': [{'name': 'Colour', 'values': ['Oak', 'Walnut', 'Oak']}],
        'variants': [
            {'sku': 'DESK-001-OAK', 'price': 450, 'stock': 6,
             'attributes': [{'name': 'Colour', 'value': 'Oak'}]},
            {'sku': 'DESK-001-OLD', 'price': 450, 'enabled': False},
        ],
    }
    body.update(overrides)
    return body


def test_create_product_with_attributes_and_variants(admin_client):
    response = admin_client.post('/api/v1/products', json=_product())

    assert response.status_code == 201
    data = response.get_json()['data']
    assert data['slug'] == 'standing-desk'
    assert data['salePrice'] == 399.99
    assert data['hasVariants'] is True
    assert [variant['sku'] for variant in data['variants']] == [
        'DESK-001-OAK']
    assert data['attributes'][0]['values'] == ['Oak', 'Walnut']


def test_new_products_default_to_draft(admin_client):
    data = admin_client.post('/api/v1/products', json=_product(
        status=None, variants=None)).get_json()['data']

    assert data['status'] == 'draft'


def test_create_product_validation(admin_client):
    admin_client.post('/api/v1/products', json=_product())

    duplicate_sku = admin_client.post('/api/v1/products', json=_product(
        name='Another Desk', variants=None))
    sale_above_price = admin_client.post('/api/v1/products', json=_product(
        sku='DESK-002', salePrice=500, variants=None))
    missing_name = admin_client.post('/api/v1/products', json=_product(
        name='', sku='DESK-003', variants=None))

    assert duplicate_sku.status_code == 400
    assert duplicate_sku.get_json()['message'] == \
        'Product with this SKU already exists'
    assert sale_above_price.status_code == 400
    assert sale_above_price.get_json()['message'] == \
        'Sale price cannot be greater than regular price'
    assert missing_name.status_code == 400


def test_duplicate_names_get_distinct_slugs(admin_client):
    first = admin_client.post('/api/v1/products', json=_product(
        variants=None)).get_json()['data']
    second = admin_client.post('/api/v1/products', json=_product(
        sku='DESK-002', variants=None)).get_json()['data']

    assert first['slug'] == 'standing-desk'
    assert second['slug'].startswith('standing-desk-')


def test_update_product(admin_client, product_id):
    response = admin_client.put(f'/api/v1/products/{product_id}', json={
        'price': 120,
        'salePrice': 99,
        'stockQuantity': 0,
    })
    rejected = admin_client.put(f'/api/v1/products/{product_id}',
                                json={'price': 50})

    data = response.get_json()['data']
    assert data['price'] == 120.0
    assert data['stockStatus'] == 'out_of_stock'
    assert rejected.status_code == 400


def test_catalog_visibility(app, admin_client, product_id):
    draft_id = make_product(app, name='Prototype', status=ProductStatus.DRAFT)
    visitor = app.test_client()

    public_list = visitor.get('/api/v1/products')
    admin_list = admin_client.get('/api/v1/products')

    assert [item['id'] for item in public_list.get_json()['data']] == [
        product_id]
    assert admin_list.get_json()['pagination']['total'] == 2
    assert visitor.get(f'/api/v1/products/{draft_id}').status_code == 404
    assert admin_client.get(
        f'/api/v1/products/{draft_id}').status_code == 200


def test_catalog_filters(app):
    make_product(app, name='Budget Chair', price='20.00')
    make_product(app, name='Office Chair', price='180.00')
    visitor = app.test_client()

    cheap = visitor.get('/api/v1/products?maxPrice=50')
    chairs = visitor.get('/api/v1/products?search=Chair&sortBy=price'
                         '&sortOrder=asc')

    assert [item['name'] for item in cheap.get_json()['data']] == [
        'Budget Chair']
    assert [item['name'] for item in chairs.get_json()['data']] == [
        'Budget Chair', 'Office Chair']


def test_product_writes_are_admin_only(customer_client, product_id):
    assert customer_client.post('/api/v1/products',
                                json=_product()).status_code == 403
    assert customer_client.delete(
        f'/api/v1/products/{product_id}').status_code == 403


def _upload(client, product_id, *names, **form):
    data = {'images': [image_file(name) for name in names]}
    data.update(form)
    return client.post(f'/api/v1/products/{product_id}/images', data=data,
                       content_type='multipart/form-data')


def _images(app, product_id):
    with app.app_context():
        return [
            (image.id, image.sort_order, image.is_primary)
            for image in ProductImage.query.filter_by(
                product_id=product_id).order_by(
                ProductImage.sort_order, ProductImage.id)
        ]


def test_first_upload_becomes_primary(app, admin_client, product_id):
    response = _upload(admin_client, product_id, 'a.jpg', 'b.png',
                       altText='Lamp on a desk')

    assert response.status_code == 201
    images = response.get_json()['data']
    assert [image['isPrimary'] for image in images] == [True, False]
    assert images[0]['altText'] == 'Lamp on a desk'
    product = app.test_client().get(f'/api/v1/products/{product_id}')
    assert product.get_json()['data']['primaryImage'] == \
        images[0]['imageUrl']


def test_upload_as_primary_replaces_existing_primary(app, admin_client,
                                                     product_id):
    _upload(admin_client, product_id, 'a.jpg')
    later = _upload(admin_client, product_id, 'c.webp', isPrimary='true')

    new_id = later.get_json()['data'][0]['id']
    primaries = [image_id for image_id, _, primary in
                 _images(app, product_id) if primary]
    assert primaries == [new_id]


def test_replace_all_discards_old_assets(app, admin_client, product_id,
                                         asset_store):
    _upload(admin_client, product_id, 'a.jpg', 'b.jpg')

    response = _upload(admin_client, product_id, 'c.jpg', replaceAll='true')

    assert response.status_code == 201
    assert len(_images(app, product_id)) == 1
    assert asset_store.deleted == ['products/asset-1', 'products/asset-2']


def test_deleting_primary_promotes_next_image(app, admin_client, product_id,
                                              asset_store):
    images = _upload(admin_client, product_id, 'a.jpg', 'b.jpg',
                     'c.jpg').get_json()['data']

    response = admin_client.delete(
        f"/api/v1/products/{product_id}/images/{images[0]['id']}")

    assert response.status_code == 200
    assert _images(app, product_id)[0] == (images[1]['id'], 2, True)
    assert asset_store.deleted == [images[0]['publicId']]


def test_set_primary_and_reorder(app, admin_client, product_id):
    images = _upload(admin_client, product_id, 'a.jpg',
                     'b.jpg').get_json()['data']
    base = f'/api/v1/products/{product_id}/images'

    admin_client.put(f"{base}/{images[1]['id']}/primary")
    reordered = admin_client.put(f'{base}/reorder', json={'imageOrders': [
        {'id': images[0]['id'], 'sortOrder': 5},
        {'id': images[1]['id'], 'sortOrder': 0},
    ]})
    alt = admin_client.put(f"{base}/{images[0]['id']}/alt-text",
                           json={'altText': 'Side view'})

    assert [image['id'] for image in reordered.get_json()['data']] == [
        images[1]['id'], images[0]['id']]
    assert [primary for _, _, primary in _images(app, product_id)] == [
        True, False]
    assert alt.get_json()['data']['altText'] == 'Side view'


def test_reorder_rejects_foreign_images(app, admin_client, product_id):
    other = make_product(app, name='Other Lamp')
    foreign = _upload(admin_client, other, 'x.jpg').get_json()['data'][0]

    response = admin_client.put(
        f'/api/v1/products/{product_id}/images/reorder',
        json={'imageOrders': [{'id': foreign['id'], 'sortOrder': 1}]})

    assert response.status_code == 404


def test_upload_rejects_unsupported_files(admin_client, product_id,
                                          asset_store):
    response = _upload(admin_client, product_id, 'a.jpg', 'notes.txt')

    assert response.status_code == 400
    assert asset_store.uploaded == []


@pytest.fixture
def failing_store():
    return FakeAssetStore(fail_on_upload=2)


def test_failed_upload_leaves_no_images(app, failing_store, admin_id,
                                        product_id):
    app.extensions['asset_store'] = failing_store
    client = login(app.test_client(), 'admin@example.com', role='admin')

    response = _upload(client, product_id, 'a.jpg', 'b.jpg')

    assert response.status_code == 500
    assert failing_store.deleted == ['products/asset-1']
    assert _images(app, product_id) == []


def test_delete_product_removes_images(app, admin_client, product_id,
                                       asset_store):
    _upload(admin_client, product_id, 'a.jpg')

    response = admin_client.delete(f'/api/v1/products/{product_id}')

    assert response.status_code == 200
    assert asset_store.deleted == ['products/asset-1']
    with app.app_context():
        assert db.session.get(Product, product_id) is None
        assert ProductImage.query.count() == 0
