from storeadmin.models import AddressType, CustomerAddress


def _address(**overrides):
    body = {
        'addressType': 'shipping',
        'streetAddress': '42 Harbour Road',
        'city': 'Portsmouth',
        'state': 'Hampshire',
        'postalCode': 'PO1 3AX',
        'country': 'UK',
    }
    body.update(overrides)
    return body


def _defaults(app, customer_id, address_type):
    with app.app_context():
        return [
            address.id for address in CustomerAddress.query.filter_by(
                customer_id=customer_id,
                address_type=address_type,
                is_default=True)
        ]


def test_new_default_replaces_previous_default(app, customer_client,
                                               customer_id):
    url = f'/api/v1/addresses/customer/{customer_id}'
    first = customer_client.post(url, json=_address(isDefault=True))
    second = customer_client.post(url, json=_address(
        streetAddress='7 Quay Street', isDefault=True))

    assert first.status_code == 201
    assert second.status_code == 201
    assert _defaults(app, customer_id, AddressType.SHIPPING) == [
        second.get_json()['data']['id']]


def test_defaults_are_tracked_per_address_type(app, customer_client,
                                               customer_id):
    url = f'/api/v1/addresses/customer/{customer_id}'
    shipping = customer_client.post(url, json=_address(isDefault=True))
    billing = customer_client.post(url, json=_address(
        addressType='billing', isDefault=True))

    assert _defaults(app, customer_id, AddressType.SHIPPING) == [
        shipping.get_json()['data']['id']]
    assert _defaults(app, customer_id, AddressType.BILLING) == [
        billing.get_json()['data']['id']]


def test_set_default_switches_the_default(app, customer_client, customer_id):
    url = f'/api/v1/addresses/customer/{customer_id}'
    first = customer_client.post(url, json=_address(isDefault=True))
    second = customer_client.post(url, json=_address(streetAddress='9 Dock'))
    second_id = second.get_json()['data']['id']

    response = customer_client.patch(f'{url}/set-default', json={
        'id': second_id,
        'addressType': 'shipping',
    })

    assert response.status_code == 200
    assert response.get_json()['data']['isDefault'] is True
    assert _defaults(app, customer_id, AddressType.SHIPPING) == [second_id]
    assert first.get_json()['data']['id'] != second_id


def test_set_default_rejects_type_mismatch(customer_client, customer_id):
    url = f'/api/v1/addresses/customer/{customer_id}'
    address = customer_client.post(url, json=_address()).get_json()['data']

    response = customer_client.patch(f'{url}/set-default', json={
        'id': address['id'],
        'addressType': 'billing',
    })

    assert response.status_code == 400


def test_update_to_default_clears_other_default(app, customer_client,
                                                customer_id):
    url = f'/api/v1/addresses/customer/{customer_id}'
    customer_client.post(url, json=_address(isDefault=True))
    other = customer_client.post(url, json=_address(
        streetAddress='3 Mill Lane')).get_json()['data']

    response = customer_client.put(f"/api/v1/addresses/{other['id']}",
                                   json={'isDefault': True, 'city': 'Leeds'})

    assert response.status_code == 200
    assert response.get_json()['data']['city'] == 'Leeds'
    assert _defaults(app, customer_id, AddressType.SHIPPING) == [other['id']]


def test_changing_type_moves_default_into_new_group(app, customer_client,
                                                    customer_id):
    url = f'/api/v1/addresses/customer/{customer_id}'
    billing = customer_client.post(url, json=_address(
        addressType='billing', isDefault=True)).get_json()['data']
    shipping = customer_client.post(url, json=_address(
        isDefault=True)).get_json()['data']

    customer_client.put(f"/api/v1/addresses/{shipping['id']}",
                        json={'addressType': 'billing'})

    assert _defaults(app, customer_id, AddressType.BILLING) == [
        shipping['id']]
    assert billing['id'] not in _defaults(
        app, customer_id, AddressType.BILLING)


def test_customer_addresses_list_defaults_first(customer_client,
                                                customer_id):
    url = f'/api/v1/addresses/customer/{customer_id}'
    default = customer_client.post(url, json=_address(
        isDefault=True)).get_json()['data']
    customer_client.post(url, json=_address(streetAddress='Later Road'))

    response = customer_client.get(url)

    assert response.get_json()['data'][0]['id'] == default['id']


def test_create_validates_fields(customer_client, customer_id):
    response = customer_client.post(
        f'/api/v1/addresses/customer/{customer_id}',
        json=_address(city='', addressType='office'))

    assert response.status_code == 400


def test_other_customers_cannot_touch_addresses(
        customer_client, other_customer_client, customer_id):
    url = f'/api/v1/addresses/customer/{customer_id}'
    address = customer_client.post(url, json=_address()).get_json()['data']

    assert other_customer_client.get(url).status_code == 403
    assert other_customer_client.delete(
        f"/api/v1/addresses/{address['id']}").status_code == 403


def test_admin_can_manage_customer_addresses(admin_client, customer_id):
    url = f'/api/v1/addresses/customer/{customer_id}'
    created = admin_client.post(url, json=_address(isDefault=True))

    listing = admin_client.get('/api/v1/addresses?search=Portsmouth')
    stats = admin_client.get('/api/v1/addresses/stats')

    assert created.status_code == 201
    assert listing.get_json()['pagination']['total'] == 1
    assert stats.get_json()['data']['defaultAddresses'] == 1


def test_address_requires_customer_role(admin_client, admin_id):
    response = admin_client.post(f'/api/v1/addresses/customer/{admin_id}',
                                 json=_address())

    assert response.status_code == 404
