import pytest
from storeadmin.models import KycApplication, KycStatus, UserStatus
from tests.conftest import FakeAssetStore, image_file, login, make_user


def _submit(client, **overrides):
    data = {
        'docType': 'passport',
        'docNumber': 'P1234567',
        'frontImage': image_file('front.jpg'),
        'selfieImage': image_file('selfie.png'),
    }
    data.update(overrides)
    data = {key: value for key, value in data.items() if value is not None}
    return client.post('/api/v1/kyc/submit', data=data,
                       content_type='multipart/form-data')


def _active_count(app, user_id):
    with app.app_context():
        return KycApplication.query.filter(
            KycApplication.user_id == user_id,
            KycApplication.status.in_(
                [KycStatus.PENDING, KycStatus.ACCEPTED])).count()


def test_submit_creates_pending_application(app, customer_client,
                                            customer_id, asset_store):
    response = _submit(customer_client)

    assert response.status_code == 201
    application = response.get_json()['data']
    assert application['applicationId'].startswith('KYC-')
    assert application['status'] == 'pending'
    assert application['frontImageUrl'].startswith('https://cdn.example.com/')
    assert application['backImageUrl'] is None
    assert len(asset_store.uploaded) == 2


def test_second_active_application_is_rejected(app, customer_client,
                                               customer_id, asset_store):
    _submit(customer_client)

    response = _submit(customer_client)

    assert response.status_code == 400
    assert response.get_json()['message'] == \
        'User already has a pending or approved KYC application'
    assert _active_count(app, customer_id) == 1
    assert len(asset_store.uploaded) == 2


def test_front_image_is_required(customer_client):
    response = _submit(customer_client, frontImage=None)

    assert response.status_code == 400
    assert response.get_json()['message'] == 'Front image is required'


def test_invalid_document_fields(customer_client):
    bad_type = _submit(customer_client, docType='library_card')
    short_number = _submit(customer_client, docNumber='123')
    bad_image = _submit(customer_client, frontImage=image_file('scan.gif'))

    assert bad_type.status_code == 400
    assert short_number.status_code == 400
    assert bad_image.status_code == 400


@pytest.fixture
def failing_store():
    return FakeAssetStore(fail_on_upload=2)


def test_failed_upload_discards_stored_assets(app, failing_store,
                                              customer_id):
    app.extensions['asset_store'] = failing_store
    client = login(app.test_client(), 'jane@example.com')

    response = _submit(client)

    assert response.status_code == 500
    assert response.get_json()['message'] == 'Failed to upload images'
    assert failing_store.deleted == failing_store.uploaded == [
        'kyc-documents/asset-1']
    assert _active_count(app, customer_id) == 0


def test_rejection_requires_reason(app, customer_client, admin_client):
    application = _submit(customer_client).get_json()['data']
    url = f"/api/v1/kyc/{application['id']}/status"

    missing = admin_client.put(url, json={'status': 'rejected'})
    rejected = admin_client.put(url, json={
        'status': 'rejected',
        'rejectionReason': 'Document is blurry',
    })

    assert missing.status_code == 400
    assert rejected.status_code == 200
    data = rejected.get_json()['data']
    assert data['status'] == 'rejected'
    assert data['rejectionReason'] == 'Document is blurry'
    assert data['reviewedDate'] is not None


def test_rejected_user_may_apply_again(customer_client, admin_client):
    application = _submit(customer_client).get_json()['data']
    admin_client.put(f"/api/v1/kyc/{application['id']}/status", json={
        'status': 'rejected',
        'rejectionReason': 'Expired passport',
    })

    response = _submit(customer_client, docNumber='P7654321')

    assert response.status_code == 201


def test_acceptance_clears_reason_and_is_final(customer_client,
                                               admin_client):
    application = _submit(customer_client).get_json()['data']
    url = f"/api/v1/kyc/{application['id']}/status"

    accepted = admin_client.put(url, json={
        'status': 'accepted',
        'rejectionReason': 'ignored',
    })
    again = admin_client.put(url, json={
        'status': 'rejected',
        'rejectionReason': 'Changed my mind',
    })

    assert accepted.get_json()['data']['rejectionReason'] is None
    assert again.status_code == 400
    assert _submit(customer_client).status_code == 400


def test_admin_creates_application_by_email(app, admin_client, customer_id):
    response = admin_client.post(
        '/api/v1/kyc/admin/create-for-user',
        data={
            'userEmail': 'jane@example.com',
            'docType': 'driving_license',
            'docNumber': 'DL-0099881',
            'adminNotes': 'Verified at the counter',
            'frontImage': image_file(),
            'backImage': image_file('back.jpeg'),
        },
        content_type='multipart/form-data')

    assert response.status_code == 201
    data = response.get_json()['data']
    assert data['userId'] == customer_id
    assert data['createdByAdmin'] == 'Admin User'
    assert data['backImageUrl'] is not None


def test_admin_create_requires_existing_active_user(app, admin_client):
    make_user(app, 'inactive@example.com', status=UserStatus.INACTIVE)

    unknown = admin_client.post(
        '/api/v1/kyc/admin/create-for-user',
        data={'userEmail': 'ghost@example.com', 'docType': 'pan',
              'docNumber': 'ABCDE1234F', 'frontImage': image_file()},
        content_type='multipart/form-data')
    inactive = admin_client.post(
        '/api/v1/kyc/admin/create-for-user',
        data={'userEmail': 'inactive@example.com', 'docType': 'pan',
              'docNumber': 'ABCDE1234F', 'frontImage': image_file()},
        content_type='multipart/form-data')

    assert unknown.status_code == 404
    assert inactive.status_code == 400


def test_status_lookup_and_stats(customer_client, admin_client,
                                 customer_id, other_customer_client):
    status_url = f'/api/v1/kyc/status/{customer_id}'
    assert customer_client.get(status_url).status_code == 404

    _submit(customer_client)

    assert customer_client.get(status_url).get_json()['data']['status'] == \
        'pending'
    assert other_customer_client.get(status_url).status_code == 403
    stats = admin_client.get('/api/v1/kyc/stats').get_json()['data']
    assert stats['total'] == 1
    assert stats['pending'] == 1
    listing = admin_client.get('/api/v1/kyc?status=pending&search=Jane')
    assert listing.get_json()['pagination']['total'] == 1
