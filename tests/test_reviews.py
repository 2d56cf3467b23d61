def _review(client, product_id, **overrides):
    body = {
        'productId': product_id,
        'rating': 4,
        'title': 'Bright and sturdy',
        'comment': 'Does what it says.',
    }
    body.update(overrides)
    return client.post('/api/v1/reviews', json=body)


def test_review_starts_pending_and_is_hidden(app, customer_client,
                                             product_id):
    response = _review(customer_client, product_id)

    assert response.status_code == 201
    assert response.get_json()['data']['status'] == 'pending'
    public = app.test_client().get(f'/api/v1/reviews?productId={product_id}')
    assert public.get_json()['data'] == []


def test_one_review_per_product(customer_client, product_id):
    _review(customer_client, product_id)

    response = _review(customer_client, product_id, rating=1)

    assert response.status_code == 400
    assert response.get_json()['message'] == \
        'You have already reviewed this product'


def test_review_validation(customer_client, product_id):
    assert _review(customer_client, product_id, rating=6).status_code == 400
    assert _review(customer_client, 9999).status_code == 404
    assert _review(customer_client, product_id,
                   shippingRating=0).status_code == 400


def test_approved_reviews_are_public(app, customer_client, admin_client,
                                     product_id):
    review = _review(customer_client, product_id).get_json()['data']

    approved = admin_client.put(f"/api/v1/reviews/{review['id']}/status",
                                json={'status': 'approved',
                                      'adminReply': 'Thanks!'})
    public = app.test_client().get('/api/v1/reviews?rating=4')

    assert approved.get_json()['data']['adminReply'] == 'Thanks!'
    assert [item['id'] for item in public.get_json()['data']] == [
        review['id']]


def test_only_author_or_admin_deletes(customer_client, other_customer_client,
                                      product_id):
    review = _review(customer_client, product_id).get_json()['data']
    url = f"/api/v1/reviews/{review['id']}"

    assert other_customer_client.delete(url).status_code == 403
    assert customer_client.delete(url).status_code == 200
    assert customer_client.delete(url).status_code == 404


def test_review_stats(customer_client, other_customer_client, admin_client,
                      product_id):
    _review(customer_client, product_id, rating=5)
    _review(other_customer_client, product_id, rating=2)

    stats = admin_client.get('/api/v1/reviews/stats').get_json()['data']

    assert stats['totalReviews'] == 2
    assert stats['pendingReviews'] == 2
    assert stats['ratingDistribution']['5'] == 1
    assert stats['ratingDistribution']['2'] == 1
    assert stats['averageRating'] == 3.5
    assert customer_client.get('/api/v1/reviews/stats').status_code == 403
