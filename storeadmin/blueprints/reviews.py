from flask import Blueprint, request
from flask_login import login_required, current_user
from sqlalchemy import func
from storeadmin.extensions import db, atomic
from storeadmin.errors import Conflict, Forbidden, NotFound, ProductNotFound
from storeadmin.models import Product, Review, ReviewStatus
from storeadmin.middleware import role_required
from storeadmin.services.audit_service import actor_fields, log_audit
from storeadmin.utils import api_response, get_json_body, get_page_args, \
    optional_text, paginate_query, parse_enum, parse_int, status_counts
import logging

logger = logging.getLogger(__name__)

bp = Blueprint('reviews', __name__)


def _get_review(review_id):
    review = db.session.get(Review, review_id)
    if not review:
        raise NotFound('Review not found')
    return review


def _audit(action, review_id, payload=None):
    actor_id, actor_role = actor_fields(current_user)
    log_audit(
        actor_id=actor_id,
        actor_role=actor_role,
        action=action,
        target_type='REVIEW',
        target_id=review_id,
        payload=payload
    )


@bp.route('/api/v1/reviews', methods=['GET'])
def list_reviews():
    page, limit = get_page_args()
    query = Review.query
    is_admin = current_user.is_authenticated and current_user.is_admin

    if is_admin and request.args.get('status'):
        query = query.filter(Review.status == parse_enum(
            ReviewStatus, request.args.get('status'), 'status'))
    elif not is_admin:
        query = query.filter(Review.status == ReviewStatus.APPROVED)
    if request.args.get('productId'):
        query = query.filter(Review.product_id == parse_int(
            request.args.get('productId'), 'productId', minimum=1))
    if request.args.get('rating'):
        query = query.filter(Review.rating == parse_int(
            request.args.get('rating'), 'rating', minimum=1, maximum=5))

    reviews, pagination = paginate_query(
        query.order_by(Review.created_at.desc(), Review.id.desc()),
        page, limit)
    return api_response(
        data=[review.to_dict() for review in reviews],
        pagination=pagination)


@bp.route('/api/v1/reviews/stats', methods=['GET'])
@login_required
@role_required('admin')
def review_stats():
    counts = status_counts(Review, Review.status)
    stars = dict(db.session.query(
        Review.rating, func.count(Review.id)).group_by(Review.rating).all())
    average = db.session.query(func.avg(Review.rating)).scalar()
    return api_response(data={
        'totalReviews': sum(counts.values()),
        'pendingReviews': counts.get(ReviewStatus.PENDING.value, 0),
        'approvedReviews': counts.get(ReviewStatus.APPROVED.value, 0),
        'rejectedReviews': counts.get(ReviewStatus.REJECTED.value, 0),
        'ratingDistribution': {
            str(star): stars.get(star, 0) for star in range(1, 6)},
        'averageRating': round(float(average), 2) if average else 0,
    })


@bp.route('/api/v1/reviews/<int:review_id>', methods=['GET'])
@login_required
@role_required('admin')
def get_review(review_id):
    return api_response(data=_get_review(review_id).to_dict())


@bp.route('/api/v1/reviews', methods=['POST'])
@login_required
def create_review():
    data = get_json_body()
    product_id = parse_int(data.get('productId'), 'productId', minimum=1)
    rating = parse_int(data.get('rating'), 'Rating', minimum=1, maximum=5)
    sub_ratings = {
        attr: parse_int(data.get(field), field, minimum=1, maximum=5,
                        required=False)
        for field, attr in (
            ('productQualityRating', 'product_quality_rating'),
            ('shippingRating', 'shipping_rating'),
            ('sellerRating', 'seller_rating'))
    }

    if not db.session.get(Product, product_id):
        raise ProductNotFound()
    if Review.query.filter_by(
            user_id=current_user.id, product_id=product_id).first():
        raise Conflict('You have already reviewed this product')

    with atomic():
        review = Review(
            product_id=product_id,
            user_id=current_user.id,
            order_id=parse_int(
                data.get('orderId'), 'orderId', minimum=1, required=False),
            rating=rating,
            title=optional_text(data, 'title', max_length=255),
            comment=optional_text(data, 'comment'),
            status=ReviewStatus.PENDING,
            **sub_ratings
        )
        db.session.add(review)

    _audit('REVIEW_CREATE', review.id,
           {'productId': product_id, 'rating': rating})
    return api_response(data=review.to_dict(),
                        message='Review submitted successfully', status=201)


@bp.route('/api/v1/reviews/<int:review_id>/status', methods=['PUT'])
@login_required
@role_required('admin')
def update_review_status(review_id):
    data = get_json_body()
    status = parse_enum(ReviewStatus, data.get('status'), 'status')
    review = _get_review(review_id)
    review.status = status
    if 'adminReply' in data:
        review.admin_reply = optional_text(data, 'adminReply')
    db.session.commit()

    _audit('REVIEW_STATUS_UPDATE', review.id, {'status': status.value})
    return api_response(data=review.to_dict(),
                        message='Review status updated successfully')


@bp.route('/api/v1/reviews/<int:review_id>', methods=['DELETE'])
@login_required
def delete_review(review_id):
    review = _get_review(review_id)
    if not current_user.is_admin and review.user_id != current_user.id:
        raise Forbidden('No permission to access this resource')
    payload = {'productId': review.product_id, 'userId': review.user_id}
    db.session.delete(review)
    db.session.commit()

    _audit('REVIEW_DELETE', review_id, payload)
    return api_response(message='Review deleted successfully')
