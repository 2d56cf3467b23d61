from flask import Blueprint, request
from flask_login import login_required, current_user
from storeadmin.extensions import db
from storeadmin.errors import ProductNotFound
from storeadmin.models import Category, Product, ProductStatus, \
    ProductVisibility
from storeadmin.middleware import role_required
from storeadmin.services import product_service
from storeadmin.services.audit_service import actor_fields, log_audit
from storeadmin.utils import api_response, get_json_body, get_page_args, \
    paginate_query
import logging

logger = logging.getLogger(__name__)

bp = Blueprint('products', __name__)


def _is_admin():
    return current_user.is_authenticated and current_user.is_admin


@bp.route('/api/v1/products', methods=['GET'])
def list_products():
    page, limit = get_page_args()
    # Visitors only see what is published; admins see the whole catalog.
    query = product_service.filtered_products(
        request.args, public=not _is_admin())
    products, pagination = paginate_query(query, page, limit)
    return api_response(
        data=[product.to_dict() for product in products],
        pagination=pagination)


@bp.route('/api/v1/products/<int:product_id>', methods=['GET'])
def get_product(product_id):
    product = db.session.get(Product, product_id)
    if not product:
        raise ProductNotFound()
    if not _is_admin() and (
            product.status != ProductStatus.ACTIVE
            or product.visibility != ProductVisibility.PUBLIC):
        raise ProductNotFound()
    return api_response(data=product.to_dict(detail=True))


@bp.route('/api/v1/products', methods=['POST'])
@login_required
@role_required('admin')
def create_product():
    product = product_service.create_product(get_json_body())

    actor_id, actor_role = actor_fields(current_user)
    log_audit(
        actor_id=actor_id,
        actor_role=actor_role,
        action='PRODUCT_CREATE',
        target_type='PRODUCT',
        target_id=product.id,
        payload={'sku': product.sku, 'price': product.price}
    )
    return api_response(data=product.to_dict(detail=True),
                        message='Product created successfully', status=201)


@bp.route('/api/v1/products/<int:product_id>', methods=['PUT'])
@login_required
@role_required('admin')
def update_product(product_id):
    data = get_json_body()
    product = product_service.update_product(product_id, data)

    actor_id, actor_role = actor_fields(current_user)
    log_audit(
        actor_id=actor_id,
        actor_role=actor_role,
        action='PRODUCT_UPDATE',
        target_type='PRODUCT',
        target_id=product.id,
        payload={'fields': sorted(data)}
    )
    return api_response(data=product.to_dict(detail=True),
                        message='Product updated successfully')


@bp.route('/api/v1/products/<int:product_id>', methods=['DELETE'])
@login_required
@role_required('admin')
def delete_product(product_id):
    summary = product_service.delete_product(product_id)

    actor_id, actor_role = actor_fields(current_user)
    log_audit(
        actor_id=actor_id,
        actor_role=actor_role,
        action='PRODUCT_DELETE',
        target_type='PRODUCT',
        target_id=product_id,
        payload=summary
    )
    return api_response(message='Product deleted successfully')


@bp.route('/api/v1/categories', methods=['GET'])
def list_categories():
    categories = Category.query.filter_by(is_active=True).order_by(
        Category.name).all()
    return api_response(data=[category.to_dict() for category in categories])
