from flask import Blueprint, request
from flask_login import login_required, current_user
from storeadmin.middleware import role_required
from storeadmin.services import product_image_service
from storeadmin.services.audit_service import actor_fields, log_audit
from storeadmin.utils import api_response, get_json_body, get_request_data, \
    optional_text, parse_bool
import logging

logger = logging.getLogger(__name__)

bp = Blueprint('product_images', __name__)


def _audit(action, product_id, payload=None):
    actor_id, actor_role = actor_fields(current_user)
    log_audit(
        actor_id=actor_id,
        actor_role=actor_role,
        action=action,
        target_type='PRODUCT',
        target_id=product_id,
        payload=payload
    )


@bp.route('/api/v1/products/<int:product_id>/images', methods=['GET'])
def list_images(product_id):
    images = product_image_service.list_images(product_id)
    return api_response(data=[image.to_dict() for image in images])


@bp.route('/api/v1/products/<int:product_id>/images', methods=['POST'])
@login_required
@role_required('admin')
def upload_images(product_id):
    data = get_request_data()
    images = product_image_service.add_images(
        product_id,
        request.files.getlist('images'),
        alt_text=optional_text(data, 'altText', max_length=255),
        replace_all=parse_bool(data.get('replaceAll')),
        make_primary=parse_bool(data.get('isPrimary'))
    )
    _audit('PRODUCT_IMAGES_UPLOAD', product_id,
           {'count': len(images), 'replaceAll': data.get('replaceAll')})
    return api_response(data=[image.to_dict() for image in images],
                        message=f'{len(images)} image(s) uploaded '
                                f'successfully',
                        status=201)


@bp.route('/api/v1/products/<int:product_id>/images', methods=['DELETE'])
@login_required
@role_required('admin')
def delete_all_images(product_id):
    count = product_image_service.delete_all_images(product_id)
    _audit('PRODUCT_IMAGES_DELETE_ALL', product_id, {'count': count})
    return api_response(data={'deletedCount': count},
                        message='All images deleted successfully')


@bp.route('/api/v1/products/<int:product_id>/images/<int:image_id>',
          methods=['DELETE'])
@login_required
@role_required('admin')
def delete_image(product_id, image_id):
    product_image_service.delete_image(product_id, image_id)
    _audit('PRODUCT_IMAGE_DELETE', product_id, {'imageId': image_id})
    return api_response(message='Image deleted successfully')


@bp.route('/api/v1/products/<int:product_id>/images/<int:image_id>/primary',
          methods=['PUT'])
@login_required
@role_required('admin')
def set_primary(product_id, image_id):
    image = product_image_service.set_primary(product_id, image_id)
    _audit('PRODUCT_IMAGE_SET_PRIMARY', product_id, {'imageId': image_id})
    return api_response(data=image.to_dict(),
                        message='Primary image updated successfully')


@bp.route('/api/v1/products/<int:product_id>/images/reorder',
          methods=['PUT'])
@login_required
@role_required('admin')
def reorder_images(product_id):
    data = get_json_body()
    images = product_image_service.reorder_images(
        product_id, data.get('imageOrders'))
    return api_response(data=[image.to_dict() for image in images],
                        message='Images reordered successfully')


@bp.route('/api/v1/products/<int:product_id>/images/<int:image_id>/alt-text',
          methods=['PUT'])
@login_required
@role_required('admin')
def update_alt_text(product_id, image_id):
    data = get_json_body()
    image = product_image_service.update_alt_text(
        product_id, image_id, data.get('altText'))
    return api_response(data=image.to_dict(),
                        message='Alt text updated successfully')
