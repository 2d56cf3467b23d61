from flask import Blueprint
from flask_login import login_required, current_user
from storeadmin.services import cart_service
from storeadmin.utils import api_response, get_json_body
import logging

logger = logging.getLogger(__name__)

bp = Blueprint('cart', __name__)


@bp.route('/api/v1/cart', methods=['GET'])
@login_required
def get_cart():
    return api_response(data=cart_service.get_cart(current_user.id))


@bp.route('/api/v1/cart', methods=['POST'])
@login_required
def add_to_cart():
    data = get_json_body()
    cart = cart_service.add_item(
        current_user.id,
        data.get('productId'),
        data.get('quantity', 1),
        data.get('selectedAttributes')
    )
    return api_response(data=cart, message='Item added to cart successfully')


@bp.route('/api/v1/cart/<int:product_id>', methods=['PUT'])
@login_required
def update_cart_item(product_id):
    data = get_json_body()
    cart = cart_service.update_item(
        current_user.id,
        product_id,
        data.get('quantity'),
        data.get('selectedAttributes')
    )
    return api_response(data=cart, message='Cart updated successfully')


@bp.route('/api/v1/cart/<int:product_id>', methods=['DELETE'])
@login_required
def remove_from_cart(product_id):
    data = get_json_body()
    cart = cart_service.remove_item(
        current_user.id, product_id, data.get('selectedAttributes'))
    return api_response(data=cart, message='Item removed from cart')


@bp.route('/api/v1/cart', methods=['DELETE'])
@login_required
def clear_cart():
    cart = cart_service.clear_cart(current_user.id)
    return api_response(data=cart, message='Cart cleared successfully')


@bp.route('/api/v1/cart/sync', methods=['POST'])
@login_required
def sync_cart():
    data = get_json_body()
    cart = cart_service.sync_cart(current_user.id, data.get('items'))
    return api_response(data=cart, message='Cart synced successfully')
