"""Cart aggregation.

Every mutator clamps the stored quantity to the product's current stock
instead of rejecting the request, and returns the recomputed cart view.
"""
from decimal import Decimal
from sqlalchemy.exc import IntegrityError
from storeadmin.extensions import db, atomic
from storeadmin.errors import InvalidInput, NotFound, OutOfStock, \
    ProductNotFound
from storeadmin.models import Cart, CartItem, Product, StockStatus, money
from storeadmin.utils import parse_int
import hashlib
import json
import logging

logger = logging.getLogger(__name__)


def canonical_attributes(selected_attributes):
    """Return (canonical_json, key) for a selected-attributes map.

    Two selections are the same line when they contain the same names with
    the same set of values, regardless of key or list order.
    """
    if not selected_attributes:
        return None, ''
    if not isinstance(selected_attributes, dict):
        raise InvalidInput('selectedAttributes must be an object')

    canonical = {}
    for name, value in selected_attributes.items():
        if isinstance(value, list):
            encoded = {json.dumps(v, sort_keys=True) for v in value}
            value = [json.loads(v) for v in sorted(encoded)]
        canonical[str(name)] = value

    encoded = json.dumps(canonical, sort_keys=True, separators=(',', ':'))
    return encoded, hashlib.sha256(encoded.encode('utf-8')).hexdigest()


def get_or_create_cart(user_id):
    cart = Cart.query.filter_by(user_id=user_id).first()
    if cart:
        return cart

    # The unique constraint on carts.user_id settles concurrent first access.
    cart = Cart(user_id=user_id)
    db.session.add(cart)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        logger.info("Cart for user %s created concurrently", user_id)
        cart = Cart.query.filter_by(user_id=user_id).one()
    return cart


def build_cart_view(cart):
    items = CartItem.query.filter_by(cart_id=cart.id).order_by(
        CartItem.created_at.desc(), CartItem.id.desc()).all()

    formatted = []
    total_price = Decimal('0')
    for item in items:
        product = item.product
        primary = product.primary_image
        total_price += product.effective_price * item.quantity
        formatted.append({
            'id': product.id,
            'cartItemId': item.id,
            'name': product.name,
            'price': money(product.price),
            'salePrice': money(product.sale_price),
            'quantity': item.quantity,
            'image': primary.image_url if primary else '',
            'stockStatus': product.stock_status.value,
            'maxQuantity': product.stock_quantity,
            'selectedAttributes': item.get_selected_attributes(),
        })

    return {
        'items': formatted,
        'totalItems': sum(item['quantity'] for item in formatted),
        'totalPrice': money(total_price),
    }


def get_cart(user_id):
    return build_cart_view(get_or_create_cart(user_id))


def _lock_product(product_id):
    return Product.query.filter_by(id=product_id).with_for_update().first()


def add_item(user_id, product_id, quantity=1, selected_attributes=None):
    product_id = parse_int(product_id, 'Product ID', minimum=1)
    quantity = parse_int(quantity, 'Quantity', minimum=1)
    attributes_json, key = canonical_attributes(selected_attributes)

    product = db.session.get(Product, product_id)
    if not product:
        raise ProductNotFound()
    if product.stock_status == StockStatus.OUT_OF_STOCK:
        raise OutOfStock()

    cart = get_or_create_cart(user_id)
    with atomic():
        product = _lock_product(product_id)
        item = CartItem.query.filter_by(
            cart_id=cart.id,
            product_id=product_id,
            attributes_key=key
        ).with_for_update().first()

        requested = quantity + (item.quantity if item else 0)
        final_quantity = min(requested, product.stock_quantity)
        if final_quantity <= 0:
            raise OutOfStock()

        if item:
            item.quantity = final_quantity
        else:
            db.session.add(CartItem(
                cart_id=cart.id,
                product_id=product_id,
                quantity=final_quantity,
                selected_attributes_json=attributes_json,
                attributes_key=key
            ))

    if final_quantity < requested:
        logger.info(
            "Cart quantity for user %s product %s clamped %s -> %s",
            user_id, product_id, requested, final_quantity)
    return build_cart_view(cart)


def _lines_for(cart, product_id, selected_attributes):
    query = CartItem.query.filter_by(cart_id=cart.id, product_id=product_id)
    if selected_attributes is not None:
        _, key = canonical_attributes(selected_attributes)
        query = query.filter_by(attributes_key=key)
    return query.with_for_update().all()


def update_item(user_id, product_id, quantity, selected_attributes=None):
    quantity = parse_int(quantity, 'Quantity', minimum=1)
    cart = get_or_create_cart(user_id)

    with atomic():
        lines = _lines_for(cart, product_id, selected_attributes)
        if not lines:
            raise NotFound('Cart item not found')

        product = _lock_product(product_id)
        final_quantity = min(quantity, product.stock_quantity)
        for line in lines:
            if final_quantity <= 0:
                db.session.delete(line)
            else:
                line.quantity = final_quantity

    return build_cart_view(cart)


def remove_item(user_id, product_id, selected_attributes=None):
    cart = get_or_create_cart(user_id)
    with atomic():
        lines = _lines_for(cart, product_id, selected_attributes)
        if not lines:
            raise NotFound('Cart item not found')
        for line in lines:
            db.session.delete(line)
    return build_cart_view(cart)


def clear_cart(user_id):
    cart = get_or_create_cart(user_id)
    with atomic():
        CartItem.query.filter_by(cart_id=cart.id).delete()
    return build_cart_view(cart)


def sync_cart(user_id, items):
    """Replace the whole cart with ``items``.

    Entries without an id or a positive quantity, and entries for products
    that no longer exist, are skipped. Duplicate product/attribute pairs are
    merged before clamping.
    """
    if not isinstance(items, list):
        raise InvalidInput('Items must be an array')

    merged = {}
    for entry in items:
        if not isinstance(entry, dict):
            continue
        try:
            product_id = parse_int(entry.get('id'), 'id', minimum=1)
            quantity = parse_int(entry.get('quantity'), 'quantity', minimum=1)
        except InvalidInput:
            continue
        attributes_json, key = canonical_attributes(
            entry.get('selectedAttributes'))
        line = merged.setdefault(
            (product_id, key),
            {'quantity': 0, 'attributes_json': attributes_json})
        line['quantity'] += quantity

    cart = get_or_create_cart(user_id)
    with atomic():
        CartItem.query.filter_by(cart_id=cart.id).delete()

        product_ids = sorted({product_id for product_id, _ in merged})
        products = {
            product.id: product
            for product in Product.query.filter(
                Product.id.in_(product_ids)
            ).order_by(Product.id).with_for_update().all()
        } if product_ids else {}

        for (product_id, key), line in merged.items():
            product = products.get(product_id)
            if product is None:
                logger.info(
                    "Cart sync for user %s skipped missing product %s",
                    user_id, product_id)
                continue
            quantity = min(line['quantity'], product.stock_quantity)
            if quantity <= 0:
                continue
            db.session.add(CartItem(
                cart_id=cart.id,
                product_id=product_id,
                quantity=quantity,
                selected_attributes_json=line['attributes_json'],
                attributes_key=key
            ))

    return build_cart_view(cart)
