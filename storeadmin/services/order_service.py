"""Order placement and the order status lifecycle."""
from flask import current_app
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from sqlalchemy import update
from storeadmin.extensions import db, atomic
from storeadmin.errors import CustomerNotFound, InsufficientStock, \
    InvalidInput, NotFound, OrderNotFound, ProductNotFound
from storeadmin.models import CustomerAddress, Order, OrderItem, \
    OrderStatus, Product, User, UserRole
from storeadmin.utils import generate_reference, optional_text, parse_enum, \
    parse_int
import json
import logging

logger = logging.getLogger(__name__)

TWO_PLACES = Decimal('0.01')

ALLOWED_TRANSITIONS = {
    OrderStatus.PENDING: {
        OrderStatus.CONFIRMED,
        OrderStatus.PROCESSING,
        OrderStatus.CANCELLED,
    },
    OrderStatus.CONFIRMED: {
        OrderStatus.PROCESSING,
        OrderStatus.SHIPPED,
        OrderStatus.CANCELLED,
    },
    OrderStatus.PROCESSING: {OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: {OrderStatus.REFUNDED},
    OrderStatus.CANCELLED: set(),
    OrderStatus.REFUNDED: set(),
}

ADDRESS_FIELDS = (
    'streetAddress',
    'addressLine2',
    'city',
    'state',
    'postalCode',
    'country',
)


def _quantize(amount):
    return amount.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def _parse_lines(items):
    if not isinstance(items, list) or not items:
        raise InvalidInput('Order must contain at least one item')

    lines = []
    for index, entry in enumerate(items, start=1):
        if not isinstance(entry, dict):
            raise InvalidInput(f'Item {index} must be an object')
        lines.append((
            parse_int(entry.get('productId'), f'Item {index} productId',
                      minimum=1),
            parse_int(entry.get('quantity'), f'Item {index} quantity',
                      minimum=1),
        ))
    return lines


def _address_snapshot(customer_id, address, address_id, label):
    """Freeze an address into a plain dict stored on the order."""
    if address_id is not None:
        address_id = parse_int(address_id, f'{label}Id', minimum=1)
        stored = CustomerAddress.query.filter_by(
            id=address_id, customer_id=customer_id).first()
        if not stored:
            raise NotFound(f'{label} not found for this customer')
        return stored.snapshot()
    if address is None:
        return None
    if not isinstance(address, dict):
        raise InvalidInput(f'{label} must be an object')
    return {
        field: address.get(field)
        for field in ADDRESS_FIELDS + ('fullName', 'phone')
        if address.get(field) is not None
    }


def create_order(customer_id, items, shipping_address=None,
                 billing_address=None, payment_method=None, notes=None,
                 shipping_address_id=None, billing_address_id=None):
    """Place an order atomically.

    All lines are validated against locked product rows before anything is
    written; a missing product or short stock aborts the whole order.
    """
    customer_id = parse_int(customer_id, 'Customer ID', minimum=1)
    lines = _parse_lines(items)

    customer = db.session.get(User, customer_id)
    if not customer or customer.role != UserRole.CUSTOMER:
        raise CustomerNotFound()

    shipping = _address_snapshot(
        customer_id, shipping_address, shipping_address_id,
        'Shipping address')
    billing = _address_snapshot(
        customer_id, billing_address, billing_address_id,
        'Billing address')
    if payment_method is not None and not isinstance(payment_method, str):
        raise InvalidInput('paymentMethod must be a string')
    notes = optional_text({'notes': notes}, 'notes')

    required = {}
    for product_id, quantity in lines:
        required[product_id] = required.get(product_id, 0) + quantity

    tax_rate = current_app.config['ORDER_TAX_RATE']
    shipping_fee = current_app.config['ORDER_SHIPPING_FEE']

    with atomic():
        # Lock in id order so concurrent orders cannot deadlock.
        products = {
            product.id: product
            for product in Product.query.filter(
                Product.id.in_(sorted(required))
            ).order_by(Product.id).with_for_update().all()
        }

        for product_id, _ in lines:
            if product_id not in products:
                raise ProductNotFound(
                    f'Product with ID {product_id} not found')
        for product_id, quantity in required.items():
            product = products[product_id]
            if product.stock_quantity < quantity:
                raise InsufficientStock(
                    f'Insufficient stock for product {product.name}',
                    extra={
                        'productId': product.id,
                        'available': product.stock_quantity,
                        'requested': quantity,
                    })

        subtotal = Decimal('0')
        order_items = []
        for product_id, quantity in lines:
            product = products[product_id]
            unit_price = _quantize(Decimal(product.price))
            line_total = _quantize(unit_price * quantity)
            subtotal += line_total
            order_items.append(OrderItem(
                product_id=product.id,
                product_name=product.name,
                product_sku=product.sku,
                quantity=quantity,
                price=unit_price,
                total=line_total
            ))

        subtotal = _quantize(subtotal)
        tax_amount = _quantize(subtotal * tax_rate)
        discount_amount = Decimal('0.00')
        total_amount = subtotal + tax_amount + shipping_fee - discount_amount

        order = Order(
            order_number=generate_reference('ORD'),
            customer_id=customer_id,
            status=OrderStatus.PENDING,
            subtotal=subtotal,
            tax_amount=tax_amount,
            shipping_amount=shipping_fee,
            discount_amount=discount_amount,
            total_amount=total_amount,
            payment_method=payment_method,
            shipping_address_json=(
                json.dumps(shipping, ensure_ascii=False)
                if shipping is not None else None),
            billing_address_json=(
                json.dumps(billing, ensure_ascii=False)
                if billing is not None else None),
            notes=notes,
            items=order_items
        )
        db.session.add(order)
        db.session.flush()

        for product_id, quantity in required.items():
            # Conditional decrement guards against oversell even if a
            # backend ignores FOR UPDATE.
            result = db.session.execute(
                update(Product)
                .where(
                    Product.id == product_id,
                    Product.stock_quantity >= quantity)
                .values(stock_quantity=Product.stock_quantity - quantity)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise InsufficientStock(
                    f'Insufficient stock for product '
                    f'{products[product_id].name}')
            db.session.refresh(products[product_id])
            products[product_id].refresh_stock_status()

    logger.info(
        "Order %s placed for customer %s total=%s",
        order.order_number, customer_id, total_amount)
    return order


def _restore_order_stock(order):
    product_ids = sorted({
        item.product_id for item in order.items if item.product_id})
    products = {
        product.id: product
        for product in Product.query.filter(
            Product.id.in_(product_ids)
        ).order_by(Product.id).with_for_update().all()
    } if product_ids else {}
    for item in order.items:
        product = products.get(item.product_id)
        if product:
            product.stock_quantity += item.quantity
            product.refresh_stock_status()


def update_order_status(order_id, status):
    new_status = parse_enum(OrderStatus, status, 'order status')

    with atomic():
        order = Order.query.filter_by(id=order_id).with_for_update().first()
        if not order:
            raise OrderNotFound()

        previous = order.status
        if previous == new_status:
            return order, previous

        if new_status not in ALLOWED_TRANSITIONS[previous]:
            raise InvalidInput(
                f'Cannot change order status from {previous.value} '
                f'to {new_status.value}')

        order.status = new_status
        now = datetime.utcnow()
        if new_status == OrderStatus.SHIPPED:
            order.shipped_date = now
        elif new_status == OrderStatus.DELIVERED:
            order.delivered_date = now
        elif new_status == OrderStatus.CANCELLED:
            _restore_order_stock(order)

    logger.info(
        "Order %s status %s -> %s",
        order.order_number, previous.value, new_status.value)
    return order, previous
