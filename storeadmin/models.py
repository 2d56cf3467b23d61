from storeadmin.extensions import db
from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash
from datetime import datetime
from decimal import Decimal
from sqlalchemy import CheckConstraint, UniqueConstraint
import enum
import json


class UserRole(enum.Enum):
    ADMIN = 'admin'
    CUSTOMER = 'customer'


class UserStatus(enum.Enum):
    ACTIVE = 'active'
    INACTIVE = 'inactive'
    SUSPENDED = 'suspended'


class ProductStatus(enum.Enum):
    ACTIVE = 'active'
    INACTIVE = 'inactive'
    DRAFT = 'draft'


class StockStatus(enum.Enum):
    IN_STOCK = 'in_stock'
    OUT_OF_STOCK = 'out_of_stock'
    ON_BACKORDER = 'on_backorder'


class ProductVisibility(enum.Enum):
    PUBLIC = 'public'
    PRIVATE = 'private'
    DRAFT = 'draft'


class OrderStatus(enum.Enum):
    PENDING = 'pending'
    CONFIRMED = 'confirmed'
    PROCESSING = 'processing'
    SHIPPED = 'shipped'
    DELIVERED = 'delivered'
    CANCELLED = 'cancelled'
    REFUNDED = 'refunded'


class PaymentStatus(enum.Enum):
    PENDING = 'pending'
    PAID = 'paid'
    FAILED = 'failed'
    REFUNDED = 'refunded'


class AddressType(enum.Enum):
    BILLING = 'billing'
    SHIPPING = 'shipping'


class TransactionType(enum.Enum):
    PAYMENT = 'payment'
    REFUND = 'refund'
    CHARGEBACK = 'chargeback'
    ADJUSTMENT = 'adjustment'
    CREDIT = 'credit'


class TransactionStatus(enum.Enum):
    PENDING = 'pending'
    COMPLETED = 'completed'
    FAILED = 'failed'
    CANCELLED = 'cancelled'
    REFUNDED = 'refunded'


class PaymentMethod(enum.Enum):
    CREDIT_CARD = 'credit_card'
    DEBIT_CARD = 'debit_card'
    UPI = 'upi'
    NET_BANKING = 'net_banking'
    WALLET = 'wallet'
    CASH_ON_DELIVERY = 'cash_on_delivery'
    BANK_TRANSFER = 'bank_transfer'


class KycDocumentType(enum.Enum):
    AADHAAR = 'aadhaar'
    PAN = 'pan'
    PASSPORT = 'passport'
    DRIVING_LICENSE = 'driving_license'


class KycStatus(enum.Enum):
    PENDING = 'pending'
    ACCEPTED = 'accepted'
    REJECTED = 'rejected'


class ReturnStatus(enum.Enum):
    INITIATED = 'Return Initiated'
    IN_PROGRESS = 'Return in Progress'
    QC_IN_PROGRESS = 'QC in Progress'
    RETURNED = 'Returned'
    SCRAPPED = 'Scrapped'
    CANCELLED = 'Cancelled'


class ReviewStatus(enum.Enum):
    PENDING = 'pending'
    APPROVED = 'approved'
    REJECTED = 'rejected'


class TicketStatus(enum.Enum):
    OPEN = 'open'
    IN_PROGRESS = 'in-progress'
    RESOLVED = 'resolved'
    CLOSED = 'closed'


class TicketPriority(enum.Enum):
    LOW = 'low'
    MEDIUM = 'medium'
    HIGH = 'high'
    URGENT = 'urgent'


class BlogStatus(enum.Enum):
    DRAFT = 'draft'
    PUBLISHED = 'published'
    ARCHIVED = 'archived'


def money(value):
    if value is None:
        return None
    return float(Decimal(value).quantize(Decimal('0.01')))


def iso(value):
    return value.isoformat() if value else None


def _load_json(raw, default=None):
    if not raw:
        return default
    try:
        return json.loads(raw)
    except ValueError:
        return default


class User(UserMixin, db.Model):
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    full_name = db.Column(db.String(255), nullable=False)
    username = db.Column(
        db.String(100),
        unique=True,
        nullable=True,
        index=True)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(20), nullable=True)
    role = db.Column(
        db.Enum(UserRole),
        nullable=False,
        default=UserRole.CUSTOMER)
    status = db.Column(
        db.Enum(UserStatus),
        nullable=False,
        default=UserStatus.ACTIVE)
    avatar = db.Column(db.String(500), nullable=True)
    created_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        nullable=False)
    updated_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False)
    last_login_at = db.Column(db.DateTime, nullable=True)

    # Relationships
    cart = db.relationship(
        'Cart',
        backref='user',
        uselist=False,
        cascade='all, delete-orphan')
    orders = db.relationship(
        'Order',
        backref='customer',
        lazy='dynamic',
        cascade='all, delete-orphan')
    addresses = db.relationship(
        'CustomerAddress',
        backref='customer',
        lazy='dynamic',
        cascade='all, delete-orphan')

    @property
    def is_active(self):
        return self.status == UserStatus.ACTIVE

    @property
    def is_admin(self):
        return self.role == UserRole.ADMIN

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        return check_password_hash(self.password_hash, password)

    def to_dict(self):
        return {
            'id': self.id,
            'fullName': self.full_name,
            'username': self.username,
            'email': self.email,
            'phone': self.phone,
            'role': self.role.value,
            'status': self.status.value,
            'avatar': self.avatar,
            'createdAt': iso(self.created_at),
            'updatedAt': iso(self.updated_at),
            'lastLoginAt': iso(self.last_login_at),
        }

    def __repr__(self):
        return f'<User {self.email}>'


class Category(db.Model):
    __tablename__ = 'categories'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    slug = db.Column(db.String(255), unique=True, nullable=False, index=True)
    description = db.Column(db.Text, nullable=True)
    image = db.Column(db.String(500), nullable=True)
    parent_id = db.Column(
        db.Integer,
        db.ForeignKey(
            'categories.id',
            ondelete='SET NULL'),
        nullable=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        nullable=False)

    products = db.relationship('Product', backref='category', lazy='dynamic')

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'slug': self.slug,
            'description': self.description,
            'image': self.image,
            'parentId': self.parent_id,
            'status': 'active' if self.is_active else 'inactive',
        }

    def __repr__(self):
        return f'<Category {self.name}>'


class Product(db.Model):
    __tablename__ = 'products'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False, index=True)
    slug = db.Column(db.String(255), unique=True, nullable=False, index=True)
    sku = db.Column(db.String(100), unique=True, nullable=False, index=True)
    description = db.Column(db.Text, nullable=True)
    short_description = db.Column(db.String(500), nullable=True)
    category_id = db.Column(
        db.Integer,
        db.ForeignKey(
            'categories.id',
            ondelete='SET NULL'),
        nullable=True,
        index=True)
    brand = db.Column(db.String(100), nullable=True)
    price = db.Column(db.Numeric(10, 2), nullable=False)
    sale_price = db.Column(db.Numeric(10, 2), nullable=True)
    stock_quantity = db.Column(db.Integer, nullable=False, default=0)
    stock_status = db.Column(
        db.Enum(StockStatus),
        default=StockStatus.IN_STOCK,
        nullable=False)
    weight = db.Column(db.Numeric(8, 2), nullable=True)
    dimensions = db.Column(db.String(100), nullable=True)
    status = db.Column(
        db.Enum(ProductStatus),
        default=ProductStatus.DRAFT,
        nullable=False)
    featured = db.Column(db.Boolean, default=False, nullable=False)
    visibility = db.Column(
        db.Enum(ProductVisibility),
        default=ProductVisibility.PUBLIC,
        nullable=False)
    meta_title = db.Column(db.String(255), nullable=True)
    meta_description = db.Column(db.Text, nullable=True)
    has_variants = db.Column(db.Boolean, default=False, nullable=False)
    created_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        nullable=False)
    updated_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False)

    # Relationships
    images = db.relationship(
        'ProductImage',
        backref='product',
        order_by='ProductImage.sort_order, ProductImage.id',
        cascade='all, delete-orphan')
    attributes = db.relationship(
        'ProductAttribute',
        backref='product',
        order_by='ProductAttribute.display_order',
        cascade='all, delete-orphan')
    variants = db.relationship(
        'ProductVariant',
        backref='product',
        cascade='all, delete-orphan')
    cart_items = db.relationship(
        'CartItem',
        backref='product',
        lazy='dynamic',
        cascade='all, delete-orphan')
    reviews = db.relationship(
        'Review',
        backref='product',
        lazy='dynamic',
        cascade='all, delete-orphan')

    __table_args__ = (
        CheckConstraint(
            'stock_quantity >= 0',
            name='check_stock_non_negative'),
        CheckConstraint('price >= 0', name='check_price_non_negative'),
        CheckConstraint(
            'sale_price IS NULL OR sale_price <= price',
            name='check_sale_price_not_above_price'),
    )

    @property
    def primary_image(self):
        for image in self.images:
            if image.is_primary:
                return image
        return None

    @property
    def effective_price(self):
        if self.sale_price is not None:
            return self.sale_price
        return self.price

    def refresh_stock_status(self):
        if self.stock_quantity <= 0:
            if self.stock_status != StockStatus.ON_BACKORDER:
                self.stock_status = StockStatus.OUT_OF_STOCK
        elif self.stock_status == StockStatus.OUT_OF_STOCK:
            self.stock_status = StockStatus.IN_STOCK

    def to_dict(self, detail=False):
        primary = self.primary_image
        data = {
            'id': self.id,
            'name': self.name,
            'slug': self.slug,
            'sku': self.sku,
            'description': self.description,
            'shortDescription': self.short_description,
            'categoryId': self.category_id,
            'categoryName': self.category.name if self.category else None,
            'brand': self.brand,
            'price': money(self.price),
            'salePrice': money(self.sale_price),
            'stockQuantity': self.stock_quantity,
            'stockStatus': self.stock_status.value,
            'weight': money(self.weight),
            'dimensions': self.dimensions,
            'status': self.status.value,
            'featured': self.featured,
            'visibility': self.visibility.value,
            'metaTitle': self.meta_title,
            'metaDescription': self.meta_description,
            'hasVariants': self.has_variants,
            'primaryImage': primary.image_url if primary else None,
            'createdAt': iso(self.created_at),
            'updatedAt': iso(self.updated_at),
        }
        if detail:
            data['images'] = [image.to_dict() for image in self.images]
            data['attributes'] = [attr.to_dict() for attr in self.attributes]
            data['variants'] = [
                variant.to_dict() for variant in self.variants]
        return data

    def __repr__(self):
        return f'<Product {self.sku}>'


class ProductImage(db.Model):
    __tablename__ = 'product_images'

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(
        db.Integer,
        db.ForeignKey(
            'products.id',
            ondelete='CASCADE'),
        nullable=False,
        index=True)
    image_url = db.Column(db.String(500), nullable=False)
    # Asset store identifier, used for remote deletion
    public_id = db.Column(db.String(255), nullable=True)
    alt_text = db.Column(db.String(255), nullable=True)
    sort_order = db.Column(db.Integer, nullable=False, default=0)
    is_primary = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        nullable=False)

    def to_dict(self):
        return {
            'id': self.id,
            'productId': self.product_id,
            'imageUrl': self.image_url,
            'publicId': self.public_id,
            'altText': self.alt_text,
            'sortOrder': self.sort_order,
            'isPrimary': self.is_primary,
            'createdAt': iso(self.created_at),
        }

    def __repr__(self):
        return f'<ProductImage {self.id} for product {self.product_id}>'


class ProductAttribute(db.Model):
    __tablename__ = 'product_attributes'

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(
        db.Integer,
        db.ForeignKey(
            'products.id',
            ondelete='CASCADE'),
        nullable=False,
        index=True)
    name = db.Column(db.String(100), nullable=False)
    # JSON list of allowed values
    values_json = db.Column(db.Text, nullable=False, default='[]')
    display_order = db.Column(db.Integer, nullable=False, default=0)

    def set_values(self, values):
        self.values_json = json.dumps(list(values), ensure_ascii=False)

    def get_values(self):
        return _load_json(self.values_json, [])

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'values': self.get_values(),
            'displayOrder': self.display_order,
        }

    def __repr__(self):
        return f'<ProductAttribute {self.name} for product {self.product_id}>'


class ProductVariant(db.Model):
    __tablename__ = 'product_variants'

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(
        db.Integer,
        db.ForeignKey(
            'products.id',
            ondelete='CASCADE'),
        nullable=False,
        index=True)
    sku = db.Column(db.String(100), unique=True, nullable=False)
    price = db.Column(db.Numeric(10, 2), nullable=False)
    sale_price = db.Column(db.Numeric(10, 2), nullable=True)
    stock_quantity = db.Column(db.Integer, nullable=False, default=0)
    enabled = db.Column(db.Boolean, nullable=False, default=True)

    attributes = db.relationship(
        'VariantAttribute',
        backref='variant',
        cascade='all, delete-orphan')

    __table_args__ = (
        CheckConstraint(
            'stock_quantity >= 0',
            name='check_variant_stock_non_negative'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'sku': self.sku,
            'price': money(self.price),
            'salePrice': money(self.sale_price),
            'stockQuantity': self.stock_quantity,
            'enabled': self.enabled,
            'attributes': [
                {'name': attr.attribute_name, 'value': attr.attribute_value}
                for attr in self.attributes
            ],
        }

    def __repr__(self):
        return f'<ProductVariant {self.sku}>'


class VariantAttribute(db.Model):
    __tablename__ = 'variant_attributes'

    id = db.Column(db.Integer, primary_key=True)
    variant_id = db.Column(
        db.Integer,
        db.ForeignKey(
            'product_variants.id',
            ondelete='CASCADE'),
        nullable=False,
        index=True)
    attribute_name = db.Column(db.String(100), nullable=False)
    attribute_value = db.Column(db.String(255), nullable=False)

    def __repr__(self):
        return (
            f"<VariantAttribute {self.attribute_name}="
            f"{self.attribute_value}>"
        )


class Cart(db.Model):
    __tablename__ = 'carts'

    id = db.Column(db.Integer, primary_key=True)
    # One cart per user; concurrent first access relies on this constraint.
    user_id = db.Column(
        db.Integer,
        db.ForeignKey(
            'users.id',
            ondelete='CASCADE'),
        unique=True,
        nullable=False)
    created_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        nullable=False)
    updated_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False)

    items = db.relationship(
        'CartItem',
        backref='cart',
        lazy='dynamic',
        cascade='all, delete-orphan')

    def __repr__(self):
        return f'<Cart {self.id} for user {self.user_id}>'


class CartItem(db.Model):
    __tablename__ = 'cart_items'

    id = db.Column(db.Integer, primary_key=True)
    cart_id = db.Column(
        db.Integer,
        db.ForeignKey(
            'carts.id',
            ondelete='CASCADE'),
        nullable=False,
        index=True)
    product_id = db.Column(
        db.Integer,
        db.ForeignKey(
            'products.id',
            ondelete='CASCADE'),
        nullable=False,
        index=True)
    quantity = db.Column(db.Integer, nullable=False, default=1)
    # Canonical JSON of the selected attributes (sorted keys, sorted values)
    selected_attributes_json = db.Column(db.Text, nullable=True)
    # Digest of the canonical JSON; '' when no attributes were selected
    attributes_key = db.Column(db.String(64), nullable=False, default='')
    created_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        nullable=False)
    updated_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False)

    __table_args__ = (
        CheckConstraint('quantity > 0', name='check_quantity_positive'),
        UniqueConstraint(
            'cart_id',
            'product_id',
            'attributes_key',
            name='uq_cart_product_attributes'),
    )

    def get_selected_attributes(self):
        return _load_json(self.selected_attributes_json)

    def __repr__(self):
        return (
            f"<CartItem cart={self.cart_id} product={self.product_id} "
            f"qty={self.quantity}>"
        )


class Order(db.Model):
    __tablename__ = 'orders'

    id = db.Column(db.Integer, primary_key=True)
    order_number = db.Column(
        db.String(50),
        unique=True,
        nullable=False,
        index=True)
    customer_id = db.Column(
        db.Integer,
        db.ForeignKey(
            'users.id',
            ondelete='CASCADE'),
        nullable=False,
        index=True)
    status = db.Column(
        db.Enum(OrderStatus),
        default=OrderStatus.PENDING,
        nullable=False)
    subtotal = db.Column(db.Numeric(10, 2), nullable=False)
    tax_amount = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    shipping_amount = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    discount_amount = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    total_amount = db.Column(db.Numeric(10, 2), nullable=False)
    payment_method = db.Column(db.String(50), nullable=True)
    payment_status = db.Column(
        db.Enum(PaymentStatus),
        default=PaymentStatus.PENDING,
        nullable=False)
    # Address snapshots; never references to customer_addresses
    shipping_address_json = db.Column(db.Text, nullable=True)
    billing_address_json = db.Column(db.Text, nullable=True)
    notes = db.Column(db.Text, nullable=True)
    order_date = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        nullable=False,
        index=True)
    shipped_date = db.Column(db.DateTime, nullable=True)
    delivered_date = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        nullable=False)
    updated_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False)

    items = db.relationship(
        'OrderItem',
        backref='order',
        order_by='OrderItem.id',
        cascade='all, delete-orphan')

    def to_dict(self, with_items=True):
        data = {
            'id': self.id,
            'orderNumber': self.order_number,
            'customerId': self.customer_id,
            'customerName': self.customer.full_name if self.customer else None,
            'customerEmail': self.customer.email if self.customer else None,
            'status': self.status.value,
            'subtotal': money(self.subtotal),
            'taxAmount': money(self.tax_amount),
            'shippingAmount': money(self.shipping_amount),
            'discountAmount': money(self.discount_amount),
            'totalAmount': money(self.total_amount),
            'paymentMethod': self.payment_method,
            'paymentStatus': self.payment_status.value,
            'shippingAddress': _load_json(self.shipping_address_json),
            'billingAddress': _load_json(self.billing_address_json),
            'notes': self.notes,
            'orderDate': iso(self.order_date),
            'shippedDate': iso(self.shipped_date),
            'deliveredDate': iso(self.delivered_date),
            'itemCount': len(self.items),
            'updatedAt': iso(self.updated_at),
        }
        if with_items:
            data['items'] = [item.to_dict() for item in self.items]
        return data

    def __repr__(self):
        return f'<Order {self.order_number} status={self.status}>'


class OrderItem(db.Model):
    __tablename__ = 'order_items'

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(
        db.Integer,
        db.ForeignKey(
            'orders.id',
            ondelete='CASCADE'),
        nullable=False,
        index=True)
    # Kept as a loose reference; the snapshot columns below are authoritative.
    product_id = db.Column(
        db.Integer,
        db.ForeignKey(
            'products.id',
            ondelete='SET NULL'),
        nullable=True,
        index=True)
    product_name = db.Column(db.String(255), nullable=False)
    product_sku = db.Column(db.String(100), nullable=True)
    quantity = db.Column(db.Integer, nullable=False)
    price = db.Column(db.Numeric(10, 2), nullable=False)
    total = db.Column(db.Numeric(10, 2), nullable=False)
    created_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        nullable=False)

    __table_args__ = (
        CheckConstraint('quantity > 0', name='check_order_quantity_positive'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'orderId': self.order_id,
            'productId': self.product_id,
            'productName': self.product_name,
            'productSku': self.product_sku,
            'quantity': self.quantity,
            'price': money(self.price),
            'total': money(self.total),
        }

    def __repr__(self):
        return (
            f"<OrderItem {self.id} order={self.order_id} "
            f"product={self.product_id}>"
        )


class CustomerAddress(db.Model):
    __tablename__ = 'customer_addresses'

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(
        db.Integer,
        db.ForeignKey(
            'users.id',
            ondelete='CASCADE'),
        nullable=False,
        index=True)
    address_type = db.Column(db.Enum(AddressType), nullable=False)
    street_address = db.Column(db.String(500), nullable=False)
    address_line2 = db.Column(db.String(255), nullable=True)
    city = db.Column(db.String(100), nullable=False)
    state = db.Column(db.String(100), nullable=False)
    postal_code = db.Column(db.String(20), nullable=False)
    country = db.Column(db.String(100), nullable=False)
    is_default = db.Column(db.Boolean, default=False, nullable=False)
    created_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        nullable=False)
    updated_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False)

    __table_args__ = (
        db.Index(
            'ix_address_customer_type_default',
            'customer_id',
            'address_type',
            'is_default'),
    )

    def snapshot(self):
        return {
            'addressType': self.address_type.value,
            'streetAddress': self.street_address,
            'addressLine2': self.address_line2,
            'city': self.city,
            'state': self.state,
            'postalCode': self.postal_code,
            'country': self.country,
        }

    def to_dict(self):
        data = self.snapshot()
        data.update({
            'id': self.id,
            'customerId': self.customer_id,
            'customerName': (
                self.customer.full_name if self.customer else None),
            'customerEmail': self.customer.email if self.customer else None,
            'isDefault': self.is_default,
            'createdAt': iso(self.created_at),
            'updatedAt': iso(self.updated_at),
        })
        return data

    def __repr__(self):
        return f'<CustomerAddress {self.id} for customer {self.customer_id}>'


class Transaction(db.Model):
    __tablename__ = 'transactions'

    id = db.Column(db.Integer, primary_key=True)
    transaction_id = db.Column(
        db.String(100),
        unique=True,
        nullable=False,
        index=True)
    customer_id = db.Column(
        db.Integer,
        db.ForeignKey(
            'users.id',
            ondelete='CASCADE'),
        nullable=False,
        index=True)
    order_id = db.Column(
        db.Integer,
        db.ForeignKey(
            'orders.id',
            ondelete='SET NULL'),
        nullable=True,
        index=True)
    # Set on refunds; points at the payment being refunded
    original_transaction_id = db.Column(
        db.Integer,
        db.ForeignKey(
            'transactions.id',
            ondelete='SET NULL'),
        nullable=True,
        index=True)
    amount = db.Column(db.Numeric(10, 2), nullable=False)
    currency = db.Column(db.String(10), nullable=False, default='USD')
    transaction_type = db.Column(db.Enum(TransactionType), nullable=False)
    status = db.Column(
        db.Enum(TransactionStatus),
        default=TransactionStatus.PENDING,
        nullable=False,
        index=True)
    payment_method = db.Column(db.Enum(PaymentMethod), nullable=False)
    payment_gateway = db.Column(db.String(50), nullable=True)
    gateway_transaction_id = db.Column(
        db.String(255),
        nullable=True,
        index=True)
    description = db.Column(db.Text, nullable=True)
    metadata_json = db.Column('metadata', db.Text, nullable=True)
    failure_reason = db.Column(db.Text, nullable=True)
    created_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        nullable=False,
        index=True)
    updated_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False)

    customer = db.relationship('User', foreign_keys=[customer_id])
    order = db.relationship('Order', foreign_keys=[order_id])
    original = db.relationship(
        'Transaction',
        remote_side=[id],
        backref='refunds')

    __table_args__ = (
        CheckConstraint('amount > 0', name='check_transaction_amount_positive'),
    )

    def set_metadata(self, data):
        if data is None:
            self.metadata_json = None
        else:
            self.metadata_json = json.dumps(data, ensure_ascii=False)

    def get_metadata(self):
        return _load_json(self.metadata_json)

    def to_dict(self):
        return {
            'id': self.id,
            'transactionId': self.transaction_id,
            'customerId': self.customer_id,
            'customerName': self.customer.full_name if self.customer else None,
            'customerEmail': self.customer.email if self.customer else None,
            'orderId': self.order_id,
            'orderNumber': self.order.order_number if self.order else None,
            'originalTransactionId': (
                self.original.transaction_id if self.original else None),
            'amount': money(self.amount),
            'currency': self.currency,
            'transactionType': self.transaction_type.value,
            'status': self.status.value,
            'paymentMethod': self.payment_method.value,
            'paymentGateway': self.payment_gateway,
            'gatewayTransactionId': self.gateway_transaction_id,
            'description': self.description,
            'metadata': self.get_metadata(),
            'failureReason': self.failure_reason,
            'createdAt': iso(self.created_at),
            'updatedAt': iso(self.updated_at),
        }

    def __repr__(self):
        return f'<Transaction {self.transaction_id} status={self.status}>'


class KycApplication(db.Model):
    __tablename__ = 'kyc_applications'

    id = db.Column(db.Integer, primary_key=True)
    application_id = db.Column(
        db.String(50),
        unique=True,
        nullable=False,
        index=True)
    user_id = db.Column(
        db.Integer,
        db.ForeignKey(
            'users.id',
            ondelete='CASCADE'),
        nullable=False,
        index=True)
    document_type = db.Column(db.Enum(KycDocumentType), nullable=False)
    document_number = db.Column(db.String(100), nullable=False)
    front_image_url = db.Column(db.String(500), nullable=True)
    back_image_url = db.Column(db.String(500), nullable=True)
    selfie_image_url = db.Column(db.String(500), nullable=True)
    status = db.Column(
        db.Enum(KycStatus),
        default=KycStatus.PENDING,
        nullable=False,
        index=True)
    rejection_reason = db.Column(db.Text, nullable=True)
    admin_notes = db.Column(db.String(500), nullable=True)
    created_by = db.Column(
        db.Integer,
        db.ForeignKey(
            'users.id',
            ondelete='SET NULL'),
        nullable=True)
    submitted_date = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        nullable=False,
        index=True)
    reviewed_date = db.Column(db.DateTime, nullable=True)
    reviewed_by = db.Column(
        db.Integer,
        db.ForeignKey(
            'users.id',
            ondelete='SET NULL'),
        nullable=True)
    created_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        nullable=False)
    updated_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False)

    user = db.relationship('User', foreign_keys=[user_id])
    reviewer = db.relationship('User', foreign_keys=[reviewed_by])
    creator = db.relationship('User', foreign_keys=[created_by])

    def to_dict(self):
        return {
            'id': self.id,
            'applicationId': self.application_id,
            'userId': self.user_id,
            'userName': self.user.full_name if self.user else None,
            'userEmail': self.user.email if self.user else None,
            'userPhone': self.user.phone if self.user else None,
            'documentType': self.document_type.value,
            'documentNumber': self.document_number,
            'frontImageUrl': self.front_image_url,
            'backImageUrl': self.back_image_url,
            'selfieImageUrl': self.selfie_image_url,
            'status': self.status.value,
            'rejectionReason': self.rejection_reason,
            'adminNotes': self.admin_notes,
            'createdByAdmin': self.creator.full_name if self.creator else None,
            'submittedDate': iso(self.submitted_date),
            'reviewedDate': iso(self.reviewed_date),
            'reviewedBy': self.reviewed_by,
            'reviewerName': self.reviewer.full_name if self.reviewer else None,
        }

    def __repr__(self):
        return f'<KycApplication {self.application_id} status={self.status}>'


class ReturnOrder(db.Model):
    __tablename__ = 'return_orders'

    id = db.Column(db.Integer, primary_key=True)
    return_id = db.Column(
        db.String(50),
        unique=True,
        nullable=False,
        index=True)
    order_id = db.Column(
        db.Integer,
        db.ForeignKey(
            'orders.id',
            ondelete='CASCADE'),
        nullable=False,
        index=True)
    customer_id = db.Column(
        db.Integer,
        db.ForeignKey(
            'users.id',
            ondelete='CASCADE'),
        nullable=False,
        index=True)
    product_id = db.Column(
        db.Integer,
        db.ForeignKey(
            'products.id',
            ondelete='CASCADE'),
        nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    reason = db.Column(db.Text, nullable=False)
    status = db.Column(
        db.Enum(ReturnStatus),
        default=ReturnStatus.INITIATED,
        nullable=False)
    refund_amount = db.Column(db.Numeric(10, 2), nullable=False)
    tracking_number = db.Column(db.String(100), nullable=True)
    notes = db.Column(db.Text, nullable=True)
    return_date = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        nullable=False)
    processed_date = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        nullable=False)
    updated_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False)

    order = db.relationship('Order', foreign_keys=[order_id])
    customer = db.relationship('User', foreign_keys=[customer_id])
    product = db.relationship('Product', foreign_keys=[product_id])

    __table_args__ = (
        CheckConstraint('quantity > 0', name='check_return_quantity_positive'),
        CheckConstraint(
            'refund_amount >= 0',
            name='check_refund_amount_non_negative'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'returnId': self.return_id,
            'orderId': self.order_id,
            'orderNumber': self.order.order_number if self.order else None,
            'customerId': self.customer_id,
            'customerName': self.customer.full_name if self.customer else None,
            'customerPhone': self.customer.phone if self.customer else None,
            'productId': self.product_id,
            'productName': self.product.name if self.product else None,
            'quantity': self.quantity,
            'reason': self.reason,
            'status': self.status.value,
            'refundAmount': money(self.refund_amount),
            'trackingNumber': self.tracking_number,
            'notes': self.notes,
            'returnDate': iso(self.return_date),
            'processedDate': iso(self.processed_date),
        }

    def __repr__(self):
        return f'<ReturnOrder {self.return_id} status={self.status}>'


class Review(db.Model):
    __tablename__ = 'reviews'

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(
        db.Integer,
        db.ForeignKey(
            'products.id',
            ondelete='CASCADE'),
        nullable=False,
        index=True)
    user_id = db.Column(
        db.Integer,
        db.ForeignKey(
            'users.id',
            ondelete='CASCADE'),
        nullable=False,
        index=True)
    order_id = db.Column(
        db.Integer,
        db.ForeignKey(
            'orders.id',
            ondelete='SET NULL'),
        nullable=True)
    rating = db.Column(db.Integer, nullable=False)
    title = db.Column(db.String(255), nullable=True)
    comment = db.Column(db.Text, nullable=True)
    product_quality_rating = db.Column(db.Integer, nullable=True)
    shipping_rating = db.Column(db.Integer, nullable=True)
    seller_rating = db.Column(db.Integer, nullable=True)
    status = db.Column(
        db.Enum(ReviewStatus),
        default=ReviewStatus.PENDING,
        nullable=False)
    admin_reply = db.Column(db.Text, nullable=True)
    created_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        nullable=False)
    updated_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False)

    user = db.relationship('User', foreign_keys=[user_id])

    __table_args__ = (
        CheckConstraint(
            'rating >= 1 AND rating <= 5',
            name='check_rating_range'),
        UniqueConstraint(
            'user_id',
            'product_id',
            name='uq_user_product_review'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'productId': self.product_id,
            'productName': self.product.name if self.product else None,
            'productSku': self.product.sku if self.product else None,
            'userId': self.user_id,
            'userName': self.user.full_name if self.user else None,
            'orderId': self.order_id,
            'rating': self.rating,
            'title': self.title,
            'comment': self.comment,
            'productQualityRating': self.product_quality_rating,
            'shippingRating': self.shipping_rating,
            'sellerRating': self.seller_rating,
            'status': self.status.value,
            'adminReply': self.admin_reply,
            'createdAt': iso(self.created_at),
            'updatedAt': iso(self.updated_at),
        }

    def __repr__(self):
        return f'<Review {self.id} for product {self.product_id}>'


class SupportTicket(db.Model):
    __tablename__ = 'support_tickets'

    id = db.Column(db.Integer, primary_key=True)
    ticket_number = db.Column(
        db.String(50),
        unique=True,
        nullable=False,
        index=True)
    customer_id = db.Column(
        db.Integer,
        db.ForeignKey(
            'users.id',
            ondelete='CASCADE'),
        nullable=False,
        index=True)
    subject = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=False)
    status = db.Column(
        db.Enum(TicketStatus),
        default=TicketStatus.OPEN,
        nullable=False)
    priority = db.Column(
        db.Enum(TicketPriority),
        default=TicketPriority.MEDIUM,
        nullable=False)
    assigned_to = db.Column(
        db.Integer,
        db.ForeignKey(
            'users.id',
            ondelete='SET NULL'),
        nullable=True)
    admin_response = db.Column(db.Text, nullable=True)
    satisfaction_rating = db.Column(db.Integer, nullable=True)
    created_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        nullable=False)
    updated_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False)

    customer = db.relationship('User', foreign_keys=[customer_id])
    assignee = db.relationship('User', foreign_keys=[assigned_to])

    __table_args__ = (
        CheckConstraint(
            'satisfaction_rating IS NULL OR '
            '(satisfaction_rating >= 1 AND satisfaction_rating <= 5)',
            name='check_satisfaction_range'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'ticketNumber': self.ticket_number,
            'customerId': self.customer_id,
            'customerName': self.customer.full_name if self.customer else None,
            'customerEmail': self.customer.email if self.customer else None,
            'subject': self.subject,
            'description': self.description,
            'status': self.status.value,
            'priority': self.priority.value,
            'assignedTo': self.assigned_to,
            'assignedToName': (
                self.assignee.full_name if self.assignee else None),
            'adminResponse': self.admin_response,
            'satisfactionRating': self.satisfaction_rating,
            'createdAt': iso(self.created_at),
            'updatedAt': iso(self.updated_at),
        }

    def __repr__(self):
        return f'<SupportTicket {self.ticket_number} status={self.status}>'


class Blog(db.Model):
    __tablename__ = 'blogs'

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(255), nullable=False)
    slug = db.Column(db.String(255), unique=True, nullable=False, index=True)
    content = db.Column(db.Text, nullable=False)
    excerpt = db.Column(db.Text, nullable=True)
    author = db.Column(db.String(100), nullable=False, index=True)
    tags_json = db.Column(db.Text, nullable=True)
    status = db.Column(
        db.Enum(BlogStatus),
        default=BlogStatus.DRAFT,
        nullable=False,
        index=True)
    featured_image = db.Column(db.String(500), nullable=True)
    view_count = db.Column(db.Integer, nullable=False, default=0)
    comment_count = db.Column(db.Integer, nullable=False, default=0)
    published_at = db.Column(db.DateTime, nullable=True, index=True)
    created_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        nullable=False)
    updated_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False)

    def set_tags(self, tags):
        self.tags_json = json.dumps(list(tags or []), ensure_ascii=False)

    def get_tags(self):
        return _load_json(self.tags_json, [])

    def to_dict(self):
        return {
            'id': self.id,
            'title': self.title,
            'slug': self.slug,
            'content': self.content,
            'excerpt': self.excerpt,
            'author': self.author,
            'tags': self.get_tags(),
            'status': self.status.value,
            'featuredImage': self.featured_image,
            'viewCount': self.view_count,
            'commentCount': self.comment_count,
            'publishedAt': iso(self.published_at),
            'createdAt': iso(self.created_at),
            'updatedAt': iso(self.updated_at),
        }

    def __repr__(self):
        return f'<Blog {self.slug}>'


class SystemSetting(db.Model):
    __tablename__ = 'system_settings'

    key = db.Column(db.String(100), primary_key=True)
    value_json = db.Column(db.Text, nullable=False)
    updated_by = db.Column(
        db.Integer,
        db.ForeignKey(
            'users.id',
            ondelete='SET NULL'),
        nullable=True)
    updated_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False)

    def get_value(self):
        return _load_json(self.value_json)

    def set_value(self, value):
        self.value_json = json.dumps(value, ensure_ascii=False)

    def __repr__(self):
        return f'<SystemSetting {self.key}>'


class AuditLog(db.Model):
    __tablename__ = 'audit_logs'

    id = db.Column(db.Integer, primary_key=True)
    actor_id = db.Column(
        db.Integer,
        db.ForeignKey(
            'users.id',
            ondelete='SET NULL'),
        nullable=True)
    actor_role = db.Column(db.String(20), nullable=False)
    # e.g., ORDER_CREATE, KYC_STATUS_UPDATE
    action = db.Column(db.String(100), nullable=False)
    # ORDER, TRANSACTION, KYC_APPLICATION, etc.
    target_type = db.Column(db.String(50), nullable=True)
    target_id = db.Column(db.Integer, nullable=True)
    ip = db.Column(db.String(45), nullable=True)
    user_agent = db.Column(db.String(500), nullable=True)
    # JSON format key field snapshot
    payload_json = db.Column(db.Text, nullable=True)
    created_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        nullable=False,
        index=True)

    actor = db.relationship('User', foreign_keys=[actor_id])

    def set_payload(self, data):
        self.payload_json = json.dumps(data, ensure_ascii=False, default=str)

    def get_payload(self):
        return _load_json(self.payload_json, {})

    def __repr__(self):
        return f'<AuditLog {self.id} action={self.action}>'
