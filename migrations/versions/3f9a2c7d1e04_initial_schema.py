"""initial schema

Revision ID: 3f9a2c7d1e04
Revises:
Create Date: 2026-10-18 09:12:44.512301

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "3f9a2c7d1e04"
down_revision = None
branch_labels = None
depends_on = None

# Named enum types; PostgreSQL keeps these after the tables are dropped.
ENUM_TYPES = (
    "userrole", "userstatus", "stockstatus", "productstatus",
    "productvisibility", "orderstatus", "paymentstatus", "addresstype",
    "transactiontype", "transactionstatus", "paymentmethod",
    "kycdocumenttype", "kycstatus", "returnstatus", "reviewstatus",
    "ticketstatus", "ticketpriority", "blogstatus",
)


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    ]


def upgrade():
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("full_name", sa.String(length=255), nullable=False),
        sa.Column("username", sa.String(length=100), nullable=True),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("phone", sa.String(length=20), nullable=True),
        sa.Column("role", sa.Enum("ADMIN", "CUSTOMER", name="userrole"),
                  nullable=False),
        sa.Column("status", sa.Enum("ACTIVE", "INACTIVE", "SUSPENDED",
                                    name="userstatus"), nullable=False),
        sa.Column("avatar", sa.String(length=500), nullable=True),
        *_timestamps(),
        sa.Column("last_login_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    with op.batch_alter_table("users", schema=None) as batch_op:
        batch_op.create_index(
            batch_op.f("ix_users_email"), ["email"], unique=True)
        batch_op.create_index(
            batch_op.f("ix_users_username"), ["username"], unique=True)

    op.create_table(
        "categories",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("slug", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("image", sa.String(length=500), nullable=True),
        sa.Column("parent_id", sa.Integer(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(
            ["parent_id"], ["categories.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    with op.batch_alter_table("categories", schema=None) as batch_op:
        batch_op.create_index(
            batch_op.f("ix_categories_slug"), ["slug"], unique=True)

    op.create_table(
        "products",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("slug", sa.String(length=255), nullable=False),
        sa.Column("sku", sa.String(length=100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("short_description", sa.String(length=500), nullable=True),
        sa.Column("category_id", sa.Integer(), nullable=True),
        sa.Column("brand", sa.String(length=100), nullable=True),
        sa.Column("price", sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column("sale_price", sa.Numeric(precision=10, scale=2),
                  nullable=True),
        sa.Column("stock_quantity", sa.Integer(), nullable=False),
        sa.Column("stock_status", sa.Enum(
            "IN_STOCK", "OUT_OF_STOCK", "ON_BACKORDER", name="stockstatus"),
            nullable=False),
        sa.Column("weight", sa.Numeric(precision=8, scale=2), nullable=True),
        sa.Column("dimensions", sa.String(length=100), nullable=True),
        sa.Column("status", sa.Enum(
            "ACTIVE", "INACTIVE", "DRAFT", name="productstatus"),
            nullable=False),
        sa.Column("featured", sa.Boolean(), nullable=False),
        sa.Column("visibility", sa.Enum(
            "PUBLIC", "PRIVATE", "DRAFT", name="productvisibility"),
            nullable=False),
        sa.Column("meta_title", sa.String(length=255), nullable=True),
        sa.Column("meta_description", sa.Text(), nullable=True),
        sa.Column("has_variants", sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.CheckConstraint(
            "stock_quantity >= 0", name="check_stock_non_negative"),
        sa.CheckConstraint("price >= 0", name="check_price_non_negative"),
        sa.CheckConstraint(
            "sale_price IS NULL OR sale_price <= price",
            name="check_sale_price_not_above_price"),
        sa.ForeignKeyConstraint(
            ["category_id"], ["categories.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    with op.batch_alter_table("products", schema=None) as batch_op:
        batch_op.create_index(
            batch_op.f("ix_products_category_id"), ["category_id"],
            unique=False)
        batch_op.create_index(
            batch_op.f("ix_products_name"), ["name"], unique=False)
        batch_op.create_index(
            batch_op.f("ix_products_sku"), ["sku"], unique=True)
        batch_op.create_index(
            batch_op.f("ix_products_slug"), ["slug"], unique=True)

    op.create_table(
        "product_images",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("product_id", sa.Integer(), nullable=False),
        sa.Column("image_url", sa.String(length=500), nullable=False),
        sa.Column("public_id", sa.String(length=255), nullable=True),
        sa.Column("alt_text", sa.String(length=255), nullable=True),
        sa.Column("sort_order", sa.Integer(), nullable=False),
        sa.Column("is_primary", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(
            ["product_id"], ["products.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    with op.batch_alter_table("product_images", schema=None) as batch_op:
        batch_op.create_index(
            batch_op.f("ix_product_images_product_id"), ["product_id"],
            unique=False)

    op.create_table(
        "product_attributes",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("product_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("values_json", sa.Text(), nullable=False),
        sa.Column("display_order", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(
            ["product_id"], ["products.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    with op.batch_alter_table("product_attributes", schema=None) as batch_op:
        batch_op.create_index(
            batch_op.f("ix_product_attributes_product_id"), ["product_id"],
            unique=False)

    op.create_table(
        "product_variants",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("product_id", sa.Integer(), nullable=False),
        sa.Column("sku", sa.String(length=100), nullable=False),
        sa.Column("price", sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column("sale_price", sa.Numeric(precision=10, scale=2),
                  nullable=True),
        sa.Column("stock_quantity", sa.Integer(), nullable=False),
        sa.Column("enabled", sa.Boolean(), nullable=False),
        sa.CheckConstraint(
            "stock_quantity >= 0", name="check_variant_stock_non_negative"),
        sa.ForeignKeyConstraint(
            ["product_id"], ["products.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("sku"),
    )
    with op.batch_alter_table("product_variants", schema=None) as batch_op:
        batch_op.create_index(
            batch_op.f("ix_product_variants_product_id"), ["product_id"],
            unique=False)

    op.create_table(
        "variant_attributes",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("variant_id", sa.Integer(), nullable=False),
        sa.Column("attribute_name", sa.String(length=100), nullable=False),
        sa.Column("attribute_value", sa.String(length=255), nullable=False),
        sa.ForeignKeyConstraint(
            ["variant_id"], ["product_variants.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    with op.batch_alter_table("variant_attributes", schema=None) as batch_op:
        batch_op.create_index(
            batch_op.f("ix_variant_attributes_variant_id"), ["variant_id"],
            unique=False)

    op.create_table(
        "carts",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id"),
    )

    op.create_table(
        "cart_items",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("cart_id", sa.Integer(), nullable=False),
        sa.Column("product_id", sa.Integer(), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("selected_attributes_json", sa.Text(), nullable=True),
        sa.Column("attributes_key", sa.String(length=64), nullable=False),
        *_timestamps(),
        sa.CheckConstraint("quantity > 0", name="check_quantity_positive"),
        sa.ForeignKeyConstraint(
            ["cart_id"], ["carts.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(
            ["product_id"], ["products.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "cart_id", "product_id", "attributes_key",
            name="uq_cart_product_attributes"),
    )
    with op.batch_alter_table("cart_items", schema=None) as batch_op:
        batch_op.create_index(
            batch_op.f("ix_cart_items_cart_id"), ["cart_id"], unique=False)
        batch_op.create_index(
            batch_op.f("ix_cart_items_product_id"), ["product_id"],
            unique=False)

    op.create_table(
        "orders",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("order_number", sa.String(length=50), nullable=False),
        sa.Column("customer_id", sa.Integer(), nullable=False),
        sa.Column("status", sa.Enum(
            "PENDING", "CONFIRMED", "PROCESSING", "SHIPPED", "DELIVERED",
            "CANCELLED", "REFUNDED", name="orderstatus"), nullable=False),
        sa.Column("subtotal", sa.Numeric(precision=10, scale=2),
                  nullable=False),
        sa.Column("tax_amount", sa.Numeric(precision=10, scale=2),
                  nullable=False),
        sa.Column("shipping_amount", sa.Numeric(precision=10, scale=2),
                  nullable=False),
        sa.Column("discount_amount", sa.Numeric(precision=10, scale=2),
                  nullable=False),
        sa.Column("total_amount", sa.Numeric(precision=10, scale=2),
                  nullable=False),
        sa.Column("payment_method", sa.String(length=50), nullable=True),
        sa.Column("payment_status", sa.Enum(
            "PENDING", "PAID", "FAILED", "REFUNDED", name="paymentstatus"),
            nullable=False),
        sa.Column("shipping_address_json", sa.Text(), nullable=True),
        sa.Column("billing_address_json", sa.Text(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("order_date", sa.DateTime(), nullable=False),
        sa.Column("shipped_date", sa.DateTime(), nullable=True),
        sa.Column("delivered_date", sa.DateTime(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ["customer_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    with op.batch_alter_table("orders", schema=None) as batch_op:
        batch_op.create_index(
            batch_op.f("ix_orders_customer_id"), ["customer_id"],
            unique=False)
        batch_op.create_index(
            batch_op.f("ix_orders_order_date"), ["order_date"], unique=False)
        batch_op.create_index(
            batch_op.f("ix_orders_order_number"), ["order_number"],
            unique=True)

    op.create_table(
        "order_items",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("order_id", sa.Integer(), nullable=False),
        sa.Column("product_id", sa.Integer(), nullable=True),
        sa.Column("product_name", sa.String(length=255), nullable=False),
        sa.Column("product_sku", sa.String(length=100), nullable=True),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("price", sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column("total", sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint(
            "quantity > 0", name="check_order_quantity_positive"),
        sa.ForeignKeyConstraint(
            ["order_id"], ["orders.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(
            ["product_id"], ["products.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    with op.batch_alter_table("order_items", schema=None) as batch_op:
        batch_op.create_index(
            batch_op.f("ix_order_items_order_id"), ["order_id"],
            unique=False)
        batch_op.create_index(
            batch_op.f("ix_order_items_product_id"), ["product_id"],
            unique=False)

    op.create_table(
        "customer_addresses",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("customer_id", sa.Integer(), nullable=False),
        sa.Column("address_type", sa.Enum(
            "BILLING", "SHIPPING", name="addresstype"), nullable=False),
        sa.Column("street_address", sa.String(length=500), nullable=False),
        sa.Column("address_line2", sa.String(length=255), nullable=True),
        sa.Column("city", sa.String(length=100), nullable=False),
        sa.Column("state", sa.String(length=100), nullable=False),
        sa.Column("postal_code", sa.String(length=20), nullable=False),
        sa.Column("country", sa.String(length=100), nullable=False),
        sa.Column("is_default", sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ["customer_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    with op.batch_alter_table("customer_addresses", schema=None) as batch_op:
        batch_op.create_index(
            "ix_address_customer_type_default",
            ["customer_id", "address_type", "is_default"], unique=False)
        batch_op.create_index(
            batch_op.f("ix_customer_addresses_customer_id"), ["customer_id"],
            unique=False)

    op.create_table(
        "transactions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("transaction_id", sa.String(length=100), nullable=False),
        sa.Column("customer_id", sa.Integer(), nullable=False),
        sa.Column("order_id", sa.Integer(), nullable=True),
        sa.Column("original_transaction_id", sa.Integer(), nullable=True),
        sa.Column("amount", sa.Numeric(precision=10, scale=2),
                  nullable=False),
        sa.Column("currency", sa.String(length=10), nullable=False),
        sa.Column("transaction_type", sa.Enum(
            "PAYMENT", "REFUND", "CHARGEBACK", "ADJUSTMENT", "CREDIT",
            name="transactiontype"), nullable=False),
        sa.Column("status", sa.Enum(
            "PENDING", "COMPLETED", "FAILED", "CANCELLED", "REFUNDED",
            name="transactionstatus"), nullable=False),
        sa.Column("payment_method", sa.Enum(
            "CREDIT_CARD", "DEBIT_CARD", "UPI", "NET_BANKING", "WALLET",
            "CASH_ON_DELIVERY", "BANK_TRANSFER", name="paymentmethod"),
            nullable=False),
        sa.Column("payment_gateway", sa.String(length=50), nullable=True),
        sa.Column("gateway_transaction_id", sa.String(length=255),
                  nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("metadata", sa.Text(), nullable=True),
        sa.Column("failure_reason", sa.Text(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "amount > 0", name="check_transaction_amount_positive"),
        sa.ForeignKeyConstraint(
            ["customer_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(
            ["order_id"], ["orders.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(
            ["original_transaction_id"], ["transactions.id"],
            ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    with op.batch_alter_table("transactions", schema=None) as batch_op:
        batch_op.create_index(
            batch_op.f("ix_transactions_created_at"), ["created_at"],
            unique=False)
        batch_op.create_index(
            batch_op.f("ix_transactions_customer_id"), ["customer_id"],
            unique=False)
        batch_op.create_index(
            batch_op.f("ix_transactions_gateway_transaction_id"),
            ["gateway_transaction_id"], unique=False)
        batch_op.create_index(
            batch_op.f("ix_transactions_order_id"), ["order_id"],
            unique=False)
        batch_op.create_index(
            batch_op.f("ix_transactions_original_transaction_id"),
            ["original_transaction_id"], unique=False)
        batch_op.create_index(
            batch_op.f("ix_transactions_status"), ["status"], unique=False)
        batch_op.create_index(
            batch_op.f("ix_transactions_transaction_id"),
            ["transaction_id"], unique=True)

    op.create_table(
        "kyc_applications",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("application_id", sa.String(length=50), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("document_type", sa.Enum(
            "AADHAAR", "PAN", "PASSPORT", "DRIVING_LICENSE",
            name="kycdocumenttype"), nullable=False),
        sa.Column("document_number", sa.String(length=100), nullable=False),
        sa.Column("front_image_url", sa.String(length=500), nullable=True),
        sa.Column("back_image_url", sa.String(length=500), nullable=True),
        sa.Column("selfie_image_url", sa.String(length=500), nullable=True),
        sa.Column("status", sa.Enum(
            "PENDING", "ACCEPTED", "REJECTED", name="kycstatus"),
            nullable=False),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("admin_notes", sa.String(length=500), nullable=True),
        sa.Column("created_by", sa.Integer(), nullable=True),
        sa.Column("submitted_date", sa.DateTime(), nullable=False),
        sa.Column("reviewed_date", sa.DateTime(), nullable=True),
        sa.Column("reviewed_by", sa.Integer(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ["created_by"], ["users.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(
            ["reviewed_by"], ["users.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(
            ["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    with op.batch_alter_table("kyc_applications", schema=None) as batch_op:
        batch_op.create_index(
            batch_op.f("ix_kyc_applications_application_id"),
            ["application_id"], unique=True)
        batch_op.create_index(
            batch_op.f("ix_kyc_applications_status"), ["status"],
            unique=False)
        batch_op.create_index(
            batch_op.f("ix_kyc_applications_submitted_date"),
            ["submitted_date"], unique=False)
        batch_op.create_index(
            batch_op.f("ix_kyc_applications_user_id"), ["user_id"],
            unique=False)

    op.create_table(
        "return_orders",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("return_id", sa.String(length=50), nullable=False),
        sa.Column("order_id", sa.Integer(), nullable=False),
        sa.Column("customer_id", sa.Integer(), nullable=False),
        sa.Column("product_id", sa.Integer(), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("status", sa.Enum(
            "INITIATED", "IN_PROGRESS", "QC_IN_PROGRESS", "RETURNED",
            "SCRAPPED", "CANCELLED", name="returnstatus"), nullable=False),
        sa.Column("refund_amount", sa.Numeric(precision=10, scale=2),
                  nullable=False),
        sa.Column("tracking_number", sa.String(length=100), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("return_date", sa.DateTime(), nullable=False),
        sa.Column("processed_date", sa.DateTime(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "quantity > 0", name="check_return_quantity_positive"),
        sa.CheckConstraint(
            "refund_amount >= 0", name="check_refund_amount_non_negative"),
        sa.ForeignKeyConstraint(
            ["customer_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(
            ["order_id"], ["orders.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(
            ["product_id"], ["products.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    with op.batch_alter_table("return_orders", schema=None) as batch_op:
        batch_op.create_index(
            batch_op.f("ix_return_orders_customer_id"), ["customer_id"],
            unique=False)
        batch_op.create_index(
            batch_op.f("ix_return_orders_order_id"), ["order_id"],
            unique=False)
        batch_op.create_index(
            batch_op.f("ix_return_orders_return_id"), ["return_id"],
            unique=True)

    op.create_table(
        "reviews",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("product_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("order_id", sa.Integer(), nullable=True),
        sa.Column("rating", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=True),
        sa.Column("comment", sa.Text(), nullable=True),
        sa.Column("product_quality_rating", sa.Integer(), nullable=True),
        sa.Column("shipping_rating", sa.Integer(), nullable=True),
        sa.Column("seller_rating", sa.Integer(), nullable=True),
        sa.Column("status", sa.Enum(
            "PENDING", "APPROVED", "REJECTED", name="reviewstatus"),
            nullable=False),
        sa.Column("admin_reply", sa.Text(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "rating >= 1 AND rating <= 5", name="check_rating_range"),
        sa.ForeignKeyConstraint(
            ["order_id"], ["orders.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(
            ["product_id"], ["products.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(
            ["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "user_id", "product_id", name="uq_user_product_review"),
    )
    with op.batch_alter_table("reviews", schema=None) as batch_op:
        batch_op.create_index(
            batch_op.f("ix_reviews_product_id"), ["product_id"], unique=False)
        batch_op.create_index(
            batch_op.f("ix_reviews_user_id"), ["user_id"], unique=False)

    op.create_table(
        "support_tickets",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("ticket_number", sa.String(length=50), nullable=False),
        sa.Column("customer_id", sa.Integer(), nullable=False),
        sa.Column("subject", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("status", sa.Enum(
            "OPEN", "IN_PROGRESS", "RESOLVED", "CLOSED",
            name="ticketstatus"), nullable=False),
        sa.Column("priority", sa.Enum(
            "LOW", "MEDIUM", "HIGH", "URGENT", name="ticketpriority"),
            nullable=False),
        sa.Column("assigned_to", sa.Integer(), nullable=True),
        sa.Column("admin_response", sa.Text(), nullable=True),
        sa.Column("satisfaction_rating", sa.Integer(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "satisfaction_rating IS NULL OR "
            "(satisfaction_rating >= 1 AND satisfaction_rating <= 5)",
            name="check_satisfaction_range"),
        sa.ForeignKeyConstraint(
            ["assigned_to"], ["users.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(
            ["customer_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    with op.batch_alter_table("support_tickets", schema=None) as batch_op:
        batch_op.create_index(
            batch_op.f("ix_support_tickets_customer_id"), ["customer_id"],
            unique=False)
        batch_op.create_index(
            batch_op.f("ix_support_tickets_ticket_number"),
            ["ticket_number"], unique=True)

    op.create_table(
        "blogs",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("slug", sa.String(length=255), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("excerpt", sa.Text(), nullable=True),
        sa.Column("author", sa.String(length=100), nullable=False),
        sa.Column("tags_json", sa.Text(), nullable=True),
        sa.Column("status", sa.Enum(
            "DRAFT", "PUBLISHED", "ARCHIVED", name="blogstatus"),
            nullable=False),
        sa.Column("featured_image", sa.String(length=500), nullable=True),
        sa.Column("view_count", sa.Integer(), nullable=False),
        sa.Column("comment_count", sa.Integer(), nullable=False),
        sa.Column("published_at", sa.DateTime(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    with op.batch_alter_table("blogs", schema=None) as batch_op:
        batch_op.create_index(
            batch_op.f("ix_blogs_author"), ["author"], unique=False)
        batch_op.create_index(
            batch_op.f("ix_blogs_published_at"), ["published_at"],
            unique=False)
        batch_op.create_index(
            batch_op.f("ix_blogs_slug"), ["slug"], unique=True)
        batch_op.create_index(
            batch_op.f("ix_blogs_status"), ["status"], unique=False)

    op.create_table(
        "system_settings",
        sa.Column("key", sa.String(length=100), nullable=False),
        sa.Column("value_json", sa.Text(), nullable=False),
        sa.Column("updated_by", sa.Integer(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(
            ["updated_by"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("key"),
    )

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("actor_id", sa.Integer(), nullable=True),
        sa.Column("actor_role", sa.String(length=20), nullable=False),
        sa.Column("action", sa.String(length=100), nullable=False),
        sa.Column("target_type", sa.String(length=50), nullable=True),
        sa.Column("target_id", sa.Integer(), nullable=True),
        sa.Column("ip", sa.String(length=45), nullable=True),
        sa.Column("user_agent", sa.String(length=500), nullable=True),
        sa.Column("payload_json", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(
            ["actor_id"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    with op.batch_alter_table("audit_logs", schema=None) as batch_op:
        batch_op.create_index(
            batch_op.f("ix_audit_logs_created_at"), ["created_at"],
            unique=False)


def downgrade():
    # Dependents first; dropping a table drops its indexes with it.
    for table in (
        "audit_logs", "system_settings", "blogs", "support_tickets",
        "reviews", "return_orders", "kyc_applications", "transactions",
        "customer_addresses", "order_items", "orders", "cart_items",
        "carts", "variant_attributes", "product_variants",
        "product_attributes", "product_images", "products", "categories",
        "users",
    ):
        op.drop_table(table)

    bind = op.get_bind()
    if bind.dialect.name == "postgresql":
        for name in ENUM_TYPES:
            sa.Enum(name=name).drop(bind, checkfirst=True)
