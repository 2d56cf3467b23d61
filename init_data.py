from storeadmin import create_app
from storeadmin.extensions import db
from storeadmin.models import (
    Category,
    User,
    UserRole,
    UserStatus,
    Product,
    ProductStatus,
    StockStatus,
    CustomerAddress,
    AddressType,
)
from storeadmin.utils import slugify
from decimal import Decimal

app = create_app()

with app.app_context():
    db.create_all()

    # Create initial categories
    categories_data = [
        {"name": "Electronics", "slug": "electronics"},
        {"name": "Clothing", "slug": "clothing"},
        {"name": "Books", "slug": "books"},
        {"name": "Home", "slug": "home"},
        {"name": "Sports", "slug": "sports"},
    ]

    categories_dict = {}
    for cat_data in categories_data:
        existing = Category.query.filter_by(slug=cat_data["slug"]).first()
        if not existing:
            category = Category(
                name=cat_data["name"], slug=cat_data["slug"], is_active=True
            )
            db.session.add(category)
            db.session.flush()
            categories_dict[cat_data["slug"]] = category
            print(f"Created category: {cat_data['name']}")
        else:
            categories_dict[cat_data["slug"]] = existing

    # Create admin account (if not exists)
    admin_email = app.config["ADMIN_EMAIL"]
    admin = User.query.filter_by(email=admin_email).first()
    if not admin:
        admin = User(
            full_name="Store Admin",
            username="admin",
            email=admin_email,
            role=UserRole.ADMIN,
            status=UserStatus.ACTIVE,
        )
        admin.set_password("admin123")
        db.session.add(admin)
        print(f"Created admin account: {admin_email} / admin123")

    # Create a demo customer with default addresses
    customer_email = "customer@example.com"
    customer = User.query.filter_by(email=customer_email).first()
    if not customer:
        customer = User(
            full_name="Demo Customer",
            username="customer",
            email=customer_email,
            phone="5550100",
            role=UserRole.CUSTOMER,
            status=UserStatus.ACTIVE,
        )
        customer.set_password("customer123")
        db.session.add(customer)
        db.session.flush()
        for address_type in (AddressType.SHIPPING, AddressType.BILLING):
            db.session.add(CustomerAddress(
                customer_id=customer.id,
                address_type=address_type,
                street_address="221B Baker Street",
                city="London",
                state="Greater London",
                postal_code="NW16XE",
                country="United Kingdom",
                is_default=True,
            ))
        print(f"Created customer account: {customer_email} / customer123")

    products_data = [
        {
            "name": "Wireless Bluetooth Headphones",
            "sku": "ELEC-HP-001",
            "description": (
                "High-quality wireless headphones with noise cancellation"
            ),
            "price": "99.99",
            "sale_price": "89.99",
            "stock": 50,
            "category": "electronics",
        },
        {
            "name": "USB-C Cable",
            "sku": "ELEC-CBL-002",
            "description": "Fast charging USB-C cable, 2m length",
            "price": "12.99",
            "stock": 200,
            "category": "electronics",
        },
        {
            "name": "Cotton T-Shirt",
            "sku": "CLO-TS-001",
            "description": "Comfortable 100% cotton t-shirt",
            "price": "24.99",
            "stock": 80,
            "category": "clothing",
        },
        {
            "name": "Python Programming Guide",
            "sku": "BOOK-PY-001",
            "description": "Complete guide to Python programming",
            "price": "39.99",
            "stock": 30,
            "category": "books",
        },
        {
            "name": "Yoga Mat",
            "sku": "SPT-YM-001",
            "description": "Non-slip yoga mat, 6mm thickness",
            "price": "29.99",
            "stock": 0,
            "category": "sports",
        },
    ]

    for product_data in products_data:
        if Product.query.filter_by(sku=product_data["sku"]).first():
            continue
        product = Product(
            name=product_data["name"],
            slug=slugify(product_data["name"]),
            sku=product_data["sku"],
            description=product_data["description"],
            category_id=categories_dict[product_data["category"]].id,
            price=Decimal(product_data["price"]),
            sale_price=(
                Decimal(product_data["sale_price"])
                if product_data.get("sale_price") else None
            ),
            stock_quantity=product_data["stock"],
            stock_status=StockStatus.IN_STOCK,
            status=ProductStatus.ACTIVE,
        )
        product.refresh_stock_status()
        db.session.add(product)
        print(f"Created product: {product_data['name']}")

    db.session.commit()
    print("Initial data created successfully!")
