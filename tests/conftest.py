import io
import pytest
from decimal import Decimal
from storeadmin import create_app
from storeadmin.config import TestConfig
from storeadmin.extensions import db
from storeadmin.models import Product, ProductStatus, StockStatus, User, \
    UserRole, UserStatus

PASSWORD = 'secret123'


class FakeAssetStore:
    """In-memory stand-in for the remote image store."""

    def __init__(self, fail_on_upload=None):
        # 1-based index of the upload that raises, or None
        self.fail_on_upload = fail_on_upload
        self.uploaded = []
        self.deleted = []
        self.calls = 0

    def upload(self, file, folder):
        self.calls += 1
        if self.fail_on_upload is not None and \
                self.calls >= self.fail_on_upload:
            raise RuntimeError('remote store unavailable')
        asset_id = f'{folder}/asset-{self.calls}'
        self.uploaded.append(asset_id)
        return {'url': f'https://cdn.example.com/{asset_id}', 'id': asset_id}

    def delete(self, asset_id):
        self.deleted.append(asset_id)


@pytest.fixture
def asset_store():
    return FakeAssetStore()


@pytest.fixture
def app(asset_store):
    app = create_app(TestConfig)
    app.extensions['asset_store'] = asset_store
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


def make_user(app, email, role=UserRole.CUSTOMER, status=UserStatus.ACTIVE,
              full_name='Test User'):
    with app.app_context():
        user = User(
            full_name=full_name,
            email=email,
            role=role,
            status=status
        )
        user.set_password(PASSWORD)
        db.session.add(user)
        db.session.commit()
        return user.id


def make_product(app, name='Desk Lamp', sku=None, price='100.00',
                 sale_price=None, stock=5, status=ProductStatus.ACTIVE):
    with app.app_context():
        product = Product(
            name=name,
            slug=(sku or name).lower().replace(' ', '-'),
            sku=sku or name.upper().replace(' ', '-'),
            price=Decimal(price),
            sale_price=Decimal(sale_price) if sale_price else None,
            stock_quantity=stock,
            stock_status=StockStatus.IN_STOCK,
            status=status
        )
        product.refresh_stock_status()
        db.session.add(product)
        db.session.commit()
        return product.id


def login(client, email, role='customer'):
    response = client.post(f'/api/v1/auth/{role}/login', json={
        'email': email,
        'password': PASSWORD,
    })
    assert response.status_code == 200, response.get_json()
    return client


def image_file(name='photo.jpg'):
    return (io.BytesIO(b'\xff\xd8\xff fake image bytes'), name)


@pytest.fixture
def admin_id(app):
    return make_user(app, 'admin@example.com', role=UserRole.ADMIN,
                     full_name='Admin User')


@pytest.fixture
def customer_id(app):
    return make_user(app, 'jane@example.com', full_name='Jane Doe')


@pytest.fixture
def other_customer_id(app):
    return make_user(app, 'john@example.com', full_name='John Roe')


@pytest.fixture
def admin_client(app, admin_id):
    return login(app.test_client(), 'admin@example.com', role='admin')


@pytest.fixture
def customer_client(app, customer_id):
    return login(app.test_client(), 'jane@example.com')


@pytest.fixture
def other_customer_client(app, other_customer_id):
    return login(app.test_client(), 'john@example.com')


@pytest.fixture
def product_id(app):
    return make_product(app)
