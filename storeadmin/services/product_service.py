"""Catalog writes: products with their attributes and variants."""
from sqlalchemy import or_
from storeadmin.extensions import db, atomic
from storeadmin.errors import Conflict, InvalidInput, NotFound, \
    ProductNotFound
from storeadmin.models import Category, Product, ProductAttribute, \
    ProductStatus, ProductVariant, ProductVisibility, StockStatus, \
    VariantAttribute
from storeadmin.services.asset_store import discard_assets
from storeadmin.utils import optional_text, parse_bool, parse_decimal, \
    parse_enum, parse_int, require_text, slugify
import logging
import time

logger = logging.getLogger(__name__)

SORT_COLUMNS = {
    'createdAt': Product.created_at,
    'price': Product.price,
    'name': Product.name,
    'stockQuantity': Product.stock_quantity,
}


def filtered_products(args, public=False):
    """Build the product list query from request arguments."""
    query = Product.query
    if public:
        query = query.filter(
            Product.status == ProductStatus.ACTIVE,
            Product.visibility == ProductVisibility.PUBLIC)
    elif args.get('status'):
        query = query.filter(Product.status == parse_enum(
            ProductStatus, args.get('status'), 'status'))

    search = (args.get('search') or '').strip()
    if search:
        query = query.filter(or_(
            Product.name.contains(search, autoescape=True),
            Product.sku.contains(search, autoescape=True),
            Product.brand.contains(search, autoescape=True)))
    if args.get('category'):
        query = query.filter(Product.category_id == parse_int(
            args.get('category'), 'category', minimum=1))
    if args.get('brand'):
        query = query.filter(Product.brand == args.get('brand'))
    if args.get('featured') not in (None, ''):
        query = query.filter(
            Product.featured.is_(parse_bool(args.get('featured'))))
    min_price = parse_decimal(
        args.get('minPrice'), 'minPrice', minimum=0, required=False)
    if min_price is not None:
        query = query.filter(Product.price >= min_price)
    max_price = parse_decimal(
        args.get('maxPrice'), 'maxPrice', minimum=0, required=False)
    if max_price is not None:
        query = query.filter(Product.price <= max_price)

    column = SORT_COLUMNS.get(args.get('sortBy'), Product.created_at)
    if (args.get('sortOrder') or 'desc').lower() == 'asc':
        query = query.order_by(column.asc(), Product.id.asc())
    else:
        query = query.order_by(column.desc(), Product.id.desc())
    return query


def _unique_slug(name, product_id=None):
    base = slugify(name) or 'product'
    query = Product.query.filter_by(slug=base)
    if product_id is not None:
        query = query.filter(Product.id != product_id)
    if query.first() is None:
        return base
    return f'{base}-{int(time.time() * 1000)}'


def _check_sku(sku, product_id=None):
    query = Product.query.filter_by(sku=sku)
    if product_id is not None:
        query = query.filter(Product.id != product_id)
    if query.first() is not None:
        raise Conflict('Product with this SKU already exists')


def _check_prices(price, sale_price):
    if sale_price is not None and sale_price > price:
        raise InvalidInput('Sale price cannot be greater than regular price')


def _build_attributes(raw):
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise InvalidInput('attributes must be an array')
    attributes = []
    for index, entry in enumerate(raw):
        if not isinstance(entry, dict):
            raise InvalidInput('Each attribute must be an object')
        name = require_text(entry, 'name', max_length=100,
                            label='Attribute name')
        values = entry.get('values') or []
        if not isinstance(values, list):
            raise InvalidInput(f'Values of attribute {name} must be an array')
        attribute = ProductAttribute(name=name, display_order=index)
        attribute.set_values(dict.fromkeys(str(value) for value in values))
        attributes.append(attribute)
    return attributes


def _build_variants(raw):
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise InvalidInput('variants must be an array')
    variants = []
    seen = set()
    for entry in raw:
        if not isinstance(entry, dict):
            raise InvalidInput('Each variant must be an object')
        if not parse_bool(entry.get('enabled'), default=True):
            continue
        sku = require_text(entry, 'sku', max_length=100, label='Variant SKU')
        if sku in seen or ProductVariant.query.filter_by(sku=sku).first():
            raise Conflict(f'Variant SKU {sku} already exists')
        seen.add(sku)
        price = parse_decimal(entry.get('price'), 'Variant price', minimum=0)
        sale_price = parse_decimal(
            entry.get('salePrice'), 'Variant salePrice', minimum=0,
            required=False)
        _check_prices(price, sale_price)
        variant = ProductVariant(
            sku=sku,
            price=price,
            sale_price=sale_price,
            stock_quantity=parse_int(
                entry.get('stock', 0), 'Variant stock', minimum=0),
            enabled=True
        )
        for attr in entry.get('attributes') or []:
            if not isinstance(attr, dict):
                raise InvalidInput('Variant attributes must be objects')
            variant.attributes.append(VariantAttribute(
                attribute_name=require_text(attr, 'name', max_length=100),
                attribute_value=require_text(attr, 'value', max_length=255)))
        variants.append(variant)
    return variants


def _category_id(value):
    category_id = parse_int(value, 'categoryId', minimum=1, required=False)
    if category_id is not None and not db.session.get(Category, category_id):
        raise NotFound('Category not found')
    return category_id


def create_product(data):
    name = require_text(data, 'name', max_length=255, label='Product name')
    sku = require_text(data, 'sku', max_length=100, label='SKU')
    price = parse_decimal(data.get('price'), 'price', minimum=0)
    sale_price = parse_decimal(
        data.get('salePrice'), 'salePrice', minimum=0, required=False)
    _check_prices(price, sale_price)
    stock_quantity = parse_int(
        data.get('stockQuantity', 0), 'stockQuantity', minimum=0)
    attributes = _build_attributes(data.get('attributes'))
    variants = _build_variants(data.get('variants'))
    _check_sku(sku)

    product = Product(
        name=name,
        slug=_unique_slug(name),
        sku=sku,
        description=optional_text(data, 'description'),
        short_description=optional_text(
            data, 'shortDescription', max_length=500),
        category_id=_category_id(data.get('categoryId')),
        brand=optional_text(data, 'brand', max_length=100),
        price=price,
        sale_price=sale_price,
        stock_quantity=stock_quantity,
        stock_status=parse_enum(
            StockStatus, data.get('stockStatus'), 'stockStatus',
            required=False) or StockStatus.IN_STOCK,
        weight=parse_decimal(
            data.get('weight'), 'weight', minimum=0, required=False),
        dimensions=optional_text(data, 'dimensions', max_length=100),
        status=parse_enum(
            ProductStatus, data.get('status'), 'status',
            required=False) or ProductStatus.DRAFT,
        featured=parse_bool(data.get('featured')),
        visibility=parse_enum(
            ProductVisibility, data.get('visibility'), 'visibility',
            required=False) or ProductVisibility.PUBLIC,
        meta_title=optional_text(data, 'metaTitle', max_length=255),
        meta_description=optional_text(data, 'metaDescription'),
        has_variants=bool(variants),
        attributes=attributes,
        variants=variants
    )
    product.refresh_stock_status()

    with atomic():
        db.session.add(product)

    logger.info("Product %s created (%s)", product.id, product.sku)
    return product


def update_product(product_id, data):
    with atomic():
        product = Product.query.filter_by(
            id=product_id).with_for_update().first()
        if not product:
            raise ProductNotFound()
        _apply_changes(product, data)
    return product


def _apply_changes(product, data):
    if 'name' in data:
        name = require_text(data, 'name', max_length=255,
                            label='Product name')
        if name != product.name:
            product.name = name
            product.slug = _unique_slug(name, product.id)
    if 'sku' in data:
        sku = require_text(data, 'sku', max_length=100, label='SKU')
        _check_sku(sku, product.id)
        product.sku = sku
    if 'price' in data:
        product.price = parse_decimal(data.get('price'), 'price', minimum=0)
    if 'salePrice' in data:
        product.sale_price = parse_decimal(
            data.get('salePrice'), 'salePrice', minimum=0, required=False)
    _check_prices(product.price, product.sale_price)

    for field, attr, max_length in (
            ('description', 'description', None),
            ('shortDescription', 'short_description', 500),
            ('brand', 'brand', 100),
            ('dimensions', 'dimensions', 100),
            ('metaTitle', 'meta_title', 255),
            ('metaDescription', 'meta_description', None)):
        if field in data:
            setattr(product, attr,
                    optional_text(data, field, max_length=max_length))
    if 'categoryId' in data:
        product.category_id = _category_id(data.get('categoryId'))
    if 'weight' in data:
        product.weight = parse_decimal(
            data.get('weight'), 'weight', minimum=0, required=False)
    if 'status' in data:
        product.status = parse_enum(ProductStatus, data['status'], 'status')
    if 'visibility' in data:
        product.visibility = parse_enum(
            ProductVisibility, data['visibility'], 'visibility')
    if 'featured' in data:
        product.featured = parse_bool(data['featured'])
    if 'stockStatus' in data:
        product.stock_status = parse_enum(
            StockStatus, data['stockStatus'], 'stockStatus')
    if 'stockQuantity' in data:
        product.stock_quantity = parse_int(
            data['stockQuantity'], 'stockQuantity', minimum=0)
        product.refresh_stock_status()
    if 'attributes' in data:
        product.attributes = _build_attributes(data['attributes'])


def delete_product(product_id):
    """Delete a product; its stored images are removed after the commit."""
    with atomic():
        product = Product.query.filter_by(
            id=product_id).with_for_update().first()
        if not product:
            raise ProductNotFound()
        asset_ids = [image.public_id for image in product.images]
        summary = {'id': product.id, 'sku': product.sku, 'name': product.name}
        db.session.delete(product)

    discard_assets(asset_ids)
    logger.info("Product %s deleted with %s images", product_id,
                len(asset_ids))
    return summary
