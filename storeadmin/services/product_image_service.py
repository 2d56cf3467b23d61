"""Product image gallery.

Exactly one image of a product with images is flagged primary. Uploads run
before the transaction opens; remote deletes run after it commits.
"""
from sqlalchemy import func
from storeadmin.extensions import db, atomic
from storeadmin.errors import InvalidInput, NotFound, ProductNotFound
from storeadmin.models import Product, ProductImage
from storeadmin.services.asset_store import discard_assets, upload_all, \
    validate_image
from storeadmin.utils import optional_text, parse_int
import logging

logger = logging.getLogger(__name__)

PRODUCT_FOLDER = 'products'


def _lock_product(product_id):
    product = Product.query.filter_by(id=product_id).with_for_update().first()
    if not product:
        raise ProductNotFound()
    return product


def _get_image(product_id, image_id):
    image = ProductImage.query.filter_by(
        id=image_id, product_id=product_id).first()
    if not image:
        raise NotFound('Image not found')
    return image


def _ensure_primary(product_id):
    """Promote the first image by sort order when none is primary."""
    images = ProductImage.query.filter_by(product_id=product_id).order_by(
        ProductImage.sort_order, ProductImage.id).all()
    if images and not any(image.is_primary for image in images):
        images[0].is_primary = True


def list_images(product_id):
    if not db.session.get(Product, product_id):
        raise ProductNotFound()
    return ProductImage.query.filter_by(product_id=product_id).order_by(
        ProductImage.sort_order, ProductImage.id).all()


def add_images(product_id, files, alt_text=None, replace_all=False,
               make_primary=False):
    files = [file for file in files if file and file.filename]
    if not files:
        raise InvalidInput('No images provided')
    for file in files:
        validate_image(file)
    if not db.session.get(Product, product_id):
        raise ProductNotFound()

    uploaded = upload_all(files, PRODUCT_FOLDER)
    replaced = []
    try:
        with atomic():
            _lock_product(product_id)
            if replace_all:
                for image in ProductImage.query.filter_by(
                        product_id=product_id).all():
                    replaced.append(image.public_id)
                    db.session.delete(image)
                db.session.flush()
                next_order = 0
            else:
                next_order = (db.session.query(
                    func.max(ProductImage.sort_order)).filter(
                    ProductImage.product_id == product_id
                ).scalar() or 0) + 1
                if make_primary:
                    ProductImage.query.filter_by(
                        product_id=product_id, is_primary=True).update(
                        {ProductImage.is_primary: False},
                        synchronize_session='fetch')

            has_primary = ProductImage.query.filter_by(
                product_id=product_id, is_primary=True).first() is not None
            created = []
            for offset, asset in enumerate(uploaded):
                image = ProductImage(
                    product_id=product_id,
                    image_url=asset['url'],
                    public_id=asset['id'],
                    alt_text=alt_text,
                    sort_order=next_order + offset,
                    is_primary=(offset == 0 and not has_primary)
                )
                db.session.add(image)
                created.append(image)
    except Exception:
        discard_assets([asset['id'] for asset in uploaded])
        raise

    discard_assets(replaced)
    logger.info(
        "Added %s images to product %s (replaceAll=%s)",
        len(created), product_id, replace_all)
    return created


def delete_image(product_id, image_id):
    with atomic():
        _lock_product(product_id)
        image = _get_image(product_id, image_id)
        asset_id = image.public_id
        db.session.delete(image)
        db.session.flush()
        _ensure_primary(product_id)

    discard_assets([asset_id])
    return image_id


def delete_all_images(product_id):
    with atomic():
        _lock_product(product_id)
        images = ProductImage.query.filter_by(product_id=product_id).all()
        asset_ids = [image.public_id for image in images]
        for image in images:
            db.session.delete(image)

    discard_assets(asset_ids)
    return len(asset_ids)


def set_primary(product_id, image_id):
    with atomic():
        _lock_product(product_id)
        image = _get_image(product_id, image_id)
        ProductImage.query.filter(
            ProductImage.product_id == product_id,
            ProductImage.id != image.id
        ).update({ProductImage.is_primary: False},
                 synchronize_session='fetch')
        image.is_primary = True
    return image


def reorder_images(product_id, image_orders):
    if not isinstance(image_orders, list) or not image_orders:
        raise InvalidInput('imageOrders must be a non-empty array')
    orders = {}
    for entry in image_orders:
        if not isinstance(entry, dict):
            raise InvalidInput('Each image order must be an object')
        orders[parse_int(entry.get('id'), 'id', minimum=1)] = parse_int(
            entry.get('sortOrder'), 'sortOrder', minimum=0)

    with atomic():
        _lock_product(product_id)
        images = ProductImage.query.filter(
            ProductImage.product_id == product_id,
            ProductImage.id.in_(list(orders))).all()
        if len(images) != len(orders):
            raise NotFound('One or more images not found for this product')
        for image in images:
            image.sort_order = orders[image.id]

    return list_images(product_id)


def update_alt_text(product_id, image_id, alt_text):
    alt_text = optional_text({'altText': alt_text}, 'altText', max_length=255)
    with atomic():
        image = _get_image(product_id, image_id)
        image.alt_text = alt_text
    return image
