"""Storage for uploaded images.

The store is reached through ``current_app.extensions['asset_store']`` so a
deployment (or a test) can swap in another backend exposing the same
``upload(file, folder) -> {'url', 'id'}`` and ``delete(id)`` calls.
"""
from flask import current_app
from werkzeug.utils import secure_filename
from storeadmin.errors import Internal, InvalidInput, ServiceError
import logging
import os
import uuid

logger = logging.getLogger(__name__)


class LocalAssetStore:
    """Saves files below ``root`` and serves them from ``base_url``."""

    def __init__(self, root, base_url, allowed_extensions):
        self.root = os.path.abspath(root)
        self.base_url = base_url.rstrip('/')
        self.allowed_extensions = tuple(allowed_extensions)

    def _extension(self, file):
        filename = secure_filename(file.filename or '')
        ext = (filename.rsplit('.', 1)[-1] if '.' in filename else '').lower()
        if ext not in self.allowed_extensions:
            allowed = '/'.join(self.allowed_extensions)
            raise InvalidInput(f'Unsupported image type ({allowed} only)')
        return ext

    def _path_for(self, asset_id):
        path = os.path.abspath(os.path.join(self.root, asset_id))
        if not path.startswith(self.root + os.sep):
            raise InvalidInput('Invalid asset identifier')
        return path

    def upload(self, file, folder):
        ext = self._extension(file)
        folder = secure_filename(folder) or 'misc'
        abs_dir = os.path.join(self.root, folder)
        os.makedirs(abs_dir, exist_ok=True)

        asset_id = f"{folder}/{uuid.uuid4().hex}.{ext}"
        file.save(self._path_for(asset_id))
        logger.info("Stored asset %s", asset_id)
        return {'url': f'{self.base_url}/{asset_id}', 'id': asset_id}

    def delete(self, asset_id):
        path = self._path_for(asset_id)
        if os.path.isfile(path):
            os.remove(path)
            logger.info("Deleted asset %s", asset_id)


def init_asset_store(app):
    app.extensions['asset_store'] = LocalAssetStore(
        app.config['UPLOAD_FOLDER'],
        app.config['ASSET_BASE_URL'],
        app.config['ALLOWED_IMAGE_EXTENSIONS'],
    )


def get_asset_store():
    return current_app.extensions['asset_store']


def validate_image(file):
    """Reject a file before anything is stored or any transaction opens."""
    allowed = current_app.config['ALLOWED_IMAGE_EXTENSIONS']
    filename = secure_filename(file.filename or '')
    ext = (filename.rsplit('.', 1)[-1] if '.' in filename else '').lower()
    if ext not in allowed:
        raise InvalidInput(
            f"Unsupported image type ({'/'.join(allowed)} only)")


def upload_all(files, folder):
    """Upload ``files`` in order; on any failure remove what was stored."""
    store = get_asset_store()
    uploaded = []
    try:
        for file in files:
            uploaded.append(store.upload(file, folder))
    except ServiceError:
        discard_assets([asset['id'] for asset in uploaded])
        raise
    except Exception as e:
        logger.error(
            "Image upload to %s failed: %s", folder, e, exc_info=True)
        discard_assets([asset['id'] for asset in uploaded])
        raise Internal('Failed to upload images') from e
    return uploaded


def discard_assets(asset_ids):
    """Best-effort removal; failures are logged for manual cleanup."""
    store = get_asset_store()
    for asset_id in asset_ids:
        if not asset_id:
            continue
        try:
            store.delete(asset_id)
        except Exception as e:
            logger.warning(
                "Orphaned asset %s could not be deleted: %s", asset_id, e)
