from flask import jsonify
from sqlalchemy.exc import OperationalError, TimeoutError as PoolTimeoutError
from werkzeug.exceptions import HTTPException
from storeadmin.extensions import db
import logging

logger = logging.getLogger(__name__)


class ServiceError(Exception):
    status_code = 400
    default_message = 'Request could not be processed'

    def __init__(self, message=None, status_code=None, extra=None):
        self.message = message or self.default_message
        super().__init__(self.message)
        if status_code is not None:
            self.status_code = status_code
        self.extra = extra or {}

    def to_dict(self):
        body = {'success': False, 'message': self.message}
        body.update(self.extra)
        return body


class InvalidInput(ServiceError):
    default_message = 'Validation failed'


class NotFound(ServiceError):
    status_code = 404
    default_message = 'Resource not found'


class ProductNotFound(NotFound):
    default_message = 'Product not found'


class CustomerNotFound(NotFound):
    default_message = 'Customer not found'


class OrderNotFound(NotFound):
    default_message = 'Order not found'


class TransactionNotFound(NotFound):
    default_message = 'Transaction not found'


class Conflict(ServiceError):
    default_message = 'Resource already exists'


class DuplicateApplication(Conflict):
    default_message = 'User already has a pending or approved KYC application'


class OutOfStock(ServiceError):
    default_message = 'Product is out of stock'


class InsufficientStock(ServiceError):
    default_message = 'Insufficient stock'


class RefundExceedsOriginal(ServiceError):
    default_message = 'Refund amount cannot exceed original transaction amount'


class Unauthorized(ServiceError):
    status_code = 401
    default_message = 'Invalid credentials'


class Forbidden(ServiceError):
    status_code = 403
    default_message = 'Insufficient permissions'


class Internal(ServiceError):
    status_code = 500
    default_message = 'Internal server error'


def register_error_handlers(app):

    @app.errorhandler(ServiceError)
    def handle_service_error(error):
        if error.status_code >= 500:
            logger.error("Service failure: %s", error.message)
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        return jsonify({
            'success': False,
            'message': error.description or error.name,
        }), error.code

    @app.errorhandler(OperationalError)
    @app.errorhandler(PoolTimeoutError)
    def handle_database_error(error):
        logger.error("Database failure: %s", error, exc_info=True)
        db.session.rollback()
        return jsonify({
            'success': False,
            'message': 'Database operation failed or timed out',
        }), 500

    @app.errorhandler(Exception)
    def handle_unexpected_error(error):
        logger.exception("Unhandled error: %s", error)
        db.session.rollback()
        return jsonify({
            'success': False,
            'message': 'Internal server error',
        }), 500
