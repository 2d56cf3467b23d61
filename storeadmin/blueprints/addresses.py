from flask import Blueprint, request
from flask_login import login_required, current_user
from sqlalchemy import or_
from storeadmin.extensions import db
from storeadmin.errors import Forbidden, NotFound
from storeadmin.models import AddressType, CustomerAddress, User
from storeadmin.middleware import role_required, owner_or_admin_required
from storeadmin.services import address_service
from storeadmin.services.audit_service import actor_fields, log_audit
from storeadmin.utils import api_response, get_json_body, get_page_args, \
    paginate_query, parse_enum
import logging

logger = logging.getLogger(__name__)

bp = Blueprint('addresses', __name__)


def _audit(action, address_id, payload=None):
    actor_id, actor_role = actor_fields(current_user)
    log_audit(
        actor_id=actor_id,
        actor_role=actor_role,
        action=action,
        target_type='CUSTOMER_ADDRESS',
        target_id=address_id,
        payload=payload
    )


def _get_owned_address(address_id):
    address = db.session.get(CustomerAddress, address_id)
    if not address:
        raise NotFound('Address not found')
    if not current_user.is_admin and address.customer_id != current_user.id:
        raise Forbidden('No permission to access this resource')
    return address


@bp.route('/api/v1/addresses', methods=['GET'])
@login_required
@role_required('admin')
def list_addresses():
    page, limit = get_page_args()
    query = CustomerAddress.query.join(
        User, User.id == CustomerAddress.customer_id)

    if request.args.get('addressType'):
        query = query.filter(CustomerAddress.address_type == parse_enum(
            AddressType, request.args.get('addressType'), 'addressType'))
    search = (request.args.get('search') or '').strip()
    if search:
        query = query.filter(or_(
            User.full_name.contains(search, autoescape=True),
            User.email.contains(search, autoescape=True),
            CustomerAddress.city.contains(search, autoescape=True),
            CustomerAddress.street_address.contains(search, autoescape=True),
            CustomerAddress.postal_code.contains(search, autoescape=True)))

    addresses, pagination = paginate_query(
        query.order_by(CustomerAddress.created_at.desc(),
                       CustomerAddress.id.desc()), page, limit)
    return api_response(
        data=[address.to_dict() for address in addresses],
        pagination=pagination)


@bp.route('/api/v1/addresses/stats', methods=['GET'])
@login_required
@role_required('admin')
def address_stats():
    return api_response(data=address_service.address_stats())


@bp.route('/api/v1/addresses/customer/<int:customer_id>', methods=['GET'])
@login_required
@owner_or_admin_required('customer_id')
def list_customer_addresses(customer_id):
    addresses = address_service.list_customer_addresses(customer_id)
    return api_response(data=[address.to_dict() for address in addresses])


@bp.route('/api/v1/addresses/customer/<int:customer_id>', methods=['POST'])
@login_required
@owner_or_admin_required('customer_id')
def create_address(customer_id):
    address = address_service.create_address(customer_id, get_json_body())
    _audit('ADDRESS_CREATE', address.id,
           {'customerId': customer_id, 'isDefault': address.is_default})
    return api_response(data=address.to_dict(),
                        message='Address created successfully', status=201)


@bp.route('/api/v1/addresses/customer/<int:customer_id>/set-default',
          methods=['PATCH'])
@login_required
@owner_or_admin_required('customer_id')
def set_default_address(customer_id):
    data = get_json_body()
    address = address_service.set_default(
        customer_id, data.get('id'), data.get('addressType'))
    _audit('ADDRESS_SET_DEFAULT', address.id,
           {'customerId': customer_id,
            'addressType': address.address_type.value})
    return api_response(data=address.to_dict(),
                        message='Default address updated successfully')


@bp.route('/api/v1/addresses/<int:address_id>', methods=['GET'])
@login_required
def get_address(address_id):
    return api_response(data=_get_owned_address(address_id).to_dict())


@bp.route('/api/v1/addresses/<int:address_id>', methods=['PUT'])
@login_required
def update_address(address_id):
    _get_owned_address(address_id)
    data = get_json_body()
    address = address_service.update_address(address_id, data)
    _audit('ADDRESS_UPDATE', address.id, {'fields': sorted(data)})
    return api_response(data=address.to_dict(),
                        message='Address updated successfully')


@bp.route('/api/v1/addresses/<int:address_id>', methods=['DELETE'])
@login_required
def delete_address(address_id):
    _get_owned_address(address_id)
    snapshot = address_service.delete_address(address_id)
    _audit('ADDRESS_DELETE', address_id, snapshot)
    return api_response(message='Address deleted successfully')
