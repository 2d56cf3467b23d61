"""Customer addresses and the one-default-per-type rule."""
from sqlalchemy import func
from storeadmin.extensions import db, atomic
from storeadmin.errors import CustomerNotFound, InvalidInput, NotFound
from storeadmin.models import AddressType, CustomerAddress, User, UserRole
from storeadmin.utils import optional_text, parse_bool, parse_enum, \
    parse_int, require_text, status_counts
import logging

logger = logging.getLogger(__name__)

# (wire field, model attribute, max length, required)
ADDRESS_TEXT_FIELDS = (
    ('streetAddress', 'street_address', 500, True),
    ('addressLine2', 'address_line2', 255, False),
    ('city', 'city', 100, True),
    ('state', 'state', 100, True),
    ('postalCode', 'postal_code', 20, True),
    ('country', 'country', 100, True),
)


def _lock_customer(customer_id):
    # Every default change for a customer serializes on the customer row.
    customer = User.query.filter_by(id=customer_id).with_for_update().first()
    if not customer or customer.role != UserRole.CUSTOMER:
        raise CustomerNotFound()
    return customer


def _clear_defaults(customer_id, address_type, exclude_id=None):
    query = CustomerAddress.query.filter(
        CustomerAddress.customer_id == customer_id,
        CustomerAddress.address_type == address_type,
        CustomerAddress.is_default.is_(True))
    if exclude_id is not None:
        query = query.filter(CustomerAddress.id != exclude_id)
    query.update(
        {CustomerAddress.is_default: False},
        synchronize_session='fetch')


def _validated_fields(data, partial=False):
    values = {}
    for field, attr, max_length, required in ADDRESS_TEXT_FIELDS:
        if partial and field not in data:
            continue
        if required:
            values[attr] = require_text(data, field, max_length=max_length)
        else:
            values[attr] = optional_text(data, field, max_length=max_length)
    if not partial or 'addressType' in data:
        values['address_type'] = parse_enum(
            AddressType, data.get('addressType'), 'addressType')
    if not partial or 'isDefault' in data:
        values['is_default'] = parse_bool(data.get('isDefault'))
    return values


def create_address(customer_id, data):
    values = _validated_fields(data)

    with atomic():
        _lock_customer(customer_id)
        if values['is_default']:
            _clear_defaults(customer_id, values['address_type'])
        address = CustomerAddress(customer_id=customer_id, **values)
        db.session.add(address)

    logger.info(
        "Address %s created for customer %s (default=%s)",
        address.id, customer_id, address.is_default)
    return address


def update_address(address_id, data):
    values = _validated_fields(data, partial=True)

    existing = db.session.get(CustomerAddress, address_id)
    if not existing:
        raise NotFound('Address not found')
    customer_id = existing.customer_id

    with atomic():
        _lock_customer(customer_id)
        address = CustomerAddress.query.filter_by(
            id=address_id).with_for_update().first()
        if not address:
            raise NotFound('Address not found')
        for attr, value in values.items():
            setattr(address, attr, value)
        # A type change carries the default flag into the new type's group.
        if address.is_default:
            _clear_defaults(customer_id, address.address_type,
                            exclude_id=address.id)

    return address


def set_default(customer_id, address_id, address_type):
    address_id = parse_int(address_id, 'id', minimum=1)
    address_type = parse_enum(AddressType, address_type, 'addressType')

    with atomic():
        _lock_customer(customer_id)
        address = CustomerAddress.query.filter_by(
            id=address_id, customer_id=customer_id).with_for_update().first()
        if not address:
            raise NotFound('Address not found for this customer')
        if address.address_type != address_type:
            raise InvalidInput(
                f'Address is a {address.address_type.value} address, '
                f'not {address_type.value}')
        _clear_defaults(customer_id, address_type, exclude_id=address.id)
        address.is_default = True

    logger.info(
        "Address %s is now the default %s address of customer %s",
        address_id, address_type.value, customer_id)
    return address


def delete_address(address_id):
    with atomic():
        address = CustomerAddress.query.filter_by(
            id=address_id).with_for_update().first()
        if not address:
            raise NotFound('Address not found')
        snapshot = address.to_dict()
        db.session.delete(address)
    return snapshot


def list_customer_addresses(customer_id):
    customer = db.session.get(User, customer_id)
    if not customer or customer.role != UserRole.CUSTOMER:
        raise CustomerNotFound()
    return CustomerAddress.query.filter_by(customer_id=customer_id).order_by(
        CustomerAddress.is_default.desc(),
        CustomerAddress.created_at.desc(),
        CustomerAddress.id.desc()).all()


def address_stats():
    total = CustomerAddress.query.count()
    defaults = CustomerAddress.query.filter_by(is_default=True).count()
    customers = db.session.query(
        func.count(func.distinct(CustomerAddress.customer_id))).scalar()
    return {
        'totalAddresses': total,
        'defaultAddresses': defaults,
        'customersWithAddresses': customers or 0,
        'byType': status_counts(CustomerAddress, CustomerAddress.address_type),
    }
