from flask import Blueprint, request
from flask_login import login_required, current_user
from sqlalchemy import or_
from storeadmin.extensions import db
from storeadmin.errors import NotFound
from storeadmin.models import KycApplication, KycDocumentType, KycStatus, \
    User
from storeadmin.middleware import role_required, owner_or_admin_required
from storeadmin.services import kyc_service
from storeadmin.services.audit_service import actor_fields, log_audit
from storeadmin.utils import api_response, get_json_body, get_page_args, \
    get_request_data, paginate_query, parse_date, parse_enum
from datetime import timedelta
import logging

logger = logging.getLogger(__name__)

bp = Blueprint('kyc', __name__)


def _uploaded_images():
    return {
        'front': request.files.get('frontImage'),
        'back': request.files.get('backImage'),
        'selfie': request.files.get('selfieImage'),
    }


def _audit(action, application, payload=None):
    actor_id, actor_role = actor_fields(current_user)
    log_audit(
        actor_id=actor_id,
        actor_role=actor_role,
        action=action,
        target_type='KYC_APPLICATION',
        target_id=application.id,
        payload=payload
    )


@bp.route('/api/v1/kyc/submit', methods=['POST'])
@login_required
@role_required('customer')
def submit_application():
    application = kyc_service.create_application(
        current_user.id, get_request_data(), _uploaded_images())
    _audit('KYC_SUBMIT', application, {
        'applicationId': application.application_id,
        'documentType': application.document_type.value,
    })
    return api_response(data=application.to_dict(),
                        message='KYC application submitted successfully',
                        status=201)


@bp.route('/api/v1/kyc/admin/create-for-user', methods=['POST'])
@login_required
@role_required('admin')
def create_for_user():
    data = get_request_data()
    application = kyc_service.create_for_email(
        data.get('userEmail'), data, _uploaded_images(), current_user.id)
    _audit('KYC_ADMIN_CREATE', application, {
        'applicationId': application.application_id,
        'userId': application.user_id,
    })
    return api_response(data=application.to_dict(),
                        message='KYC application created successfully',
                        status=201)


@bp.route('/api/v1/kyc/status/<int:customer_id>', methods=['GET'])
@login_required
@owner_or_admin_required('customer_id')
def application_status(customer_id):
    application = kyc_service.latest_for_user(customer_id)
    return api_response(data=application.to_dict())


@bp.route('/api/v1/kyc', methods=['GET'])
@login_required
@role_required('admin')
def list_applications():
    page, limit = get_page_args()
    query = KycApplication.query.join(
        User, User.id == KycApplication.user_id)

    if request.args.get('status'):
        query = query.filter(KycApplication.status == parse_enum(
            KycStatus, request.args.get('status'), 'status'))
    if request.args.get('docType'):
        query = query.filter(KycApplication.document_type == parse_enum(
            KycDocumentType, request.args.get('docType'), 'docType'))
    start = parse_date(request.args.get('startDate'), 'startDate')
    if start:
        query = query.filter(KycApplication.submitted_date >= start)
    end = parse_date(request.args.get('endDate'), 'endDate')
    if end:
        query = query.filter(
            KycApplication.submitted_date < end + timedelta(days=1))
    search = (request.args.get('search') or '').strip()
    if search:
        query = query.filter(or_(
            KycApplication.application_id.contains(search, autoescape=True),
            KycApplication.document_number.contains(search, autoescape=True),
            User.full_name.contains(search, autoescape=True),
            User.email.contains(search, autoescape=True)))

    applications, pagination = paginate_query(
        query.order_by(KycApplication.submitted_date.desc(),
                       KycApplication.id.desc()), page, limit)
    return api_response(
        data=[application.to_dict() for application in applications],
        pagination=pagination)


@bp.route('/api/v1/kyc/stats', methods=['GET'])
@login_required
@role_required('admin')
def application_stats():
    return api_response(data=kyc_service.kyc_stats())


@bp.route('/api/v1/kyc/<int:application_id>', methods=['GET'])
@login_required
@role_required('admin')
def get_application(application_id):
    application = db.session.get(KycApplication, application_id)
    if not application:
        raise NotFound('KYC application not found')
    return api_response(data=application.to_dict())


@bp.route('/api/v1/kyc/<int:application_id>/status', methods=['PUT'])
@login_required
@role_required('admin')
def update_application_status(application_id):
    data = get_json_body()
    application = kyc_service.update_status(
        application_id,
        data.get('status'),
        rejection_reason=data.get('rejectionReason'),
        reviewer_id=current_user.id
    )
    _audit('KYC_STATUS_UPDATE', application, {
        'status': application.status.value,
        'rejectionReason': application.rejection_reason,
    })
    return api_response(data=application.to_dict(),
                        message='KYC status updated successfully')
