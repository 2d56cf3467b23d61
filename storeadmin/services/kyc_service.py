"""KYC applications.

A user may hold at most one application that is pending or accepted.
Document images are uploaded before the database transaction opens and are
discarded again if the insert does not commit.
"""
from datetime import datetime
from storeadmin.extensions import db, atomic
from storeadmin.errors import Conflict, DuplicateApplication, \
    InvalidInput, NotFound
from storeadmin.models import KycApplication, KycDocumentType, KycStatus, \
    User, UserStatus
from storeadmin.services.asset_store import discard_assets, upload_all, \
    validate_image
from storeadmin.utils import generate_reference, optional_text, parse_enum, \
    require_text, status_counts
import logging

logger = logging.getLogger(__name__)

ACTIVE_STATUSES = (KycStatus.PENDING, KycStatus.ACCEPTED)
IMAGE_SLOTS = ('front', 'back', 'selfie')
KYC_FOLDER = 'kyc-documents'


def _has_active_application(user_id):
    return db.session.query(KycApplication.id).filter(
        KycApplication.user_id == user_id,
        KycApplication.status.in_(ACTIVE_STATUSES)
    ).first() is not None


def _validate_submission(data, images):
    document_type = parse_enum(
        KycDocumentType, data.get('docType'), 'docType')
    document_number = require_text(
        data, 'docNumber', min_length=5, max_length=100,
        label='Document number')
    if not images.get('front'):
        raise InvalidInput('Front image is required')
    for slot in IMAGE_SLOTS:
        if images.get(slot):
            validate_image(images[slot])
    return document_type, document_number


def create_application(user_id, data, images, created_by=None):
    """File a new application for ``user_id``.

    ``images`` maps ``front``/``back``/``selfie`` to uploaded files; only
    ``front`` is mandatory.
    """
    document_type, document_number = _validate_submission(data, images)
    admin_notes = optional_text(data, 'adminNotes', max_length=500)

    if _has_active_application(user_id):
        raise DuplicateApplication()

    slots = [slot for slot in IMAGE_SLOTS if images.get(slot)]
    uploaded = upload_all([images[slot] for slot in slots], KYC_FOLDER)
    urls = {slot: asset['url'] for slot, asset in zip(slots, uploaded)}

    try:
        with atomic():
            user = User.query.filter_by(id=user_id).with_for_update().first()
            if not user:
                raise NotFound('User not found')
            # Re-checked under the user lock; the first check only avoids
            # a pointless upload.
            if _has_active_application(user_id):
                raise DuplicateApplication()

            application = KycApplication(
                application_id=generate_reference('KYC'),
                user_id=user_id,
                document_type=document_type,
                document_number=document_number,
                front_image_url=urls.get('front'),
                back_image_url=urls.get('back'),
                selfie_image_url=urls.get('selfie'),
                status=KycStatus.PENDING,
                admin_notes=admin_notes,
                created_by=created_by
            )
            db.session.add(application)
    except Exception:
        discard_assets([asset['id'] for asset in uploaded])
        raise

    logger.info(
        "KYC application %s filed for user %s",
        application.application_id, user_id)
    return application


def create_for_email(email, data, images, admin_id):
    """Admin path: file an application on behalf of an existing user."""
    if not isinstance(email, str) or not email.strip():
        raise InvalidInput('User email is required')
    user = User.query.filter_by(email=email.strip().lower()).first()
    if not user:
        raise NotFound('User not found with this email')
    if user.status != UserStatus.ACTIVE:
        raise InvalidInput('User account is not active')
    return create_application(user.id, data, images, created_by=admin_id)


def update_status(application_id, status, rejection_reason=None,
                  reviewer_id=None):
    new_status = parse_enum(KycStatus, status, 'status')
    if new_status == KycStatus.PENDING:
        raise InvalidInput('Status must be accepted or rejected')
    reason = optional_text(
        {'rejectionReason': rejection_reason}, 'rejectionReason')
    if new_status == KycStatus.REJECTED and not reason:
        raise InvalidInput('Rejection reason is required')

    with atomic():
        application = KycApplication.query.filter_by(
            id=application_id).with_for_update().first()
        if not application:
            raise NotFound('KYC application not found')
        if application.status != KycStatus.PENDING:
            raise Conflict(
                f'Application is already {application.status.value}')

        application.status = new_status
        application.rejection_reason = (
            reason if new_status == KycStatus.REJECTED else None)
        application.reviewed_by = reviewer_id
        application.reviewed_date = datetime.utcnow()

    logger.info(
        "KYC application %s %s by %s",
        application.application_id, new_status.value, reviewer_id)
    return application


def latest_for_user(user_id):
    application = KycApplication.query.filter_by(user_id=user_id).order_by(
        KycApplication.submitted_date.desc(),
        KycApplication.id.desc()).first()
    if not application:
        raise NotFound('No KYC application found')
    return application


def kyc_stats():
    counts = status_counts(KycApplication, KycApplication.status)
    return {
        'total': sum(counts.values()),
        'pending': counts.get(KycStatus.PENDING.value, 0),
        'accepted': counts.get(KycStatus.ACCEPTED.value, 0),
        'rejected': counts.get(KycStatus.REJECTED.value, 0),
        'byDocumentType': status_counts(
            KycApplication, KycApplication.document_type),
    }
