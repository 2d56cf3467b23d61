from flask import has_request_context, request
from storeadmin.extensions import db
from storeadmin.models import AuditLog
import logging
import json

logger = logging.getLogger(__name__)
major_logger = logging.getLogger('major_events')
if not major_logger.handlers:
    handler = logging.FileHandler('major_events.log', delay=True)
    formatter = logging.Formatter(
        '%(asctime)s - %(levelname)s - %(message)s')
    handler.setFormatter(formatter)
    major_logger.addHandler(handler)
    major_logger.setLevel(logging.INFO)
    major_logger.propagate = False

MAJOR_ACTION_PREFIXES = (
    'LOGIN',
    'LOGOUT',
    'REGISTER',
    'ORDER_',
    'PAYMENT_',
    'REFUND_',
    'KYC_',
)


def _should_log_major(action: str) -> bool:
    if not action:
        return False
    return action.startswith(MAJOR_ACTION_PREFIXES)


def actor_fields(user):
    """Map an authenticated principal to (actor_id, actor_role)."""
    if user is None or not getattr(user, 'is_authenticated', False):
        return None, 'ANONYMOUS'
    return user.id, user.role.value.upper()


def log_audit(
        actor_id=None,
        actor_role='ANONYMOUS',
        action='',
        target_type=None,
        target_id=None,
        payload=None,
        ip=None,
        user_agent=None):
    # Audit rows are written in their own commit after the business
    # transaction; a failure here never undoes the business change.
    path = None
    method = None
    if has_request_context():
        ip = ip or request.remote_addr
        user_agent = user_agent or request.headers.get('User-Agent')
        path = request.path
        method = request.method

    try:
        audit = AuditLog(
            actor_id=actor_id,
            actor_role=actor_role,
            action=action,
            target_type=target_type,
            target_id=target_id,
            ip=ip,
            user_agent=(user_agent or '')[:500] or None
        )

        if payload:
            audit.set_payload(payload)

        db.session.add(audit)
        db.session.commit()
    except Exception as e:
        logger.error(f"Failed to log audit: {e}", exc_info=True)
        db.session.rollback()
        return

    payload_brief = None
    if payload is not None:
        payload_brief = json.dumps(
            payload, ensure_ascii=False, separators=(',', ':'), default=str)
        if len(payload_brief) > 600:
            payload_brief = payload_brief[:600] + '...'

    logger.info(
        "AUDIT action=%s actor_role=%s actor_id=%s target_type=%s "
        "target_id=%s method=%s path=%s payload=%s",
        action,
        actor_role,
        actor_id,
        target_type,
        target_id,
        method,
        path,
        payload_brief,
    )

    if _should_log_major(action):
        major_logger.info(
            "action=%s actor_role=%s actor_id=%s target_type=%s "
            "target_id=%s method=%s path=%s payload=%s",
            action,
            actor_role,
            actor_id,
            target_type,
            target_id,
            method,
            path,
            payload_brief,
        )
