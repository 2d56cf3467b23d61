from flask import Blueprint, request
from flask_login import login_required, current_user
from sqlalchemy import or_
from storeadmin.extensions import db, atomic
from storeadmin.errors import Forbidden, InvalidInput, NotFound
from storeadmin.models import SupportTicket, TicketPriority, TicketStatus, \
    User, UserRole
from storeadmin.middleware import role_required
from storeadmin.services.audit_service import actor_fields, log_audit
from storeadmin.utils import api_response, generate_reference, \
    get_json_body, get_page_args, optional_text, paginate_query, parse_enum, \
    parse_int, require_text, status_counts
import logging

logger = logging.getLogger(__name__)

bp = Blueprint('support', __name__)


def _get_ticket(ticket_id):
    ticket = db.session.get(SupportTicket, ticket_id)
    if not ticket:
        raise NotFound('Support ticket not found')
    return ticket


@bp.route('/api/v1/support/tickets', methods=['GET'])
@login_required
def list_tickets():
    page, limit = get_page_args()
    query = SupportTicket.query.join(
        User, User.id == SupportTicket.customer_id)
    if not current_user.is_admin:
        query = query.filter(SupportTicket.customer_id == current_user.id)

    if request.args.get('status'):
        query = query.filter(SupportTicket.status == parse_enum(
            TicketStatus, request.args.get('status'), 'status'))
    if request.args.get('priority'):
        query = query.filter(SupportTicket.priority == parse_enum(
            TicketPriority, request.args.get('priority'), 'priority'))
    search = (request.args.get('search') or '').strip()
    if search:
        query = query.filter(or_(
            SupportTicket.ticket_number.contains(search, autoescape=True),
            SupportTicket.subject.contains(search, autoescape=True),
            User.full_name.contains(search, autoescape=True)))

    tickets, pagination = paginate_query(
        query.order_by(SupportTicket.created_at.desc(),
                       SupportTicket.id.desc()), page, limit)
    return api_response(
        data=[ticket.to_dict() for ticket in tickets],
        pagination=pagination)


@bp.route('/api/v1/support/tickets/stats', methods=['GET'])
@login_required
@role_required('admin')
def ticket_stats():
    counts = status_counts(SupportTicket, SupportTicket.status)
    return api_response(data={
        'totalTickets': sum(counts.values()),
        'byStatus': counts,
        'byPriority': status_counts(SupportTicket, SupportTicket.priority),
    })


@bp.route('/api/v1/support/tickets/<int:ticket_id>', methods=['GET'])
@login_required
def get_ticket(ticket_id):
    ticket = _get_ticket(ticket_id)
    if not current_user.is_admin and ticket.customer_id != current_user.id:
        raise Forbidden('No permission to access this resource')
    return api_response(data=ticket.to_dict())


@bp.route('/api/v1/support/tickets', methods=['POST'])
@login_required
def create_ticket():
    data = get_json_body()
    subject = require_text(data, 'subject', max_length=255, label='Subject')
    description = require_text(data, 'description', label='Description')
    priority = parse_enum(TicketPriority, data.get('priority'), 'priority',
                          required=False) or TicketPriority.MEDIUM

    customer_id = current_user.id
    if current_user.is_admin:
        customer_id = parse_int(data.get('customerId'), 'customerId',
                                minimum=1)
        customer = db.session.get(User, customer_id)
        if not customer or customer.role != UserRole.CUSTOMER:
            raise NotFound('Customer not found')

    with atomic():
        ticket = SupportTicket(
            ticket_number=generate_reference('TKT'),
            customer_id=customer_id,
            subject=subject,
            description=description,
            status=TicketStatus.OPEN,
            priority=priority
        )
        db.session.add(ticket)

    actor_id, actor_role = actor_fields(current_user)
    log_audit(
        actor_id=actor_id,
        actor_role=actor_role,
        action='TICKET_CREATE',
        target_type='SUPPORT_TICKET',
        target_id=ticket.id,
        payload={'ticketNumber': ticket.ticket_number}
    )
    return api_response(data=ticket.to_dict(),
                        message='Support ticket created successfully',
                        status=201)


@bp.route('/api/v1/support/tickets/<int:ticket_id>', methods=['PUT'])
@login_required
@role_required('admin')
def update_ticket(ticket_id):
    data = get_json_body()
    ticket = _get_ticket(ticket_id)

    if 'status' in data:
        ticket.status = parse_enum(TicketStatus, data['status'], 'status')
    if 'priority' in data:
        ticket.priority = parse_enum(
            TicketPriority, data['priority'], 'priority')
    if 'assignedTo' in data:
        assignee_id = parse_int(data['assignedTo'], 'assignedTo', minimum=1,
                                required=False)
        if assignee_id is not None:
            assignee = db.session.get(User, assignee_id)
            if not assignee or not assignee.is_admin:
                raise InvalidInput('Tickets can only be assigned to admins')
        ticket.assigned_to = assignee_id
    if 'adminResponse' in data:
        ticket.admin_response = optional_text(data, 'adminResponse')
    if 'satisfactionRating' in data:
        ticket.satisfaction_rating = parse_int(
            data['satisfactionRating'], 'satisfactionRating', minimum=1,
            maximum=5, required=False)
    db.session.commit()

    actor_id, actor_role = actor_fields(current_user)
    log_audit(
        actor_id=actor_id,
        actor_role=actor_role,
        action='TICKET_UPDATE',
        target_type='SUPPORT_TICKET',
        target_id=ticket.id,
        payload={'fields': sorted(data)}
    )
    return api_response(data=ticket.to_dict(),
                        message='Support ticket updated successfully')
