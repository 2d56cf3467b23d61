from flask import Blueprint, request
from flask_login import login_required
from sqlalchemy import func
from storeadmin.extensions import db
from storeadmin.errors import InvalidInput
from storeadmin.models import Order, OrderItem, OrderStatus, Product, \
    ProductStatus, Review, ReviewStatus, SupportTicket, TicketStatus, User, \
    UserRole, money
from storeadmin.middleware import role_required
from storeadmin.utils import api_response, status_counts
from datetime import datetime, timedelta
import logging

logger = logging.getLogger(__name__)

bp = Blueprint('dashboard', __name__)

ANALYTICS_PERIODS = {
    '7d': 7,
    '30d': 30,
    '90d': 90,
    '1y': 365,
}


def _top_products(limit=5):
    rows = db.session.query(
        OrderItem.product_id,
        OrderItem.product_name,
        func.sum(OrderItem.quantity).label('units'),
        func.sum(OrderItem.total).label('revenue')
    ).join(Order, Order.id == OrderItem.order_id).filter(
        Order.status != OrderStatus.CANCELLED
    ).group_by(OrderItem.product_id, OrderItem.product_name).order_by(
        func.sum(OrderItem.quantity).desc()).limit(limit).all()
    return [
        {
            'productId': product_id,
            'name': name,
            'unitsSold': int(units or 0),
            'revenue': money(revenue or 0),
        }
        for product_id, name, units, revenue in rows
    ]


@bp.route('/api/v1/dashboard/stats', methods=['GET'])
@login_required
@role_required('admin')
def dashboard_stats():
    revenue = db.session.query(
        func.coalesce(func.sum(Order.total_amount), 0)
    ).filter(Order.status == OrderStatus.DELIVERED).scalar()
    recent_orders = Order.query.order_by(
        Order.order_date.desc(), Order.id.desc()).limit(5).all()

    return api_response(data={
        'totalCustomers': User.query.filter_by(
            role=UserRole.CUSTOMER).count(),
        'totalProducts': Product.query.count(),
        'activeProducts': Product.query.filter_by(
            status=ProductStatus.ACTIVE).count(),
        'lowStockProducts': Product.query.filter(
            Product.stock_quantity <= 5).count(),
        'totalOrders': Order.query.count(),
        'pendingOrders': Order.query.filter_by(
            status=OrderStatus.PENDING).count(),
        'totalRevenue': money(revenue or 0),
        'pendingReviews': Review.query.filter_by(
            status=ReviewStatus.PENDING).count(),
        'openTickets': SupportTicket.query.filter_by(
            status=TicketStatus.OPEN).count(),
        'orderStatusDistribution': status_counts(Order, Order.status),
        'recentOrders': [
            order.to_dict(with_items=False) for order in recent_orders],
        'topProducts': _top_products(),
    })


@bp.route('/api/v1/dashboard/analytics', methods=['GET'])
@login_required
@role_required('admin')
def sales_analytics():
    period = request.args.get('period', '30d')
    if period not in ANALYTICS_PERIODS:
        raise InvalidInput(
            f"Invalid period. Allowed values: {', '.join(ANALYTICS_PERIODS)}")
    since = datetime.utcnow() - timedelta(days=ANALYTICS_PERIODS[period])

    orders = Order.query.filter(
        Order.order_date >= since,
        Order.status != OrderStatus.CANCELLED).all()

    daily = {}
    for order in orders:
        day = order.order_date.date().isoformat()
        bucket = daily.setdefault(day, {'orders': 0, 'revenue': 0})
        bucket['orders'] += 1
        bucket['revenue'] += order.total_amount

    series = [
        {'date': day, 'orders': bucket['orders'],
         'revenue': money(bucket['revenue'])}
        for day, bucket in sorted(daily.items())
    ]
    total_revenue = sum((order.total_amount for order in orders), 0)
    return api_response(data={
        'period': period,
        'totalOrders': len(orders),
        'totalRevenue': money(total_revenue),
        'averageOrderValue': money(
            total_revenue / len(orders) if orders else 0),
        'dailySales': series,
    })
