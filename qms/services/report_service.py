"""
Reporting service.
Provides dashboard metrics and quotation analytics.
"""
from collections import OrderedDict
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from qms.models import Client, Quotation, QuotationStatus, QuotationKind
from qms.services.quotation_service import list_all_quotations
from qms.utils.money import to_money, ZERO
from qms.utils.formatters import month_label

SENT = QuotationStatus.SENT.value
ACCEPTED = QuotationStatus.ACCEPTED.value
REJECTED = QuotationStatus.REJECTED.value

RECENT_LIMIT = 5
TOP_LIMIT = 10
INACTIVE_AFTER_DAYS = 180
EXPIRING_WITHIN_DAYS = 7


def get_dashboard_data(session: Session) -> dict:
    """
    Dashboard cards and recent activity.

    Returns:
        dict with keys:
            - stats: clients, quotations, totalRevenue, averageQuotation,
                     acceptedQuotations, pendingQuotations
            - recent_quotations: the five newest Quotation objects
    """
    client_count = session.query(func.count(Client.id)).scalar() or 0

    totals = session.query(
        func.count(Quotation.id).label('quotations'),
        func.coalesce(func.sum(Quotation.total), 0).label('revenue')
    ).filter(Quotation.kind == QuotationKind.QUOTATION.value).first()

    status_counts = dict(
        session.query(Quotation.status, func.count(Quotation.id)).filter(
            Quotation.kind == QuotationKind.QUOTATION.value
        ).group_by(Quotation.status).all()
    )

    quotation_count = totals.quotations if totals else 0
    total_revenue = to_money(totals.revenue) if totals and totals.revenue else ZERO
    average = to_money(total_revenue / quotation_count) if quotation_count else ZERO

    recent = session.query(Quotation).options(
        joinedload(Quotation.client)
    ).filter(
        Quotation.kind == QuotationKind.QUOTATION.value
    ).order_by(
        Quotation.created_at.desc(), Quotation.id.desc()
    ).limit(RECENT_LIMIT).all()

    return {
        'stats': {
            'clients': client_count,
            'quotations': quotation_count,
            'total_revenue': total_revenue,
            'average_quotation': average,
            'accepted_quotations': status_counts.get(ACCEPTED, 0),
            'pending_quotations': status_counts.get(SENT, 0),
            'status_counts': {status.value: status_counts.get(status.value, 0) for status in QuotationStatus},
        },
        'recent_quotations': recent,
    }


def _as_datetime(value) -> datetime:
    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    return datetime.combine(value, datetime.min.time())


def _quote_date(quotation: Quotation) -> datetime:
    """Business date of a quotation: its issue date, else its creation time."""
    return _as_datetime(quotation.issued_at or quotation.created_at)


def _rate(numerator: int, denominator: int) -> float:
    return (numerator / denominator) * 100 if denominator else 0.0


def _quarter(month: int) -> str:
    return f"Q{(month - 1) // 3 + 1}"


def calculate_analytics(quotations: Sequence[Quotation], clients: Sequence[Client],
                        now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Aggregate quotation analytics in memory.

    Conversion and acceptance rates are accepted / sent * 100, where "sent"
    counts quotations currently in SENT status.

    Args:
        quotations: quotations with client and items loaded
        clients: every client
        now: reference time (defaults to now)
    """
    now = (now or datetime.now()).replace(tzinfo=None)
    total_quotations = len(quotations)

    by_status = {status.value: 0 for status in QuotationStatus}
    for q in quotations:
        by_status[q.status] = by_status.get(q.status, 0) + 1

    def revenue(status=None):
        return sum((q.total for q in quotations if status is None or q.status == status), ZERO)

    total_revenue = revenue()
    accepted_revenue = revenue(ACCEPTED)
    rejected_revenue = revenue(REJECTED)

    currency_breakdown: Dict[str, Decimal] = {}
    for q in quotations:
        currency_breakdown[q.currency] = currency_breakdown.get(q.currency, ZERO) + q.total

    total_tax = sum((q.tax_amount for q in quotations), ZERO)
    total_discounts = sum((q.discount for q in quotations), ZERO)
    average_tax_rate = (
        sum((q.tax_rate for q in quotations), Decimal(0)) / total_quotations * 100
        if total_quotations else Decimal(0)
    )

    # Clients
    per_client: Dict[int, List[Quotation]] = {c.id: [] for c in clients}
    for q in quotations:
        per_client.setdefault(q.client_id, []).append(q)

    client_stats = []
    inactive_before = now - timedelta(days=INACTIVE_AFTER_DAYS)
    inactive_clients = []
    for client in clients:
        client_quotes = per_client.get(client.id, [])
        sent = sum(1 for q in client_quotes if q.status == SENT)
        accepted = sum(1 for q in client_quotes if q.status == ACCEPTED)
        last_created = max((_quote_date(q) for q in client_quotes), default=None)
        client_stats.append({
            'client': client,
            'total_value': sum((q.total for q in client_quotes), ZERO),
            'quotation_count': len(client_quotes),
            'acceptance_rate': _rate(accepted, sent),
            'last_quotation_at': last_created,
        })
        if last_created is None or last_created < inactive_before:
            inactive_clients.append(client)

    top_clients = sorted(client_stats, key=lambda s: s['total_value'], reverse=True)[:TOP_LIMIT]

    # Items
    item_stats: Dict[str, Dict[str, Any]] = OrderedDict()
    category_stats: Dict[str, Dict[str, Any]] = OrderedDict()
    for q in quotations:
        for item in q.items:
            entry = item_stats.setdefault(item.description, {
                'description': item.description, 'count': 0, 'total_value': ZERO
            })
            entry['count'] += 1
            entry['total_value'] += item.line_total

            category = item.category or 'uncategorized'
            cat = category_stats.setdefault(category, {'count': 0, 'total_value': ZERO})
            cat['count'] += 1
            cat['total_value'] += item.line_total

    most_quoted = sorted(item_stats.values(), key=lambda e: e['count'], reverse=True)[:TOP_LIMIT]
    for entry in most_quoted:
        entry['average_price'] = to_money(entry['total_value'] / entry['count'])
    for cat in category_stats.values():
        cat['average_value'] = to_money(cat['total_value'] / cat['count'])

    # Trends
    monthly: Dict[tuple, Dict[str, Any]] = {}
    yearly: Dict[int, Dict[str, Any]] = {}
    seasonal = {'Q1': 0, 'Q2': 0, 'Q3': 0, 'Q4': 0}
    for q in quotations:
        created = _quote_date(q)
        month = monthly.setdefault((created.year, created.month), {
            'month': month_label(created), 'quotations': 0, 'revenue': ZERO, 'accepted': 0, 'rejected': 0
        })
        month['quotations'] += 1
        month['revenue'] += q.total
        if q.status == ACCEPTED:
            month['accepted'] += 1
        if q.status == REJECTED:
            month['rejected'] += 1

        year = yearly.setdefault(created.year, {'year': str(created.year), 'quotations': 0, 'revenue': ZERO})
        year['quotations'] += 1
        year['revenue'] += q.total

        seasonal[_quarter(created.month)] += 1

    monthly_trends = [monthly[key] for key in sorted(monthly)]
    yearly_trends = []
    previous = None
    for key in sorted(yearly):
        year = yearly[key]
        if previous is not None and previous['revenue'] > 0:
            year['growth'] = float((year['revenue'] - previous['revenue']) / previous['revenue'] * 100)
        else:
            year['growth'] = 0.0
        yearly_trends.append(year)
        previous = year

    # Pipeline
    pending = [q for q in quotations if q.status == SENT]
    today = now.date()
    expiring_soon = [
        q for q in quotations
        if q.is_open and q.valid_until
        and today < q.valid_until <= today + timedelta(days=EXPIRING_WITHIN_DAYS)
    ]

    return {
        'total_quotations': total_quotations,
        'quotations_by_status': by_status,
        'conversion_rate': _rate(by_status[ACCEPTED], by_status[SENT]),
        'total_revenue': total_revenue,
        'accepted_revenue': accepted_revenue,
        'rejected_revenue': rejected_revenue,
        'average_quotation_value': to_money(total_revenue / total_quotations) if total_quotations else ZERO,
        'currency_breakdown': currency_breakdown,
        'tax_summary': {
            'total_tax': total_tax,
            'average_tax_rate': float(average_tax_rate),
        },
        'discount_summary': {
            'total_discounts': total_discounts,
            'average_discount': to_money(total_discounts / total_quotations) if total_quotations else ZERO,
        },
        'total_clients': len(clients),
        'quotations_per_client': {cid: len(qs) for cid, qs in per_client.items() if qs},
        'top_clients': top_clients,
        'inactive_clients': inactive_clients,
        'most_quoted_items': most_quoted,
        'category_breakdown': dict(category_stats),
        'monthly_trends': monthly_trends,
        'yearly_trends': yearly_trends,
        'seasonal_demand': seasonal,
        'pending_quotations': pending,
        'expiring_soon': expiring_soon,
        'expected_revenue': accepted_revenue,
        'pipeline_value': sum((q.total for q in pending), ZERO),
    }


def get_analytics(session: Session, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Analytics over every stored quotation (price information excluded)."""
    quotations = list_all_quotations(session, kind=QuotationKind.QUOTATION.value)
    clients = session.query(Client).order_by(Client.name).all()
    return calculate_analytics(quotations, clients, now)
