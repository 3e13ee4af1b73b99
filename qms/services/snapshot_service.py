"""
Snapshot interchange with the browser-side store.

The offline client persists its data under the `qms-storage` key as
{"state": {"clients": [...], "quotations": [...], "companySettings": {...}}, "version": 0}.
Snapshot tax rates are percentages (18) and statuses are lower-case.
"""
import logging
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from qms.models import Client, Quotation, QuotationKind, QuotationStatus
from qms.exceptions import ValidationError
from qms.services.quotation_service import build_items, list_all_quotations
from qms.services.settings_service import (
    get_settings, stage_settings, ORG_NAME, ORG_ADDRESS, ORG_PHONE, ORG_EMAIL,
    ORG_WEBSITE, ORG_LOGO_URL, ORG_CURRENCY, ORG_PREPARED_BY, TAX_RATE, BANK_ACCOUNT_PREFIX
)
from qms.services.totals_service import compute_totals
from qms.utils.money import (
    SUPPORTED_CURRENCIES, normalize_currency, tax_rate_from_percent, tax_rate_to_percent, to_decimal
)

logger = logging.getLogger(__name__)

STORAGE_KEY = 'qms-storage'
SNAPSHOT_VERSION = 0

# companySettings field -> setting key
COMPANY_SETTING_KEYS = {
    'name': ORG_NAME,
    'address': ORG_ADDRESS,
    'phone': ORG_PHONE,
    'email': ORG_EMAIL,
    'website': ORG_WEBSITE,
    'logo': ORG_LOGO_URL,
    'currency': ORG_CURRENCY,
    'preparedBy': ORG_PREPARED_BY,
}


def _parse_date(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace('Z', '+00:00')).date()
    except ValueError:
        return None


def _parse_datetime(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace('Z', '+00:00'))
    except ValueError:
        return None


def _status_from_snapshot(value: Optional[str]) -> str:
    status = (value or 'draft').upper()
    if status not in {s.value for s in QuotationStatus}:
        raise ValidationError(f"Unknown quotation status '{value}'")
    return status


def _settings_from_snapshot(company: Dict[str, Any]) -> Dict[str, str]:
    values = {}
    for field, key in COMPANY_SETTING_KEYS.items():
        if company.get(field) is not None:
            values[key] = str(company[field])
    if company.get('taxRate') is not None:
        values[TAX_RATE] = str(tax_rate_from_percent(company['taxRate']))
    for currency, account in (company.get('currencyAccounts') or {}).items():
        if account:
            values[f'{BANK_ACCOUNT_PREFIX}{currency.upper()}'] = str(account)
    return values


def import_snapshot(session: Session, snapshot: Dict[str, Any]) -> Dict[str, int]:
    """
    Load a `qms-storage` snapshot into the database.

    Everything is written in one transaction: a snapshot that fails
    validation leaves settings, clients and quotations untouched.
    Clients are always created (snapshot ids are not kept). Quotations keep
    their number; those whose number already exists are skipped. Totals are
    recomputed from the items.

    Returns:
        counts of clients, quotations and skipped quotations imported
    """
    state = snapshot.get('state') if isinstance(snapshot, dict) else None
    if not isinstance(state, dict):
        raise ValidationError(f'Not a {STORAGE_KEY} snapshot: missing "state"')

    existing_numbers = {number for (number,) in session.query(Quotation.number).all()}
    client_ids: Dict[str, Client] = {}
    counts = {'clients': 0, 'quotations': 0, 'skipped': 0}

    try:
        company = state.get('companySettings') or {}
        if company:
            stage_settings(session, _settings_from_snapshot(company))

        for data in state.get('clients') or []:
            if not (data.get('name') or '').strip():
                raise ValidationError(f"Snapshot client {data.get('id')} has no name")
            client = Client(
                name=data['name'].strip(),
                email=data.get('email') or None,
                phone=data.get('phone') or None,
                address=data.get('address') or None,
                company=data.get('company') or None,
            )
            created_at = _parse_datetime(data.get('createdAt'))
            if created_at:
                client.created_at = created_at
            session.add(client)
            client_ids[str(data.get('id'))] = client
            counts['clients'] += 1

        for data in state.get('quotations') or []:
            number = data.get('quotationNumber')
            if not number or number in existing_numbers:
                counts['skipped'] += 1
                continue

            client = client_ids.get(str(data.get('clientId')))
            if client is None:
                client = Client(name=data.get('clientName') or 'Unknown client')
                session.add(client)
                client_ids[str(data.get('clientId'))] = client
                counts['clients'] += 1

            currency = data.get('currency') or 'USD'
            tax_rate = tax_rate_from_percent(data.get('taxRate') or 0)
            items = build_items([
                {
                    'description': item.get('description') or '',
                    'quantity': item.get('quantity') or 1,
                    'unit_price': item.get('unitPrice') or 0,
                    'category': item.get('category'),
                    'item_description': item.get('itemDescription'),
                }
                for item in data.get('items') or []
            ])
            totals = compute_totals(items, tax_rate, data.get('discount') or 0)

            quotation = Quotation(
                number=number,
                kind=QuotationKind.QUOTATION.value,
                client=client,
                status=_status_from_snapshot(data.get('status')),
                currency=normalize_currency(currency),
                tax_rate=tax_rate,
                subtotal=totals.subtotal,
                tax_amount=totals.tax_amount,
                discount=totals.discount,
                total=totals.total,
                valid_until=_parse_date(data.get('validUntil')),
                notes=data.get('notes') or None,
            )
            quotation.items = items
            created_at = _parse_datetime(data.get('createdAt'))
            if created_at:
                quotation.created_at = created_at
                quotation.issued_at = created_at
            session.add(quotation)
            existing_numbers.add(number)
            counts['quotations'] += 1

        session.commit()
    except ValueError as e:
        session.rollback()
        raise ValidationError(str(e))
    except Exception:
        session.rollback()
        raise

    logger.info(
        f"Imported snapshot: {counts['clients']} client(s), {counts['quotations']} quotation(s), "
        f"{counts['skipped']} skipped"
    )
    return counts


def _iso(value) -> Optional[str]:
    return value.isoformat() if value else None


def export_snapshot(session: Session) -> Dict[str, Any]:
    """Dump clients, quotations and company settings in the `qms-storage` shape."""
    settings = get_settings(session)
    clients = session.query(Client).order_by(Client.id).all()
    quotations = list_all_quotations(session, kind=QuotationKind.QUOTATION.value)

    client_rows: List[Dict[str, Any]] = [
        {
            'id': str(c.id),
            'name': c.name,
            'email': c.email or '',
            'phone': c.phone or '',
            'address': c.address or '',
            'company': c.company,
            'createdAt': _iso(c.created_at),
        }
        for c in clients
    ]

    quotation_rows = []
    for q in quotations:
        quotation_rows.append({
            'id': str(q.id),
            'quotationNumber': q.number,
            'clientId': str(q.client_id),
            'clientName': q.client_name,
            'status': q.status.lower(),
            'currency': q.currency,
            'items': [
                {
                    'id': str(item.id),
                    'description': item.description,
                    'quantity': item.quantity,
                    'unitPrice': float(item.unit_price),
                    'total': float(item.line_total),
                    'category': item.category,
                    'itemDescription': item.item_description,
                }
                for item in q.items
            ],
            'subtotal': float(q.subtotal),
            'taxRate': float(tax_rate_to_percent(q.tax_rate)),
            'taxAmount': float(q.tax_amount),
            'discount': float(q.discount),
            'total': float(q.total),
            'validUntil': _iso(q.valid_until),
            'createdAt': _iso(q.created_at),
            'updatedAt': _iso(q.updated_at),
            'notes': q.notes,
        })

    company = {field: settings.get(key, '') for field, key in COMPANY_SETTING_KEYS.items()}
    company['taxRate'] = float(tax_rate_to_percent(to_decimal(settings.get(TAX_RATE) or 0)))
    company['currencyAccounts'] = {
        code: settings[f'{BANK_ACCOUNT_PREFIX}{code}']
        for code in SUPPORTED_CURRENCIES
        if settings.get(f'{BANK_ACCOUNT_PREFIX}{code}')
    }

    return {
        'state': {
            'clients': client_rows,
            'quotations': quotation_rows,
            'companySettings': company,
        },
        'version': SNAPSHOT_VERSION,
    }
