"""Export formatters: quotation/invoice PDFs, CSV listings and the XLSX report workbook."""
import csv
from datetime import datetime
from io import BytesIO, StringIO
from typing import Any, Dict, List, Optional, Sequence

from reportlab.lib.pagesizes import A4
from reportlab.lib import colors
from reportlab.lib.units import inch
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.enums import TA_CENTER
from xml.sax.saxutils import escape

from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill, Alignment
from openpyxl.utils import get_column_letter

from qms.models import Client, Quotation, QuotationStatus
from qms.services.report_service import calculate_analytics
from qms.services.settings_service import (
    ORG_NAME, ORG_ADDRESS, ORG_PHONE, ORG_EMAIL, ORG_WEBSITE, ORG_PREPARED_BY, BANK_ACCOUNT_PREFIX
)
from qms.utils.formatters import format_date, format_long_date, format_percentage, format_number
from qms.utils.money import format_money, tax_rate_to_percent

CSV_HEADER = [
    'Number', 'Client', 'Status', 'Currency', 'Subtotal', 'Tax Rate (%)',
    'Tax', 'Discount', 'Total', 'Valid Until', 'Created'
]

HEADER_FILL = PatternFill(start_color="3498DB", end_color="3498DB", fill_type="solid")
HEADER_FONT = Font(color="FFFFFF", bold=True)
TITLE_FONT = Font(bold=True, size=14)
SECTION_FONT = Font(bold=True, size=11)


# ============================================================================
# CSV
# ============================================================================

def quotations_to_csv(quotations: Sequence[Quotation]) -> str:
    """One row per quotation, amounts as plain 2-decimal numbers."""
    buffer = StringIO()
    writer = csv.writer(buffer)
    writer.writerow(CSV_HEADER)
    for q in quotations:
        writer.writerow([
            q.number,
            q.client_name or '',
            q.status,
            q.currency,
            f"{q.subtotal:.2f}",
            format_number(tax_rate_to_percent(q.tax_rate)),
            f"{q.tax_amount:.2f}",
            f"{q.discount:.2f}",
            f"{q.total:.2f}",
            q.valid_until.isoformat() if q.valid_until else '',
            q.created_at.date().isoformat() if q.created_at else '',
        ])
    return buffer.getvalue()


# ============================================================================
# PDF
# ============================================================================

def _styles():
    styles = getSampleStyleSheet()
    return {
        'title': ParagraphStyle(
            'DocTitle',
            parent=styles['Heading1'],
            fontSize=24,
            textColor=colors.HexColor('#2C3E50'),
            spaceAfter=12,
            alignment=TA_CENTER,
            fontName='Helvetica-Bold'
        ),
        'header': ParagraphStyle(
            'DocHeader',
            parent=styles['Normal'],
            fontSize=10,
            textColor=colors.HexColor('#7F8C8D'),
            alignment=TA_CENTER,
            spaceAfter=6
        ),
        'cell': ParagraphStyle('Cell', parent=styles['Normal'], fontSize=9, leading=11),
        'footer': ParagraphStyle(
            'Footer',
            parent=styles['Normal'],
            fontSize=9,
            textColor=colors.HexColor('#95A5A6'),
            alignment=TA_CENTER
        ),
    }


def _business_header(elements: list, settings: Dict[str, str], styles: dict) -> None:
    if settings.get(ORG_NAME):
        elements.append(Paragraph(f"<b>{escape(settings[ORG_NAME])}</b>", styles['header']))
    if settings.get(ORG_ADDRESS):
        elements.append(Paragraph(escape(settings[ORG_ADDRESS]), styles['header']))

    contact_parts = []
    if settings.get(ORG_PHONE):
        contact_parts.append(f"Tel: {escape(settings[ORG_PHONE])}")
    if settings.get(ORG_EMAIL):
        contact_parts.append(f"Email: {escape(settings[ORG_EMAIL])}")
    if settings.get(ORG_WEBSITE):
        contact_parts.append(escape(settings[ORG_WEBSITE]))
    if contact_parts:
        elements.append(Paragraph(" | ".join(contact_parts), styles['header']))


def _items_table(quotation: Quotation, styles: dict) -> Table:
    currency = quotation.currency
    table_data = [['#', 'Description', 'Qty', 'Unit Price', 'Total']]
    for index, item in enumerate(quotation.items, start=1):
        text = f"<b>{escape(item.description)}</b>"
        if item.item_description:
            text += f"<br/>{escape(item.item_description)}"
        table_data.append([
            str(index),
            Paragraph(text, styles['cell']),
            str(item.quantity),
            format_money(item.unit_price, currency),
            format_money(item.line_total, currency),
        ])

    table = Table(table_data, colWidths=[0.4*inch, 3.3*inch, 0.6*inch, 1.2*inch, 1.2*inch], repeatRows=1)
    table.setStyle(TableStyle([
        ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor('#3498DB')),
        ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
        ('ALIGN', (0, 0), (-1, 0), 'CENTER'),
        ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
        ('BOTTOMPADDING', (0, 0), (-1, 0), 12),
        ('VALIGN', (0, 1), (-1, -1), 'TOP'),
        ('ALIGN', (0, 1), (0, -1), 'CENTER'),
        ('ALIGN', (2, 1), (2, -1), 'CENTER'),
        ('ALIGN', (3, 1), (4, -1), 'RIGHT'),
        ('GRID', (0, 0), (-1, -1), 0.5, colors.HexColor('#BDC3C7')),
        ('ROWBACKGROUNDS', (0, 1), (-1, -1), [colors.white, colors.HexColor('#ECF0F1')]),
    ]))
    return table


def _totals_table(quotation: Quotation) -> Table:
    currency = quotation.currency
    rows = [
        ['Subtotal:', format_money(quotation.subtotal, currency)],
        [f"Tax ({format_number(tax_rate_to_percent(quotation.tax_rate))}%):", format_money(quotation.tax_amount, currency)],
    ]
    if quotation.discount:
        rows.append(['Discount:', f"- {format_money(quotation.discount, currency)}"])
    rows.append(['TOTAL:', format_money(quotation.total, currency)])

    table = Table(rows, colWidths=[5.3*inch, 1.4*inch])
    table.setStyle(TableStyle([
        ('ALIGN', (0, 0), (-1, -1), 'RIGHT'),
        ('FONTNAME', (0, 0), (-1, -2), 'Helvetica'),
        ('FONTNAME', (0, -1), (-1, -1), 'Helvetica-Bold'),
        ('FONTSIZE', (0, -1), (-1, -1), 13),
        ('TEXTCOLOR', (0, -1), (-1, -1), colors.HexColor('#27AE60')),
        ('BACKGROUND', (0, -1), (-1, -1), colors.HexColor('#E8F8F5')),
        ('BOX', (0, -1), (-1, -1), 1.5, colors.HexColor('#27AE60')),
    ]))
    return table


def _render_document(quotation: Quotation, settings: Dict[str, str], title: str,
                     number_label: str, footer_lines: List[str]) -> BytesIO:
    """
    Internal PDF rendering engine.
    Shared by quotation, price information and invoice documents.
    """
    buffer = BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        rightMargin=0.75*inch,
        leftMargin=0.75*inch,
        topMargin=0.75*inch,
        bottomMargin=0.75*inch,
        title=f"{title} {quotation.number}"
    )

    styles = _styles()
    elements = [Paragraph(title, styles['title'])]
    _business_header(elements, settings, styles)
    elements.append(Spacer(1, 0.3*inch))

    # Document metadata
    info_data = [
        [number_label, quotation.number],
        ['Date:', format_date(quotation.issued_at)],
    ]
    if quotation.valid_until:
        info_data.append(['Valid Until:', format_date(quotation.valid_until)])
    info_data.append(['Status:', quotation.status.title()])

    client = quotation.client
    if client:
        info_data.append(['Client:', client.display_name])
        if client.email:
            info_data.append(['Email:', client.email])
        if client.phone:
            info_data.append(['Phone:', client.phone])
        if client.address:
            info_data.append(['Address:', client.address])

    if settings.get(ORG_PREPARED_BY):
        info_data.append(['Prepared By:', settings[ORG_PREPARED_BY]])

    info_table = Table(info_data, colWidths=[1.6*inch, 4.6*inch])
    info_table.setStyle(TableStyle([
        ('ALIGN', (0, 0), (0, -1), 'RIGHT'),
        ('ALIGN', (1, 0), (1, -1), 'LEFT'),
        ('FONTNAME', (0, 0), (0, -1), 'Helvetica-Bold'),
        ('FONTSIZE', (0, 0), (-1, -1), 10),
        ('TEXTCOLOR', (0, 0), (-1, -1), colors.HexColor('#34495E')),
    ]))
    elements.append(info_table)
    elements.append(Spacer(1, 0.3*inch))

    elements.append(_items_table(quotation, styles))
    elements.append(Spacer(1, 0.2*inch))
    elements.append(_totals_table(quotation))
    elements.append(Spacer(1, 0.4*inch))

    footer_text = "<br/>".join(footer_lines)
    bank_account = settings.get(f"{BANK_ACCOUNT_PREFIX}{quotation.currency}")
    if bank_account:
        footer_text += f"<br/><br/><b>Bank account ({quotation.currency}):</b> {escape(bank_account)}"
    if quotation.notes:
        footer_text += f"<br/><br/><b>Notes:</b> {escape(quotation.notes)}"
    elements.append(Paragraph(footer_text, styles['footer']))

    doc.build(elements)
    buffer.seek(0)
    return buffer


def render_quotation_pdf(quotation: Quotation, settings: Dict[str, str]) -> BytesIO:
    """PDF for a quotation or price information record."""
    is_price_info = quotation.kind == 'PRICE_INFORMATION'
    title = "PRICE INFORMATION" if is_price_info else "QUOTATION"
    footer = [
        "<b>IMPORTANT:</b>",
        "Prices are subject to change without prior notice.",
    ]
    if quotation.valid_until:
        footer.append(f"This {title.lower()} is valid until {format_date(quotation.valid_until)}.")
    footer.append("<i>This document is not an invoice.</i>")
    return _render_document(quotation, settings, title, f"{title.title()} #:", footer)


def render_invoice_pdf(quotation: Quotation, settings: Dict[str, str]) -> BytesIO:
    """Invoice rendered from a quotation; the quotation number doubles as the invoice number."""
    footer = [
        "<b>TERMS AND CONDITIONS</b>",
        "1. Customer will be billed after indicating acceptance of this invoice.",
        "2. Payment will be due prior to delivery of service and goods.",
        "Please reference our invoice number in your correspondence.",
    ]
    return _render_document(quotation, settings, "INVOICE", "Invoice #:", footer)


# ============================================================================
# XLSX
# ============================================================================

def _write_rows(ws, rows: List[List[Any]], header_row: Optional[int] = None) -> None:
    for row in rows:
        ws.append(row)
    ws['A1'].font = TITLE_FONT
    if header_row:
        for cell in ws[header_row]:
            cell.fill = HEADER_FILL
            cell.font = HEADER_FONT
            cell.alignment = Alignment(horizontal='center')


def _autosize(ws, max_width: int = 50) -> None:
    widths: Dict[int, int] = {}
    for row in ws.iter_rows():
        for cell in row:
            if cell.value is not None:
                widths[cell.column] = max(widths.get(cell.column, 0), len(str(cell.value)))
    for column, width in widths.items():
        ws.column_dimensions[get_column_letter(column)].width = min(max_width, width + 2)


def _status_label(status: str) -> str:
    return status.title()


def build_report_workbook(quotations: Sequence[Quotation], clients: Sequence[Client],
                          settings: Dict[str, str], now: Optional[datetime] = None) -> bytes:
    """
    Build the XLSX report.

    Sheets: Summary, Quotations by Status, Monthly Trends, Top Clients,
    Quotations, Clients.

    Returns:
        Excel file as bytes
    """
    now = now or datetime.now()
    analytics = calculate_analytics(quotations, clients, now)
    currency = settings.get('org.currency', 'USD')
    by_status = analytics['quotations_by_status']
    totals = [q.total for q in quotations]

    wb = Workbook()

    # 1. Summary
    ws = wb.active
    ws.title = 'Summary'
    summary = [
        ['QUOTATION MANAGEMENT SYSTEM - EXECUTIVE SUMMARY'],
        [],
        ['Report Generated:', format_long_date(now)],
        ['Company:', settings.get(ORG_NAME) or 'N/A'],
        ['Company Address:', settings.get(ORG_ADDRESS) or 'N/A'],
        ['Company Email:', settings.get(ORG_EMAIL) or 'N/A'],
        ['Company Phone:', settings.get(ORG_PHONE) or 'N/A'],
        [],
        ['PERFORMANCE OVERVIEW'],
        ['Total Quotations', analytics['total_quotations']],
        ['Active Quotations', by_status['SENT'] + by_status['ACCEPTED']],
        ['Draft Quotations', by_status['DRAFT']],
        ['Accepted Quotations', by_status['ACCEPTED']],
        ['Rejected Quotations', by_status['REJECTED']],
        ['Expired Quotations', by_status['EXPIRED']],
        [],
        ['FINANCIAL PERFORMANCE'],
        ['Total Revenue', format_money(analytics['total_revenue'], currency)],
        ['Accepted Revenue', format_money(analytics['accepted_revenue'], currency)],
        ['Rejected Revenue', format_money(analytics['rejected_revenue'], currency)],
        ['Conversion Rate', format_percentage(analytics['conversion_rate'])],
        ['Average Quotation Value', format_money(analytics['average_quotation_value'], currency)],
        ['Highest Quotation Value', format_money(max(totals), currency) if totals else '-'],
        ['Lowest Quotation Value', format_money(min(totals), currency) if totals else '-'],
        [],
        ['TAX & DISCOUNT ANALYSIS'],
        ['Total Tax Collected', format_money(analytics['tax_summary']['total_tax'], currency)],
        ['Average Tax Rate', format_percentage(analytics['tax_summary']['average_tax_rate'])],
        ['Total Discounts Given', format_money(analytics['discount_summary']['total_discounts'], currency)],
        ['Average Discount per Quotation', format_money(analytics['discount_summary']['average_discount'], currency)],
        [],
        ['CURRENCY BREAKDOWN'],
    ]
    for code, amount in sorted(analytics['currency_breakdown'].items()):
        summary.append([f'{code} Revenue', format_money(amount, code)])
    _write_rows(ws, summary)
    for row in ws.iter_rows(min_col=1, max_col=1):
        cell = row[0]
        if isinstance(cell.value, str) and cell.value.isupper() and cell.row > 1:
            cell.font = SECTION_FONT
    _autosize(ws)

    # 2. Quotations by Status
    ws = wb.create_sheet('Quotations by Status')
    rows = [
        ['QUOTATION STATUS ANALYSIS'],
        [],
        ['Status', 'Count', 'Percentage', 'Revenue', 'Avg Value'],
    ]
    total_count = analytics['total_quotations']
    for status in QuotationStatus:
        count = by_status[status.value]
        status_revenue = sum((q.total for q in quotations if q.status == status.value), 0)
        rows.append([
            _status_label(status.value),
            count,
            format_percentage(count / total_count * 100 if total_count else 0),
            format_money(status_revenue, currency),
            format_money(status_revenue / count if count else 0, currency),
        ])
    rows.append([])
    rows.append([
        'TOTAL', total_count, format_percentage(100 if total_count else 0),
        format_money(analytics['total_revenue'], currency),
        format_money(analytics['average_quotation_value'], currency),
    ])
    _write_rows(ws, rows, header_row=3)
    _autosize(ws)

    # 3. Monthly Trends
    ws = wb.create_sheet('Monthly Trends')
    rows = [
        ['MONTHLY PERFORMANCE TRENDS'],
        [],
        ['Month', 'Revenue', 'Quotations', 'Accepted', 'Rejected', 'Conversion Rate', 'Avg Value', 'Growth Rate'],
    ]
    previous = None
    for trend in analytics['monthly_trends']:
        conversion = trend['accepted'] / trend['quotations'] * 100 if trend['quotations'] else 0
        average = trend['revenue'] / trend['quotations'] if trend['quotations'] else 0
        growth = 0.0
        if previous is not None and previous['revenue'] > 0:
            growth = float((trend['revenue'] - previous['revenue']) / previous['revenue'] * 100)
        rows.append([
            trend['month'],
            format_money(trend['revenue'], currency),
            trend['quotations'],
            trend['accepted'],
            trend['rejected'],
            format_percentage(conversion),
            format_money(average, currency),
            f"+{growth:.1f}%" if growth > 0 else f"{growth:.1f}%",
        ])
        previous = trend
    _write_rows(ws, rows, header_row=3)
    _autosize(ws)

    # 4. Top Clients
    ws = wb.create_sheet('Top Clients')
    rows = [
        ['TOP CLIENTS PERFORMANCE ANALYSIS'],
        [],
        ['Rank', 'Client Name', 'Company', 'Total Value', 'Quotations', 'Acceptance Rate',
         'Avg Value', 'Last Quotation', 'Email', 'Phone'],
    ]
    for rank, entry in enumerate(analytics['top_clients'], start=1):
        client = entry['client']
        count = entry['quotation_count']
        rows.append([
            rank,
            client.name,
            client.company or 'Individual',
            format_money(entry['total_value'], currency),
            count,
            format_percentage(entry['acceptance_rate']),
            format_money(entry['total_value'] / count if count else 0, currency),
            format_long_date(entry['last_quotation_at']) if entry['last_quotation_at'] else 'N/A',
            client.email or '',
            client.phone or '',
        ])
    _write_rows(ws, rows, header_row=3)
    _autosize(ws)

    # 5. Quotations
    ws = wb.create_sheet('Quotations')
    rows = [['ALL QUOTATIONS'], [], CSV_HEADER]
    for q in quotations:
        rows.append([
            q.number,
            q.client_name or '',
            _status_label(q.status),
            q.currency,
            float(q.subtotal),
            float(tax_rate_to_percent(q.tax_rate)),
            float(q.tax_amount),
            float(q.discount),
            float(q.total),
            format_date(q.valid_until),
            format_date(q.created_at),
        ])
    _write_rows(ws, rows, header_row=3)
    _autosize(ws)

    # 6. Clients
    ws = wb.create_sheet('Clients')
    rows = [['CLIENT DIRECTORY'], [], ['Name', 'Company', 'Email', 'Phone', 'Address', 'Quotations', 'Created']]
    per_client = analytics['quotations_per_client']
    for client in clients:
        rows.append([
            client.name,
            client.company or 'Individual',
            client.email or '',
            client.phone or '',
            client.address or '',
            per_client.get(client.id, 0),
            format_date(client.created_at),
        ])
    _write_rows(ws, rows, header_row=3)
    _autosize(ws)

    output = BytesIO()
    wb.save(output)
    return output.getvalue()
