"""Quotations blueprint - quotation CRUD, status changes and document exports."""
from flask import Blueprint, request, jsonify, send_file, g, Response
from qms.database import get_session
from qms.middleware import require_auth, get_pagination, get_int_arg
from qms.models import QuotationKind
from qms.schemas import parse_body, dump, page_envelope
from qms.schemas.quotation import QuotationIn, QuotationUpdateIn, StatusIn, QuotationOut
from qms.services.quotation_service import (
    list_quotations, get_quotation, create_quotation, update_quotation,
    change_status, delete_quotation, list_all_quotations
)
from qms.services.settings_service import get_settings
from qms.services.export_service import render_quotation_pdf, render_invoice_pdf, quotations_to_csv

quotations_bp = Blueprint('quotations', __name__, url_prefix='/api/quotations')

QUOTATION = QuotationKind.QUOTATION.value


def _out(quotation):
    return dump(QuotationOut.model_validate(quotation))


# Shared by the price information blueprint

def list_view(kind):
    page, page_size = get_pagination()
    quotations, total = list_quotations(
        get_session(), page, page_size,
        q=request.args.get('q'),
        status=request.args.get('status'),
        kind=kind,
        client_id=get_int_arg('clientId')
    )
    return jsonify(page_envelope([_out(q) for q in quotations], total, page, page_size))


def create_view(kind):
    body = parse_body(QuotationIn)
    quotation = create_quotation(get_session(), body.model_dump(), user=g.user, kind=kind)
    return jsonify(_out(quotation)), 201


def update_view(quotation_id, kind):
    body = parse_body(QuotationUpdateIn)
    quotation = update_quotation(get_session(), quotation_id, body.model_dump(exclude_unset=True), kind=kind)
    return jsonify(_out(quotation))


def pdf_view(quotation_id, kind):
    session = get_session()
    quotation = get_quotation(session, quotation_id, kind=kind)
    pdf_buffer = render_quotation_pdf(quotation, get_settings(session))
    return send_file(
        pdf_buffer,
        mimetype='application/pdf',
        as_attachment=True,
        download_name=f"{quotation.number}.pdf"
    )


@quotations_bp.route('', methods=['GET'])
@require_auth
def list_all():
    """List quotations (filters: q, status, clientId; paginated)."""
    return list_view(QUOTATION)


@quotations_bp.route('', methods=['POST'])
@require_auth
def create():
    return create_view(QUOTATION)


@quotations_bp.route('/export.csv', methods=['GET'])
@require_auth
def export_csv():
    """Every quotation as CSV."""
    quotations = list_all_quotations(get_session(), kind=QUOTATION)
    return Response(
        quotations_to_csv(quotations),
        mimetype='text/csv',
        headers={'Content-Disposition': 'attachment; filename=quotations.csv'}
    )


@quotations_bp.route('/<int:quotation_id>', methods=['GET'])
@require_auth
def view(quotation_id):
    return jsonify(_out(get_quotation(get_session(), quotation_id, kind=QUOTATION)))


@quotations_bp.route('/<int:quotation_id>', methods=['PUT'])
@require_auth
def update(quotation_id):
    """Update a quotation; a supplied item list replaces the existing one."""
    return update_view(quotation_id, QUOTATION)


@quotations_bp.route('/<int:quotation_id>', methods=['DELETE'])
@require_auth
def delete(quotation_id):
    delete_quotation(get_session(), quotation_id, kind=QUOTATION)
    return '', 204


@quotations_bp.route('/<int:quotation_id>/status', methods=['POST'])
@require_auth
def set_status(quotation_id):
    """Move a quotation to another status (409 if the transition is not allowed)."""
    body = parse_body(StatusIn)
    quotation = change_status(get_session(), quotation_id, body.status, kind=QUOTATION)
    return jsonify(_out(quotation))


@quotations_bp.route('/<int:quotation_id>/pdf', methods=['GET'])
@require_auth
def pdf(quotation_id):
    return pdf_view(quotation_id, QUOTATION)


@quotations_bp.route('/<int:quotation_id>/invoice.pdf', methods=['GET'])
@require_auth
def invoice_pdf(quotation_id):
    """Invoice rendered from the quotation."""
    session = get_session()
    quotation = get_quotation(session, quotation_id, kind=QUOTATION)
    pdf_buffer = render_invoice_pdf(quotation, get_settings(session))
    return send_file(
        pdf_buffer,
        mimetype='application/pdf',
        as_attachment=True,
        download_name=f"invoice_{quotation.number}.pdf"
    )
