"""Price information blueprint - quotation-like records numbered with a PRICE- prefix."""
from flask import Blueprint, jsonify
from qms.database import get_session
from qms.middleware import require_auth
from qms.models import QuotationKind
from qms.schemas import dump
from qms.schemas.quotation import QuotationOut
from qms.services.quotation_service import get_quotation, delete_quotation
from qms.blueprints.quotations import list_view, create_view, update_view, pdf_view

price_information_bp = Blueprint('price_information', __name__, url_prefix='/api/price-information')

PRICE_INFORMATION = QuotationKind.PRICE_INFORMATION.value


@price_information_bp.route('', methods=['GET'])
@require_auth
def list_all():
    return list_view(PRICE_INFORMATION)


@price_information_bp.route('', methods=['POST'])
@require_auth
def create():
    return create_view(PRICE_INFORMATION)


@price_information_bp.route('/<int:record_id>', methods=['GET'])
@require_auth
def view(record_id):
    record = get_quotation(get_session(), record_id, kind=PRICE_INFORMATION)
    return jsonify(dump(QuotationOut.model_validate(record)))


@price_information_bp.route('/<int:record_id>', methods=['PUT'])
@require_auth
def update(record_id):
    return update_view(record_id, PRICE_INFORMATION)


@price_information_bp.route('/<int:record_id>', methods=['DELETE'])
@require_auth
def delete(record_id):
    delete_quotation(get_session(), record_id, kind=PRICE_INFORMATION)
    return '', 204


@price_information_bp.route('/<int:record_id>/pdf', methods=['GET'])
@require_auth
def pdf(record_id):
    return pdf_view(record_id, PRICE_INFORMATION)
