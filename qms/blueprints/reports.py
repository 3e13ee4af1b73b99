"""Reports blueprint - dashboard, analytics and the XLSX report."""
from datetime import datetime

from flask import Blueprint, jsonify, send_file
from io import BytesIO
from qms.database import get_session
from qms.middleware import require_auth
from qms.models import Client, QuotationKind
from qms.schemas import dump
from qms.schemas.report import DashboardOut, AnalyticsOut
from qms.services.report_service import get_dashboard_data, get_analytics
from qms.services.quotation_service import list_all_quotations
from qms.services.settings_service import get_settings
from qms.services.export_service import build_report_workbook

reports_bp = Blueprint('reports', __name__, url_prefix='/api/reports')


@reports_bp.route('/dashboard', methods=['GET'])
@require_auth
def dashboard():
    """Headline counts plus the five newest quotations."""
    return jsonify(dump(DashboardOut.model_validate(get_dashboard_data(get_session()))))


@reports_bp.route('/analytics', methods=['GET'])
@require_auth
def analytics():
    return jsonify(dump(AnalyticsOut.model_validate(get_analytics(get_session()))))


@reports_bp.route('/export.xlsx', methods=['GET'])
@require_auth
def export_xlsx():
    session = get_session()
    now = datetime.now()
    quotations = list_all_quotations(session, kind=QuotationKind.QUOTATION.value)
    clients = session.query(Client).order_by(Client.name).all()
    content = build_report_workbook(quotations, clients, get_settings(session), now)

    return send_file(
        BytesIO(content),
        mimetype='application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
        as_attachment=True,
        download_name=f"qms_report_{now.strftime('%Y%m%d')}.xlsx"
    )
