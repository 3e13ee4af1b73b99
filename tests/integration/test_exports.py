"""
Integration tests for CSV, XLSX and PDF exports.
"""

import csv
from io import BytesIO, StringIO

from openpyxl import load_workbook


class TestExports:

    def _create(self, client, headers, client_id, payload_builder, **overrides):
        response = client.post('/api/quotations', headers=headers, json=payload_builder(client_id, **overrides))
        return response.get_json()

    def test_csv(self, client, auth_headers, acme_id, quotation_payload):
        created = self._create(client, auth_headers, acme_id, quotation_payload)

        response = client.get('/api/quotations/export.csv', headers=auth_headers)

        assert response.status_code == 200
        assert response.mimetype == 'text/csv'
        rows = list(csv.reader(StringIO(response.get_data(as_text=True))))
        assert rows[0][0] == 'Number'
        assert rows[1][0] == created['number']
        assert rows[1][1] == 'John Smith'
        assert rows[1][5] == '18'
        assert rows[1][8] == '7670.00'

    def test_xlsx(self, client, auth_headers, acme_id, quotation_payload):
        self._create(client, auth_headers, acme_id, quotation_payload, status='SENT')

        response = client.get('/api/reports/export.xlsx', headers=auth_headers)

        assert response.status_code == 200
        workbook = load_workbook(BytesIO(response.data))
        assert workbook.sheetnames == [
            'Summary', 'Quotations by Status', 'Monthly Trends', 'Top Clients', 'Quotations', 'Clients'
        ]
        quotations = workbook['Quotations']
        assert quotations['I4'].value == 7670.0
        assert workbook['Clients']['A4'].value == 'John Smith'

    def test_quotation_pdf(self, client, auth_headers, acme_id, quotation_payload):
        created = self._create(client, auth_headers, acme_id, quotation_payload, notes='Thank you')

        response = client.get(f"/api/quotations/{created['id']}/pdf", headers=auth_headers)

        assert response.status_code == 200
        assert response.mimetype == 'application/pdf'
        assert response.data.startswith(b'%PDF')
        assert created['number'] in response.headers['Content-Disposition']

    def test_invoice_pdf(self, client, auth_headers, acme_id, quotation_payload):
        created = self._create(client, auth_headers, acme_id, quotation_payload)

        response = client.get(f"/api/quotations/{created['id']}/invoice.pdf", headers=auth_headers)

        assert response.status_code == 200
        assert response.data.startswith(b'%PDF')

    def test_price_information_pdf(self, client, auth_headers, acme_id, quotation_payload):
        record = client.post(
            '/api/price-information', headers=auth_headers, json=quotation_payload(acme_id)
        ).get_json()

        response = client.get(f"/api/price-information/{record['id']}/pdf", headers=auth_headers)

        assert response.status_code == 200
        assert response.data.startswith(b'%PDF')
