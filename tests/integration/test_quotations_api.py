"""
Integration tests for quotations and price information.
"""

import re
from datetime import date, timedelta

from qms.models import Quotation, QuotationItem
from qms.services.snapshot_service import import_snapshot

NUMBER_PATTERN = re.compile(r'^[A-Z0-9]{2}\d{8}-\d{2}$')


class TestCreateQuotation:

    def test_totals_and_number(self, client, auth_headers, acme_id, quotation_payload):
        response = client.post('/api/quotations', headers=auth_headers, json=quotation_payload(acme_id))

        assert response.status_code == 201
        data = response.get_json()
        assert NUMBER_PATTERN.match(data['number'])
        assert data['number'].startswith('JS')
        assert data['subtotal'] == 6500.0
        assert data['taxAmount'] == 1170.0
        assert data['total'] == 7670.0
        assert data['status'] == 'DRAFT'
        assert data['clientName'] == 'John Smith'
        assert [i['description'] for i in data['items']] == ['Website Development', 'SEO Optimization']
        assert data['items'][0]['lineTotal'] == 5000.0

    def test_discount(self, client, auth_headers, acme_id, quotation_payload):
        payload = quotation_payload(
            acme_id,
            items=[{'description': 'Server', 'quantity': 1, 'unitPrice': 8000}],
            discount=500,
        )
        data = client.post('/api/quotations', headers=auth_headers, json=payload).get_json()

        assert data['subtotal'] == 8000.0
        assert data['taxAmount'] == 1440.0
        assert data['total'] == 8940.0

    def test_tax_computed_from_stored_rate(self, client, auth_headers, acme_id, quotation_payload):
        payload = quotation_payload(
            acme_id,
            taxRate=0.12345,
            items=[{'description': 'Consulting', 'quantity': 1, 'unitPrice': 10000}],
        )
        data = client.post('/api/quotations', headers=auth_headers, json=payload).get_json()

        assert data['taxRate'] == 0.1235
        assert data['taxAmount'] == 1235.0
        assert data['total'] == 11235.0

        updated = client.put(
            f"/api/quotations/{data['id']}", headers=auth_headers, json={'notes': 'Revised'}
        ).get_json()
        assert updated['taxAmount'] == 1235.0

    def test_number_after_imported_quotation(self, client, auth_headers, acme_id, quotation_payload, session):
        imported = f"JS{date.today().strftime('%d%m%Y')}-01"
        import_snapshot(session, {'state': {'quotations': [
            {'quotationNumber': imported, 'clientId': '1', 'clientName': 'Imported', 'status': 'sent', 'items': []},
        ]}})

        response = client.post('/api/quotations', headers=auth_headers, json=quotation_payload(acme_id))

        assert response.status_code == 201
        assert response.get_json()['number'] == imported.replace('-01', '-02')

    def test_sequential_numbers(self, client, auth_headers, acme_id, quotation_payload):
        first = client.post('/api/quotations', headers=auth_headers, json=quotation_payload(acme_id)).get_json()
        second = client.post('/api/quotations', headers=auth_headers, json=quotation_payload(acme_id)).get_json()

        assert first['number'][:-3] == second['number'][:-3]
        assert int(second['number'][-2:]) == int(first['number'][-2:]) + 1

    def test_defaults_from_settings(self, client, admin_headers, auth_headers, acme_id, quotation_payload):
        client.put('/api/settings', headers=admin_headers, json={'tax.rate': '0.16', 'org.currency': 'EUR'})

        payload = quotation_payload(acme_id)
        del payload['taxRate']
        del payload['currency']
        data = client.post('/api/quotations', headers=auth_headers, json=payload).get_json()

        assert data['taxRate'] == 0.16
        assert data['currency'] == 'EUR'
        assert data['taxAmount'] == 1040.0
        assert data['validUntil'] == (date.today() + timedelta(days=30)).isoformat()

    def test_validation(self, client, auth_headers, acme_id, quotation_payload):
        bad_items = quotation_payload(acme_id, items=[])
        assert client.post('/api/quotations', headers=auth_headers, json=bad_items).status_code == 400

        bad_qty = quotation_payload(acme_id, items=[{'description': 'X', 'quantity': 0, 'unitPrice': 1}])
        assert client.post('/api/quotations', headers=auth_headers, json=bad_qty).status_code == 400

        bad_tax = quotation_payload(acme_id, taxRate=18)
        assert client.post('/api/quotations', headers=auth_headers, json=bad_tax).status_code == 400

        bad_currency = quotation_payload(acme_id, currency='GBP')
        assert client.post('/api/quotations', headers=auth_headers, json=bad_currency).status_code == 400

    def test_unknown_client(self, client, auth_headers, quotation_payload):
        response = client.post('/api/quotations', headers=auth_headers, json=quotation_payload(999))

        assert response.status_code == 404

    def test_terminal_initial_status_rejected(self, client, auth_headers, acme_id, quotation_payload):
        response = client.post(
            '/api/quotations', headers=auth_headers, json=quotation_payload(acme_id, status='ACCEPTED')
        )

        assert response.status_code == 409


class TestUpdateQuotation:

    def _create(self, client, headers, client_id, payload_builder):
        return client.post('/api/quotations', headers=headers, json=payload_builder(client_id)).get_json()

    def test_items_replaced(self, client, auth_headers, acme_id, quotation_payload, session):
        created = self._create(client, auth_headers, acme_id, quotation_payload)

        response = client.put(f"/api/quotations/{created['id']}", headers=auth_headers, json={
            'items': [{'description': 'Hosting', 'quantity': 12, 'unitPrice': 25}],
        })

        assert response.status_code == 200
        data = response.get_json()
        assert [i['description'] for i in data['items']] == ['Hosting']
        assert data['subtotal'] == 300.0
        assert data['taxAmount'] == 54.0
        assert data['total'] == 354.0
        assert data['number'] == created['number']
        assert session.query(QuotationItem).count() == 1

    def test_partial_update_keeps_items(self, client, auth_headers, acme_id, quotation_payload):
        created = self._create(client, auth_headers, acme_id, quotation_payload)

        data = client.put(
            f"/api/quotations/{created['id']}", headers=auth_headers, json={'notes': 'Net 30'}
        ).get_json()

        assert data['notes'] == 'Net 30'
        assert len(data['items']) == 2
        assert data['total'] == 7670.0

    def test_accepted_quotation_is_locked(self, client, auth_headers, acme_id, quotation_payload):
        created = self._create(client, auth_headers, acme_id, quotation_payload)
        client.post(f"/api/quotations/{created['id']}/status", headers=auth_headers, json={'status': 'SENT'})
        client.post(f"/api/quotations/{created['id']}/status", headers=auth_headers, json={'status': 'ACCEPTED'})

        response = client.put(f"/api/quotations/{created['id']}", headers=auth_headers, json={'notes': 'late'})

        assert response.status_code == 409


class TestStatus:

    def test_lifecycle(self, client, auth_headers, acme_id, quotation_payload):
        created = client.post('/api/quotations', headers=auth_headers, json=quotation_payload(acme_id)).get_json()
        url = f"/api/quotations/{created['id']}/status"

        assert client.post(url, headers=auth_headers, json={'status': 'sent'}).get_json()['status'] == 'SENT'
        assert client.post(url, headers=auth_headers, json={'status': 'ACCEPTED'}).status_code == 200

        response = client.post(url, headers=auth_headers, json={'status': 'DRAFT'})
        assert response.status_code == 409
        data = response.get_json()
        assert data['currentStatus'] == 'ACCEPTED'
        assert data['requestedStatus'] == 'DRAFT'
        assert data['allowedStatuses'] == []

    def test_unknown_status(self, client, auth_headers, acme_id, quotation_payload):
        created = client.post('/api/quotations', headers=auth_headers, json=quotation_payload(acme_id)).get_json()

        response = client.post(
            f"/api/quotations/{created['id']}/status", headers=auth_headers, json={'status': 'ARCHIVED'}
        )
        assert response.status_code == 400


class TestListAndDelete:

    def test_filters(self, client, auth_headers, acme_id, quotation_payload):
        first = client.post('/api/quotations', headers=auth_headers, json=quotation_payload(acme_id)).get_json()
        client.post('/api/quotations', headers=auth_headers, json=quotation_payload(acme_id, status='SENT'))
        other = client.post('/api/clients', headers=auth_headers, json={'name': 'Globex'}).get_json()
        client.post('/api/quotations', headers=auth_headers, json=quotation_payload(other['id']))

        data = client.get('/api/quotations', headers=auth_headers).get_json()
        assert data['total'] == 3

        data = client.get('/api/quotations?status=SENT', headers=auth_headers).get_json()
        assert data['total'] == 1

        data = client.get(f'/api/quotations?clientId={acme_id}', headers=auth_headers).get_json()
        assert data['total'] == 2

        data = client.get('/api/quotations?q=globex', headers=auth_headers).get_json()
        assert [q['clientName'] for q in data['items']] == ['Globex']

        data = client.get(f"/api/quotations?q={first['number']}", headers=auth_headers).get_json()
        assert data['items'][0]['id'] == first['id']

    def test_search_is_case_insensitive_and_literal(self, client, auth_headers, acme_id, quotation_payload):
        created = client.post('/api/quotations', headers=auth_headers, json=quotation_payload(acme_id)).get_json()

        data = client.get(f"/api/quotations?q={created['number'][:4].lower()}", headers=auth_headers).get_json()
        assert [q['id'] for q in data['items']] == [created['id']]

        assert client.get('/api/quotations?q=%25', headers=auth_headers).get_json()['total'] == 0
        assert client.get('/api/quotations?q=_', headers=auth_headers).get_json()['total'] == 0

    def test_delete(self, client, auth_headers, acme_id, quotation_payload, session):
        created = client.post('/api/quotations', headers=auth_headers, json=quotation_payload(acme_id)).get_json()

        assert client.delete(f"/api/quotations/{created['id']}", headers=auth_headers).status_code == 204
        assert client.get(f"/api/quotations/{created['id']}", headers=auth_headers).status_code == 404
        assert session.query(QuotationItem).count() == 0


class TestPriceInformation:

    def test_prefix_and_separation(self, client, auth_headers, acme_id, quotation_payload, session):
        quote = client.post('/api/quotations', headers=auth_headers, json=quotation_payload(acme_id)).get_json()
        response = client.post('/api/price-information', headers=auth_headers, json=quotation_payload(acme_id))

        assert response.status_code == 201
        record = response.get_json()
        assert record['kind'] == 'PRICE_INFORMATION'
        assert record['number'].startswith('PRICE-')
        assert record['number'][len('PRICE-'):-3] == quote['number'][:-3]

        assert client.get('/api/price-information', headers=auth_headers).get_json()['total'] == 1
        assert client.get('/api/quotations', headers=auth_headers).get_json()['total'] == 1
        assert client.get(f"/api/quotations/{record['id']}", headers=auth_headers).status_code == 404
        assert session.query(Quotation).count() == 2

    def test_update_and_delete(self, client, auth_headers, acme_id, quotation_payload):
        record = client.post('/api/price-information', headers=auth_headers, json=quotation_payload(acme_id)).get_json()
        url = f"/api/price-information/{record['id']}"

        data = client.put(url, headers=auth_headers, json={'discount': 70}).get_json()
        assert data['total'] == 7600.0

        assert client.delete(url, headers=auth_headers).status_code == 204
        assert client.get(url, headers=auth_headers).status_code == 404
