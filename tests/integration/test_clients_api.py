"""
Integration tests for the clients API.
"""


class TestClientsCrud:

    def test_create_and_get(self, client, auth_headers):
        response = client.post('/api/clients', headers=auth_headers, json={
            'name': 'Jane Doe',
            'email': 'jane@globex.com',
            'company': 'Globex',
            'postalCode': '00100',
        })

        assert response.status_code == 201
        created = response.get_json()
        assert created['id']
        assert created['postalCode'] == '00100'

        response = client.get(f"/api/clients/{created['id']}", headers=auth_headers)
        assert response.status_code == 200
        assert response.get_json()['company'] == 'Globex'

    def test_name_required(self, client, auth_headers):
        response = client.post('/api/clients', headers=auth_headers, json={'name': '   '})

        assert response.status_code == 400

    def test_invalid_email(self, client, auth_headers):
        response = client.post('/api/clients', headers=auth_headers, json={'name': 'X', 'email': 'nope'})

        assert response.status_code == 400
        assert response.get_json()['details'][0]['loc'] == ['email']

    def test_update(self, client, auth_headers, acme_id):
        response = client.put(f'/api/clients/{acme_id}', headers=auth_headers, json={
            'name': 'John Smith Jr.',
            'city': 'Kigali',
        })

        assert response.status_code == 200
        data = response.get_json()
        assert data['name'] == 'John Smith Jr.'
        assert data['city'] == 'Kigali'
        assert data['company'] == 'Acme Corporation'

    def test_missing_client(self, client, auth_headers):
        response = client.get('/api/clients/999', headers=auth_headers)

        assert response.status_code == 404
        assert response.get_json() == {'status': 'error', 'message': 'Client 999 not found'}

    def test_delete(self, client, auth_headers, acme_id):
        response = client.delete(f'/api/clients/{acme_id}', headers=auth_headers)
        assert response.status_code == 204

        assert client.get(f'/api/clients/{acme_id}', headers=auth_headers).status_code == 404

    def test_delete_with_quotations_conflict(self, client, auth_headers, acme_id, quotation_payload):
        client.post('/api/quotations', headers=auth_headers, json=quotation_payload(acme_id))

        response = client.delete(f'/api/clients/{acme_id}', headers=auth_headers)

        assert response.status_code == 409
        assert response.get_json()['quotations'] == 1

    def test_requires_auth(self, client):
        assert client.get('/api/clients').status_code == 401


class TestClientsList:

    def test_pagination_and_search(self, client, auth_headers):
        for name in ('Alpha Ltd', 'Beta Ltd', 'Gamma Inc'):
            client.post('/api/clients', headers=auth_headers, json={'name': name})

        response = client.get('/api/clients?page=1&pageSize=2', headers=auth_headers)
        data = response.get_json()
        assert data['total'] == 3
        assert data['page'] == 1
        assert data['pageSize'] == 2
        assert len(data['items']) == 2

        response = client.get('/api/clients?q=ltd', headers=auth_headers)
        names = sorted(c['name'] for c in response.get_json()['items'])
        assert names == ['Alpha Ltd', 'Beta Ltd']

    def test_search_wildcards_are_literal(self, client, auth_headers):
        client.post('/api/clients', headers=auth_headers, json={'name': '100% Organic'})
        client.post('/api/clients', headers=auth_headers, json={'name': 'Plain Foods'})

        names = [c['name'] for c in client.get('/api/clients?q=%25', headers=auth_headers).get_json()['items']]

        assert names == ['100% Organic']

    def test_page_size_capped(self, client, auth_headers):
        response = client.get('/api/clients?pageSize=500', headers=auth_headers)

        assert response.get_json()['pageSize'] == 100

    def test_bad_page(self, client, auth_headers):
        assert client.get('/api/clients?page=0', headers=auth_headers).status_code == 400
        assert client.get('/api/clients?page=abc', headers=auth_headers).status_code == 400
