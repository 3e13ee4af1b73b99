"""Clients blueprint - CRUD over the client directory."""
from flask import Blueprint, request, jsonify
from qms.database import get_session
from qms.middleware import require_auth, get_pagination
from qms.schemas import parse_body, dump, page_envelope
from qms.schemas.client import ClientIn, ClientOut
from qms.services.client_service import (
    list_clients, get_client, create_client, update_client, delete_client
)

clients_bp = Blueprint('clients', __name__, url_prefix='/api/clients')


@clients_bp.route('', methods=['GET'])
@require_auth
def list_all():
    """List clients (search with ?q=, paginated)."""
    page, page_size = get_pagination()
    clients, total = list_clients(get_session(), page, page_size, request.args.get('q'))
    items = [dump(ClientOut.model_validate(c)) for c in clients]
    return jsonify(page_envelope(items, total, page, page_size))


@clients_bp.route('', methods=['POST'])
@require_auth
def create():
    body = parse_body(ClientIn)
    client = create_client(get_session(), body.model_dump())
    return jsonify(dump(ClientOut.model_validate(client))), 201


@clients_bp.route('/<int:client_id>', methods=['GET'])
@require_auth
def view(client_id):
    client = get_client(get_session(), client_id)
    return jsonify(dump(ClientOut.model_validate(client)))


@clients_bp.route('/<int:client_id>', methods=['PUT'])
@require_auth
def update(client_id):
    body = parse_body(ClientIn)
    client = update_client(get_session(), client_id, body.model_dump(exclude_unset=True))
    return jsonify(dump(ClientOut.model_validate(client)))


@clients_bp.route('/<int:client_id>', methods=['DELETE'])
@require_auth
def delete(client_id):
    """Delete a client without quotations (409 otherwise)."""
    delete_client(get_session(), client_id)
    return '', 204
