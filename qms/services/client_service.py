"""Client service: list, lookup and CRUD for clients."""
import logging
from typing import Any, Dict, Optional, Tuple, List

from sqlalchemy import or_, func
from sqlalchemy.orm import Session

from qms.database import contains_pattern, LIKE_ESCAPE
from qms.models import Client, Quotation
from qms.exceptions import NotFoundError, ConflictError, BusinessLogicError

logger = logging.getLogger(__name__)

CLIENT_FIELDS = (
    'name', 'email', 'phone', 'company', 'address',
    'city', 'state', 'postal_code', 'country', 'notes',
)


def list_clients(session: Session, page: int = 1, page_size: int = 20,
                 q: Optional[str] = None) -> Tuple[List[Client], int]:
    """
    Page through clients, newest first.

    Args:
        q: case-insensitive search over name, email and company

    Returns:
        (clients on the page, total matching clients)
    """
    query = session.query(Client)

    search = (q or '').strip()
    if search:
        pattern = contains_pattern(search.lower())
        query = query.filter(
            or_(
                func.lower(Client.name).like(pattern, escape=LIKE_ESCAPE),
                func.lower(Client.email).like(pattern, escape=LIKE_ESCAPE),
                func.lower(Client.company).like(pattern, escape=LIKE_ESCAPE)
            )
        )

    total = query.count()
    clients = query.order_by(
        Client.created_at.desc(), Client.id.desc()
    ).offset((page - 1) * page_size).limit(page_size).all()

    return clients, total


def get_client(session: Session, client_id: int) -> Client:
    client = session.query(Client).filter(Client.id == client_id).first()
    if not client:
        raise NotFoundError(f'Client {client_id} not found')
    return client


def _apply(client: Client, data: Dict[str, Any]) -> None:
    for field in CLIENT_FIELDS:
        if field in data:
            setattr(client, field, data[field])

    if not (client.name or '').strip():
        raise BusinessLogicError('Client name is required')


def create_client(session: Session, data: Dict[str, Any]) -> Client:
    """Create a client. Only `name` is required."""
    try:
        client = Client()
        _apply(client, data)
        session.add(client)
        session.commit()
    except Exception:
        session.rollback()
        raise

    logger.info(f"Created client {client.id} ({client.name})")
    return client


def update_client(session: Session, client_id: int, data: Dict[str, Any]) -> Client:
    """Replace a client's fields with the given values."""
    try:
        client = get_client(session, client_id)
        _apply(client, data)
        session.commit()
    except Exception:
        session.rollback()
        raise

    return client


def delete_client(session: Session, client_id: int) -> None:
    """
    Delete a client.

    Raises:
        NotFoundError: unknown client
        ConflictError: the client still has quotations
    """
    try:
        client = get_client(session, client_id)

        quotation_count = session.query(func.count(Quotation.id)).filter(
            Quotation.client_id == client_id
        ).scalar() or 0
        if quotation_count:
            raise ConflictError(
                f'Client {client_id} has {quotation_count} quotation(s); delete them first',
                payload={'quotations': quotation_count}
            )

        session.delete(client)
        session.commit()
    except Exception:
        session.rollback()
        raise

    logger.info(f"Deleted client {client_id}")
