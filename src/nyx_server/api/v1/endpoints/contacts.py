"""Address-book endpoints."""

from __future__ import annotations

from fastapi import APIRouter, status

from nyx_server.schemas.contact import ContactCreate, ContactResponse
from nyx_server.services.contacts import add_contact, list_contacts

from ..dependencies import HubDep, SessionDep

router = APIRouter(prefix="/contacts", tags=["contacts"])


@router.post("", response_model=ContactResponse, status_code=status.HTTP_201_CREATED)
async def create_contact(request: ContactCreate, db: SessionDep, hub: HubDep) -> ContactResponse:
    """Save a contact and open the private chat shared with it."""
    contact, chat, existing = add_contact(db, request.owner_id, request.contact_id, request.nickname)
    if not existing:
        await hub.attach_chat(chat.id, [request.owner_id, request.contact_id])
    return contact


@router.get("/{owner_id}", response_model=list[ContactResponse])
async def get_contacts(owner_id: str, db: SessionDep) -> list[ContactResponse]:
    return list_contacts(db, owner_id)
