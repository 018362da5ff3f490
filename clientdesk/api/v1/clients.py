"""
Client API Routes - admin management of clients and their logins
"""
from typing import Optional

from fastapi import APIRouter, Depends

from clientdesk.api.deps import get_client_service
from clientdesk.core.security import require_admin
from clientdesk.schemas import AuthUserResponse, ClientCreate, ClientResponse, ClientUpdate, DeletionSummary
from clientdesk.services.client_service import ClientLifecycleService

router = APIRouter(prefix="/clients", tags=["Clients"], dependencies=[Depends(require_admin)])


@router.get("")
async def list_clients(
    search: Optional[str] = None,
    clients: ClientLifecycleService = Depends(get_client_service)
):
    """List clients, newest first"""
    return {
        "success": True,
        "clients": [ClientResponse.model_validate(client) for client in clients.list(search)]
    }


@router.post("", status_code=201)
async def create_client(
    client_data: ClientCreate,
    clients: ClientLifecycleService = Depends(get_client_service)
):
    """Create a client with a portal login. The generated password is returned once."""
    result = clients.create(client_data)
    return {
        "success": True,
        "message": "Client created successfully!",
        "password": result["password"],
        "user": AuthUserResponse.model_validate(result["user"]),
        "client": ClientResponse.model_validate(result["client"])
    }


@router.get("/{client_id}")
async def get_client(
    client_id: int,
    clients: ClientLifecycleService = Depends(get_client_service)
):
    return {"success": True, "client": ClientResponse.model_validate(clients.get(client_id))}


@router.put("/{client_id}")
async def update_client(
    client_id: int,
    client_data: ClientUpdate,
    clients: ClientLifecycleService = Depends(get_client_service)
):
    """Update the client and its profile"""
    client = clients.update(client_id, client_data)
    return {
        "success": True,
        "message": "Client updated successfully",
        "client": ClientResponse.model_validate(client)
    }


@router.get("/{client_id}/delete-summary")
async def get_deletion_summary(
    client_id: int,
    clients: ClientLifecycleService = Depends(get_client_service)
):
    """What a deletion would remove"""
    return {"success": True, "summary": DeletionSummary(**clients.deletion_summary(client_id))}


@router.delete("/{client_id}")
async def delete_client(
    client_id: int,
    clients: ClientLifecycleService = Depends(get_client_service)
):
    """Delete the client with all its records, login and files"""
    result = clients.delete(client_id)
    return {
        "success": True,
        "message": f"Client {result['client_name']} and all associated data deleted successfully",
        **result
    }


@router.get("/{client_id}/password")
async def get_client_password(
    client_id: int,
    clients: ClientLifecycleService = Depends(get_client_service)
):
    """Generated password, while it is still cached"""
    return {"success": True, **clients.get_password(client_id)}
