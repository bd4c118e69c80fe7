"""Client routes."""

from flask import Blueprint, request

from routes._actions import action
from services import clients as client_service

clients_bp = Blueprint("clients", __name__, url_prefix="/api/clients")


def client_to_dict(client):
    return {
        "id": client.id,
        "first_name": client.first_name,
        "last_name": client.last_name,
        "full_name": client.full_name,
        "email": client.email,
        "phone": client.phone,
        "address": client.address,
        "notes": client.notes,
        "created_at": client.created_at,
    }


@clients_bp.get("")
@action()
def list_clients(ctx):
    return [client_to_dict(c) for c in client_service.list_clients(ctx)]


@clients_bp.post("")
@action(201)
def create_client(ctx):
    return client_to_dict(client_service.create_client(ctx, request.get_json(silent=True)))


@clients_bp.get("/<int:client_id>")
@action()
def get_client(ctx, client_id):
    return client_to_dict(client_service.get_client(ctx, client_id))


@clients_bp.route("/<int:client_id>", methods=["PUT", "PATCH"])
@action()
def update_client(ctx, client_id):
    client = client_service.update_client(ctx, client_id, request.get_json(silent=True))
    return client_to_dict(client)


@clients_bp.delete("/<int:client_id>")
@action()
def delete_client(ctx, client_id):
    client_service.delete_client(ctx, client_id)
    return {"id": client_id}
