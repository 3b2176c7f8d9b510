# app/dependencies.py
"""
FastAPI dependencies that hand route handlers the objects built by the
composition root (``app.main.create_app``).
"""
from __future__ import annotations

from typing import Optional

from fastapi import Request

from app.rate_limiter import get_client_ip
from auth.service import AccountService
from inventory.service import InventoryService

MAX_USER_AGENT_LENGTH = 256


def get_account_service(request: Request) -> AccountService:
    return request.app.state.account_service


def get_client_device(request: Request) -> Optional[dict]:
    """Device metadata stored with new sessions (client IP and user agent)."""
    device = {}
    ip_address = get_client_ip(request)
    if ip_address != "unknown":
        device["ip_address"] = ip_address
    user_agent = request.headers.get("user-agent")
    if user_agent:
        device["user_agent"] = user_agent[:MAX_USER_AGENT_LENGTH]
    return device or None


def get_inventory_service(request: Request) -> InventoryService:
    return request.app.state.inventory_service
