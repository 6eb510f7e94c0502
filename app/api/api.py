"""
API router aggregator — wires all endpoint modules together.
"""

from fastapi import APIRouter

from app.api.endpoints import auth, health, staff, users

api_router = APIRouter()

# Registration, login, tokens, passwords
api_router.include_router(auth.router)

# End-user profile
api_router.include_router(users.router)

# Staff provisioning and management
api_router.include_router(staff.router)

# Connectivity
api_router.include_router(health.router)
