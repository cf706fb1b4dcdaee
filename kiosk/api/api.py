"""
API router aggregator — wires all endpoint modules together.
"""

from fastapi import APIRouter

from kiosk.api.endpoints import activity, admin, auth, employees, notifications

api_router = APIRouter()

# Auth (login, register, profile)
api_router.include_router(auth.router)

# Employee directory
api_router.include_router(employees.router)

# Visit logs, check-in/out, statistics
api_router.include_router(activity.router)

# Visitor notifications and their settings
api_router.include_router(notifications.router)

# Dashboard
api_router.include_router(admin.router)
