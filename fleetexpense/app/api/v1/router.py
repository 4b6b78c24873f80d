"""
Version 1 of the HTTP API.
"""

from fastapi import APIRouter
from fleetexpense.app.api.v1.endpoints import auth, trucks, drivers, trips

router = APIRouter()

for module in (auth, trucks, drivers, trips):
    router.include_router(module.router)
