"""Central router that includes all sub-routers."""

from fastapi import APIRouter

from app.api.clients import router as clients_router
from app.api.technicians import router as technicians_router
from app.api.services import router as services_router
from app.api.spare_parts import router as spare_parts_router
from app.api.parts_inventory import router as parts_inventory_router
from app.api.admin import router as admin_router
from app.api.available_parts import router as available_parts_router

api_router = APIRouter()
api_router.include_router(clients_router)
api_router.include_router(technicians_router)
api_router.include_router(services_router)
api_router.include_router(spare_parts_router)
api_router.include_router(parts_inventory_router)
api_router.include_router(admin_router)
api_router.include_router(available_parts_router)
