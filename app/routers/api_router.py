from fastapi import APIRouter
from app.routers import leave, leave_balance

# Centralized API router hub
# Routers are aggregated here and main.py only imports this single hub.
api_router = APIRouter()

api_router.include_router(leave.router)
api_router.include_router(leave_balance.router)
