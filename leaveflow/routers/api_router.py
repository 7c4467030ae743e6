from fastapi import APIRouter
from leaveflow.routers.requests import leave_router, overtime_router

# Centralized API router hub
# main.py only imports this single hub.
api_router = APIRouter()

api_router.include_router(leave_router, tags=["Leave"])
api_router.include_router(overtime_router, tags=["Overtime"])
