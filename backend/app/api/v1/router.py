# backend/app/api/v1/router.py
from fastapi import APIRouter
from backend.app.api.v1.endpoints import auth, connected_wallets, gateway, wallets

api_router = APIRouter()
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(wallets.router, prefix="/wallets", tags=["wallets"])
# Gateway and linking paths sit at the API root
api_router.include_router(gateway.router, tags=["gateway"])
api_router.include_router(connected_wallets.router, tags=["connected-wallets"])
