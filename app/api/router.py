# app/api/router.py
from fastapi import APIRouter
from app.api import routes_purchase_orders

api_router = APIRouter()

api_router.include_router(routes_purchase_orders.router,
                          prefix="/purchase-orders",
                          tags=["purchase-orders"])
