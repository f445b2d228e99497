# ehutano/api/router.py
from fastapi import APIRouter
from ehutano.api import (
    routes_dispensing,
    routes_dispensing_customer,
    routes_dispensing_rx,
    routes_dispensing_scan,
    routes_dispensing_payment,
    routes_dispensing_labels,
)

api_router = APIRouter()

api_router.include_router(routes_dispensing.router)
api_router.include_router(routes_dispensing_customer.router)
api_router.include_router(routes_dispensing_rx.router)
api_router.include_router(routes_dispensing_scan.router)
api_router.include_router(routes_dispensing_payment.router)
api_router.include_router(routes_dispensing_labels.router)
