"""Main API router that includes all endpoint routers."""

from fastapi import APIRouter

from shortlet.api.v1 import bookings, disputes, internal, payouts

api_router = APIRouter()

# Bookings
api_router.include_router(bookings.router, prefix="/bookings", tags=["Bookings"])

# Disputes
api_router.include_router(disputes.router, prefix="/disputes", tags=["Disputes"])

# Payouts
api_router.include_router(payouts.router, prefix="/payouts", tags=["Payouts"])

# Internal
api_router.include_router(internal.router, prefix="/internal", tags=["Internal"])
