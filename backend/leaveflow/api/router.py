from fastapi import APIRouter

from leaveflow.api.balances import balances_router
from leaveflow.api.leave_requests import leave_requests_router
from leaveflow.api.reference import reference_router
from leaveflow.api.statistics import statistics_router

api_router = APIRouter()
api_router.include_router(leave_requests_router)
api_router.include_router(balances_router)
api_router.include_router(reference_router)
api_router.include_router(statistics_router)
