from fastapi import APIRouter

from leaveflow.api.blackouts import blackouts_router
from leaveflow.api.employees import employees_router
from leaveflow.api.leaves import approvals_router, leave_requests_router
from leaveflow.api.sweeps import sweeps_router

api_router = APIRouter()
api_router.include_router(leave_requests_router)
api_router.include_router(approvals_router)
api_router.include_router(employees_router)
api_router.include_router(blackouts_router)
api_router.include_router(sweeps_router)
