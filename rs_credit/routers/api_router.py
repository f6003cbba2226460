from fastapi import APIRouter
from rs_credit.routers import employees, projects, invoices, timesheet, costs, ai

# Centralized API router hub
# Routers are aggregated here, and main.py only imports this single hub.
api_router = APIRouter()

api_router.include_router(employees.router, tags=["Employees"])
api_router.include_router(projects.router, tags=["Projects"])
api_router.include_router(invoices.router, tags=["Invoices"])
api_router.include_router(timesheet.router, tags=["Timesheet"])
api_router.include_router(costs.router, tags=["Costs"])
api_router.include_router(ai.router, tags=["AI"])
