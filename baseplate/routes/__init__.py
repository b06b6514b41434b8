"""Central API router composition.

Each module owns one resource; ``api_router`` is the single import point for
``FastAPI.include_router(...)``.
"""
from fastapi import APIRouter

from .articles import articles_router, categories_router
from .customer_success import router as customer_success_router
from .customers import router as customers_router
from .llm_jobs import router as llm_jobs_router
from .notifications import router as notifications_router
from .roles import permissions_router, system_modules_router
from .roles import router as roles_router
from .segments import industries_router
from .segments import router as segments_router
from .snap import capture_requests_router, captures_router, colors_router, device_profiles_router
from .templates import router as templates_router
from .users import router as users_router

api_router = APIRouter()

api_router.include_router(users_router)
api_router.include_router(customers_router)
api_router.include_router(roles_router)
api_router.include_router(permissions_router)
api_router.include_router(system_modules_router)
api_router.include_router(notifications_router)
api_router.include_router(templates_router)
api_router.include_router(categories_router)
api_router.include_router(articles_router)
api_router.include_router(customer_success_router)
api_router.include_router(segments_router)
api_router.include_router(industries_router)
api_router.include_router(device_profiles_router)
api_router.include_router(capture_requests_router)
api_router.include_router(captures_router)
api_router.include_router(colors_router)
api_router.include_router(llm_jobs_router)
