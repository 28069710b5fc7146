from fastapi import APIRouter

from skillnet.api.v1.endpoints import skills

api_router = APIRouter()
api_router.include_router(skills.router, tags=["skills"])
