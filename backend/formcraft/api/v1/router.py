from fastapi import APIRouter

from formcraft.api.v1.endpoints import forms, nlu, responses

api_v1_router = APIRouter()

api_v1_router.include_router(forms.router, prefix="/forms", tags=["forms"])
api_v1_router.include_router(responses.router, prefix="/responses", tags=["responses"])
api_v1_router.include_router(nlu.router, prefix="/nlu", tags=["nlu"])
