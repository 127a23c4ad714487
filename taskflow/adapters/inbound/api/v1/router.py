# taskflow/adapters/inbound/api/v1/router.py

from fastapi import APIRouter
# Manter em ordem alfabética
from taskflow.adapters.inbound.api.v1.endpoints import (
    auth_endpoint,
)

api_router = APIRouter()

# Incluir router de autenticação (tokens de acesso + cookie de refresh)
api_router.include_router(auth_endpoint.router)
