from typing import Optional

from dependency_injector.wiring import Provide, inject
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from opentelemetry import trace

from src.platform.config.di import Container
from src.service.grid.driving_adapter.http_controller.auth.admin_jwt_auth import AdminJwtAuth


bearer_scheme = HTTPBearer(auto_error=False)


@inject
async def require_admin(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    admin_jwt_auth: AdminJwtAuth = Depends(Provide[Container.admin_jwt_auth]),
) -> str:
    tracer = trace.get_tracer(__name__)
    with tracer.start_as_current_span('auth.require_admin'):
        token = credentials.credentials if credentials else None
        return admin_jwt_auth.get_admin_from_token(token)
