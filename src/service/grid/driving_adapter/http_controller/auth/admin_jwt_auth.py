"""
Admin Authentication

Moderation endpoints require a signed bearer token carrying role == "admin".
The check happens on every request; there is no global admin flag.
"""

from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

import jwt

from src.platform.config.core_setting import settings
from src.platform.exception.exceptions import AuthenticationError, ForbiddenError


ADMIN_ROLE = 'admin'


class AdminJwtAuth:
    def __init__(self) -> None:
        self.secret = settings.SECRET_KEY.get_secret_value()
        self.algorithm = settings.ALGORITHM
        self.token_expire_minutes = settings.ADMIN_TOKEN_EXPIRE_MINUTES

    def create_admin_token(self, *, subject: str, role: str = ADMIN_ROLE) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            'sub': subject,
            'role': role,
            'iat': now,
            'exp': now + timedelta(minutes=self.token_expire_minutes),
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def decode_token(self, token: str) -> Dict:
        try:
            return jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except jwt.PyJWTError:
            raise AuthenticationError('Invalid token')

    def get_admin_from_token(self, token: Optional[str]) -> str:
        if not token:
            raise AuthenticationError('Not authenticated')

        payload = self.decode_token(token)
        subject = payload.get('sub')
        if not subject:
            raise AuthenticationError('Invalid token')
        if payload.get('role') != ADMIN_ROLE:
            raise ForbiddenError('Only admins can perform this action')
        return subject
