import uuid
from datetime import timedelta

import jwt
import pytest
from fastapi import HTTPException

from formcraft.core.auth import _user_id_from_token, decode_token
from formcraft.core.config import settings


class TestTokenDecoding:
    def test_valid_token(self, token_for):
        user_id = uuid.uuid4()
        payload = decode_token(token_for(user_id))
        assert payload["sub"] == str(user_id)
        assert _user_id_from_token(token_for(user_id)) == user_id

    def test_expired_token(self, token_for):
        token = token_for(uuid.uuid4(), expires_in=timedelta(seconds=-10))
        with pytest.raises(HTTPException) as exc_info:
            _user_id_from_token(token)
        assert exc_info.value.status_code == 401
        assert exc_info.value.detail == "Token has expired"

    def test_wrong_secret(self):
        token = jwt.encode({"sub": str(uuid.uuid4())}, "other-secret", algorithm=settings.JWT_ALGORITHM)
        with pytest.raises(HTTPException) as exc_info:
            _user_id_from_token(token)
        assert exc_info.value.detail == "Invalid token"

    def test_missing_sub(self):
        token = jwt.encode({"role": "authenticated"}, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)
        with pytest.raises(HTTPException) as exc_info:
            _user_id_from_token(token)
        assert exc_info.value.detail == "Invalid token payload"

    def test_non_uuid_sub(self):
        token = jwt.encode({"sub": "user-42"}, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)
        with pytest.raises(HTTPException) as exc_info:
            _user_id_from_token(token)
        assert exc_info.value.detail == "Invalid token payload"

    def test_audience_claim_is_accepted(self):
        user_id = uuid.uuid4()
        token = jwt.encode(
            {"sub": str(user_id), "aud": "authenticated"},
            settings.SECRET_KEY,
            algorithm=settings.JWT_ALGORITHM,
        )
        assert _user_id_from_token(token) == user_id
