"""Tests for token handling and the actor context."""
from datetime import timedelta

import pytest
from fastapi import HTTPException, status
from jose import jwt

from thesis_tracker.auth import (
    ActorContext, GRADER_ROLES, create_access_token, decode_actor, require_roles, verify_token,
)
from thesis_tracker.config import ALGORITHM, SECRET_KEY
from thesis_tracker.exceptions import Unauthorized
from thesis_tracker.models import UserRole


class TestTokens:
    """Token minting and verification."""

    def test_roundtrip(self):
        token = create_access_token(1001, UserRole.student)
        actor = decode_actor(token)

        assert actor == ActorContext(actor_id=1001, role=UserRole.student)

    def test_payload_shape(self):
        token = create_access_token(20, UserRole.evaluation_committee)
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])

        assert payload["sub"] == "20"
        assert payload["role"] == "evaluation_committee"
        assert payload["type"] == "access"

    def test_tampered_token_rejected(self):
        header, _, signature = create_access_token(1001, UserRole.student).split(".")
        _, elevated, _ = create_access_token(1001, UserRole.admin).split(".")
        with pytest.raises(HTTPException) as exc:
            verify_token(".".join([header, elevated, signature]))
        assert exc.value.status_code == status.HTTP_401_UNAUTHORIZED

    def test_expired_token_rejected(self):
        token = create_access_token(1001, UserRole.student, expires_delta=timedelta(minutes=-5))
        with pytest.raises(HTTPException) as exc:
            decode_actor(token)
        assert exc.value.status_code == status.HTTP_401_UNAUTHORIZED

    def test_wrong_secret_rejected(self):
        token = jwt.encode({"sub": "1", "role": "admin", "type": "access"}, "not-the-secret", algorithm=ALGORITHM)
        with pytest.raises(HTTPException):
            decode_actor(token)

    def test_refresh_type_rejected(self):
        token = jwt.encode({"sub": "1", "role": "admin", "type": "refresh"}, SECRET_KEY, algorithm=ALGORITHM)
        with pytest.raises(HTTPException) as exc:
            decode_actor(token)
        assert exc.value.status_code == status.HTTP_401_UNAUTHORIZED

    def test_unknown_role_rejected(self):
        token = jwt.encode({"sub": "1", "role": "dean", "type": "access"}, SECRET_KEY, algorithm=ALGORITHM)
        with pytest.raises(HTTPException) as exc:
            decode_actor(token)
        assert exc.value.status_code == status.HTTP_401_UNAUTHORIZED

    def test_system_role_cannot_authenticate(self):
        token = create_access_token(0, UserRole.system)
        with pytest.raises(HTTPException) as exc:
            decode_actor(token)
        assert exc.value.status_code == status.HTTP_403_FORBIDDEN


class TestActorContext:

    def test_require_allows_listed_roles(self, evaluator):
        evaluator.require(GRADER_ROLES, "grade students")

    def test_require_rejects_other_roles(self, supervisor):
        with pytest.raises(Unauthorized) as exc:
            supervisor.require(GRADER_ROLES, "grade students")
        assert exc.value.code == "NOT_AUTHORIZED"

    def test_self_or_staff(self, student, other_student, supervisor):
        student.require_self_or_staff(student.actor_id, "view status")
        supervisor.require_self_or_staff(student.actor_id, "view status")
        with pytest.raises(Unauthorized):
            other_student.require_self_or_staff(student.actor_id, "view status")

    def test_system_actor(self):
        actor = ActorContext.system()
        assert actor.role == UserRole.system
        assert not actor.is_staff

    def test_actor_is_immutable(self, student):
        with pytest.raises(Exception):
            student.role = UserRole.admin

    def test_require_roles_dependency(self, student, admin):
        dependency = require_roles(UserRole.admin)
        assert dependency(actor=admin) is admin
        with pytest.raises(HTTPException) as exc:
            dependency(actor=student)
        assert exc.value.status_code == status.HTTP_403_FORBIDDEN
