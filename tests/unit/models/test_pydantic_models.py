#!/usr/bin/env python3
"""
Unit Tests for Pydantic Models
Tests validation of request/response schemas
"""

import uuid
from datetime import datetime
from types import SimpleNamespace

import pytest
from pydantic import ValidationError

from schoolguard.models.auth import LoginRequest, PrincipalResponse
from schoolguard.models.permission import (
    BatchCheckRequest,
    OverrideCreateRequest,
    OverrideResponse,
    PermissionCheckResponse,
)
from schoolguard.permissions.catalog import Action, Resource, Role, Scope


@pytest.mark.unit
class TestAuthModels:
    """Test authentication schemas"""

    def test_login_request_valid(self):
        req = LoginRequest(email="comptable@example.com", password="secret")
        assert req.email == "comptable@example.com"

    def test_login_request_invalid_email(self):
        with pytest.raises(ValidationError):
            LoginRequest(email="not-an-email", password="secret")

    def test_login_request_empty_password(self):
        with pytest.raises(ValidationError):
            LoginRequest(email="comptable@example.com", password="")

    def test_principal_from_user_model(self):
        user = SimpleNamespace(
            id=uuid.uuid4(),
            email="prof@example.com",
            full_name="Prof",
            staff_role=Role.ENSEIGNANT,
            school_level=None,
        )
        principal = PrincipalResponse.from_user_model(user)
        assert principal.user_id == str(user.id)
        assert principal.staff_role == Role.ENSEIGNANT


@pytest.mark.unit
class TestPermissionModels:
    """Test permission schemas"""

    def test_override_request_valid(self):
        req = OverrideCreateRequest(resource="safe_expense", action="delete", effect="grant")
        assert req.resource == Resource.SAFE_EXPENSE
        assert req.action == Action.DELETE
        assert req.scope == Scope.ALL
        assert req.expires_at is None

    def test_override_request_unknown_resource(self):
        with pytest.raises(ValidationError):
            OverrideCreateRequest(resource="spaceships", action="view", effect="grant")

    def test_override_request_unknown_effect(self):
        with pytest.raises(ValidationError):
            OverrideCreateRequest(resource="sms", action="view", effect="maybe")

    def test_override_request_reason_length(self):
        with pytest.raises(ValidationError):
            OverrideCreateRequest(resource="sms", action="view", effect="deny", reason="x" * 501)

    def test_batch_request_limit(self):
        checks = [{"resource": "sms", "action": "view"}] * 501
        with pytest.raises(ValidationError):
            BatchCheckRequest(checks=checks)

    def test_check_response_serializes_scope_value(self):
        data = PermissionCheckResponse(granted=True, scope=Scope.OWN_CLASSES).model_dump(
            mode="json", exclude_none=True
        )
        assert data == {"granted": True, "scope": "own_classes"}

    def test_override_response_from_model(self):
        now = datetime(2026, 3, 1, 12, 0)
        row = SimpleNamespace(
            id=uuid.uuid4(),
            user_id=uuid.uuid4(),
            resource=Resource.SMS,
            action=Action.CREATE,
            scope=Scope.ALL,
            granted=False,
            reason=None,
            granted_by=None,
            expires_at=None,
            created_at=now,
            updated_at=now,
        )
        response = OverrideResponse.from_model(row)
        assert response.override_id == str(row.id)
        assert response.granted_by is None
        assert response.granted is False
