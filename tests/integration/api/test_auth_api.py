#!/usr/bin/env python3
"""
Integration Tests for Authentication API
Tests for /api/v1/auth endpoints and bearer token handling
"""

import uuid

import pytest
from httpx import AsyncClient

from schoolguard.core.security import create_access_token
from schoolguard.permissions.catalog import Role


class TestLogin:
    """Test POST /api/v1/auth/login"""

    @pytest.mark.asyncio
    async def test_login_success(self, client: AsyncClient, make_user, test_password):
        user = await make_user(Role.COMPTABLE)

        response = await client.post(
            "/api/v1/auth/login",
            json={"email": user.email, "password": test_password},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["token_type"] == "Bearer"
        assert data["expires_in"] == 3600
        assert data["user"]["user_id"] == str(user.id)
        assert data["user"]["staff_role"] == "comptable"

        me = await client.get(
            "/api/v1/permissions/me",
            headers={"Authorization": f"Bearer {data['access_token']}"},
        )
        assert me.status_code == 200

    @pytest.mark.asyncio
    async def test_login_wrong_password(self, client: AsyncClient, make_user):
        user = await make_user(Role.COMPTABLE)

        response = await client.post(
            "/api/v1/auth/login",
            json={"email": user.email, "password": "wrong_password"},
        )

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "authentication_error"

    @pytest.mark.asyncio
    async def test_login_inactive_user(self, client: AsyncClient, make_user, test_password):
        user = await make_user(Role.COMPTABLE, is_active=False)

        response = await client.post(
            "/api/v1/auth/login",
            json={"email": user.email, "password": test_password},
        )

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_login_invalid_email(self, client: AsyncClient):
        response = await client.post(
            "/api/v1/auth/login",
            json={"email": "not-an-email", "password": "x"},
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "validation_error"


class TestBearerToken:
    """Test principal extraction on protected routes"""

    @pytest.mark.asyncio
    async def test_missing_header(self, client: AsyncClient):
        response = await client.get("/api/v1/permissions/me")

        assert response.status_code == 401
        assert response.json()["error"]["message"] == "Missing authorization header"

    @pytest.mark.asyncio
    async def test_wrong_scheme(self, client: AsyncClient):
        response = await client.get("/api/v1/permissions/me", headers={"Authorization": "Basic abc"})

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_garbage_token(self, client: AsyncClient):
        response = await client.get("/api/v1/permissions/me", headers={"Authorization": "Bearer abc"})

        assert response.status_code == 401
        assert response.json()["error"]["message"] == "Invalid token"

    @pytest.mark.asyncio
    async def test_unknown_principal(self, client: AsyncClient):
        token = create_access_token({"sub": str(uuid.uuid4())})

        response = await client.get(
            "/api/v1/permissions/me",
            headers={"Authorization": f"Bearer {token}"},
        )

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "user_not_found"

    @pytest.mark.asyncio
    async def test_deactivated_principal(self, client: AsyncClient, headers_for, db_session):
        user, headers = await headers_for(Role.COMPTABLE)
        user.is_active = False
        await db_session.commit()

        response = await client.get("/api/v1/permissions/me", headers=headers)

        assert response.status_code == 401
