#!/usr/bin/env python3
"""
Unit Tests for the Permission Context Builder
Tests for schoolguard/permissions/context.py
"""

import uuid
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from schoolguard.core.exceptions import StoreFailureException, UserNotFoundException
from schoolguard.permissions.catalog import Action, Resource, Role, SchoolLevel, Scope
from schoolguard.permissions.context import (
    build_permission_context,
    context_for_user,
    index_overrides,
    load_principal,
    parse_user_id,
)

NOW = datetime(2026, 3, 1, 12, 0, 0)


def override_row(resource, action, granted=True, expires_at=None, updated_at=NOW, **kwargs):
    return SimpleNamespace(
        id=uuid.uuid4(),
        resource=resource,
        action=action,
        granted=granted,
        scope=kwargs.get("scope", Scope.ALL),
        expires_at=expires_at,
        reason=kwargs.get("reason"),
        created_at=updated_at,
        updated_at=updated_at,
        is_active_at=lambda now, e=expires_at: e is None or e > now,
    )


def user_row(role=Role.ENSEIGNANT, is_active=True, **kwargs):
    return SimpleNamespace(
        id=uuid.uuid4(),
        staff_role=role,
        school_level=kwargs.get("school_level"),
        is_active=is_active,
    )


def result_with(scalar=None, scalars=()):
    result = MagicMock()
    result.scalar_one_or_none.return_value = scalar
    result.scalars.return_value.all.return_value = list(scalars)
    return result


class TestParseUserId:
    """Test principal id parsing"""

    def test_uuid_passthrough(self):
        uid = uuid.uuid4()
        assert parse_user_id(uid) is uid

    def test_string_uuid(self):
        uid = uuid.uuid4()
        assert parse_user_id(str(uid)) == uid

    @pytest.mark.parametrize("value", [None, ""])
    def test_empty_id(self, value):
        with pytest.raises(UserNotFoundException):
            parse_user_id(value)

    def test_malformed_id(self):
        with pytest.raises(UserNotFoundException) as exc_info:
            parse_user_id("not-a-uuid")
        assert exc_info.value.details == {"user_id": "not-a-uuid"}


class TestIndexOverrides:
    """Test keying of override rows"""

    def test_expired_rows_are_dropped(self):
        rows = [override_row(Resource.GRADES, Action.VIEW, expires_at=NOW - timedelta(minutes=1))]
        assert dict(index_overrides(rows, NOW)) == {}

    def test_most_recent_row_wins(self):
        older = override_row(Resource.GRADES, Action.VIEW, granted=True, updated_at=NOW - timedelta(days=1))
        newer = override_row(Resource.GRADES, Action.VIEW, granted=False, updated_at=NOW)
        for rows in ([older, newer], [newer, older]):
            indexed = index_overrides(rows, NOW)
            assert indexed[(Resource.GRADES, Action.VIEW)].granted is False

    def test_result_is_read_only(self):
        indexed = index_overrides([override_row(Resource.SMS, Action.CREATE)], NOW)
        with pytest.raises(TypeError):
            indexed[(Resource.SMS, Action.VIEW)] = None

    def test_aware_now_is_compared_as_utc(self):
        aware_now = datetime(2026, 3, 1, 14, 30, tzinfo=timezone(timedelta(hours=2)))
        rows = [
            override_row(Resource.SMS, Action.CREATE, expires_at=NOW + timedelta(hours=1)),
            override_row(Resource.RECEIPTS, Action.VIEW, expires_at=NOW + timedelta(minutes=15)),
        ]

        indexed = index_overrides(rows, aware_now)

        assert set(indexed) == {(Resource.SMS, Action.CREATE)}


class TestLoadPrincipal:
    """Test principal resolution"""

    @pytest.mark.asyncio
    async def test_active_user(self):
        user = user_row()
        db = AsyncMock()
        db.execute.return_value = result_with(scalar=user)

        assert await load_principal(db, str(user.id)) is user

    @pytest.mark.asyncio
    async def test_unknown_user(self):
        db = AsyncMock()
        db.execute.return_value = result_with(scalar=None)

        with pytest.raises(UserNotFoundException):
            await load_principal(db, str(uuid.uuid4()))

    @pytest.mark.asyncio
    async def test_inactive_user(self):
        user = user_row(is_active=False)
        db = AsyncMock()
        db.execute.return_value = result_with(scalar=user)

        with pytest.raises(UserNotFoundException):
            await load_principal(db, user.id)

    @pytest.mark.asyncio
    async def test_store_error(self):
        db = AsyncMock()
        db.execute.side_effect = OperationalError("SELECT", {}, Exception("database is locked"))

        with pytest.raises(StoreFailureException) as exc_info:
            await load_principal(db, uuid.uuid4())
        assert exc_info.value.details["operation"] == "load_principal"
        assert "error" not in exc_info.value.details


class TestContextForUser:
    """Test context assembly"""

    @pytest.mark.asyncio
    async def test_teacher_context(self):
        user = user_row(Role.ENSEIGNANT, school_level=SchoolLevel.MIDDLE)
        db = AsyncMock()
        db.execute.side_effect = [
            result_with(scalars=[override_row(Resource.SMS, Action.CREATE)]),
            result_with(scalars=["6B", "6A", "6B"]),
        ]

        ctx = await context_for_user(db, user, now=NOW)

        assert ctx.user_id == str(user.id)
        assert ctx.role == Role.ENSEIGNANT
        assert ctx.school_level == SchoolLevel.MIDDLE
        assert ctx.assigned_class_ids == ("6A", "6B")
        assert ctx.children_ids == ()
        assert ctx.built_at == NOW
        assert ctx.override_for(Resource.SMS, Action.CREATE) is not None

    @pytest.mark.asyncio
    async def test_non_teacher_skips_class_lookup(self):
        db = AsyncMock()
        db.execute.return_value = result_with(scalars=[])

        ctx = await context_for_user(db, user_row(Role.COMPTABLE), now=NOW)

        assert db.execute.await_count == 1
        assert ctx.assigned_class_ids == ()

    @pytest.mark.asyncio
    async def test_store_error(self):
        db = AsyncMock()
        db.execute.side_effect = OperationalError("SELECT", {}, Exception("connection refused"))

        with pytest.raises(StoreFailureException):
            await context_for_user(db, user_row(), now=NOW)

    @pytest.mark.asyncio
    async def test_aware_now_becomes_naive_utc(self):
        db = AsyncMock()
        db.execute.return_value = result_with(scalars=[])

        ctx = await context_for_user(
            db, user_row(Role.COMPTABLE), now=NOW.replace(tzinfo=timezone.utc).astimezone(timezone(timedelta(hours=-5)))
        )

        assert ctx.built_at == NOW
        assert ctx.built_at.tzinfo is None

    @pytest.mark.asyncio
    async def test_build_from_id(self):
        user = user_row(Role.COMPTABLE)
        db = AsyncMock()
        db.execute.side_effect = [result_with(scalar=user), result_with(scalars=[])]

        ctx = await build_permission_context(db, str(user.id), now=NOW)

        assert ctx.role == Role.COMPTABLE
        assert dict(ctx.overrides) == {}
