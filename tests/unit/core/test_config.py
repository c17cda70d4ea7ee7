#!/usr/bin/env python3
"""
Unit Tests for Configuration Management
Tests for schoolguard/core/config.py
"""

import pytest
from pydantic import ValidationError

from schoolguard.core.config import Settings, settings

VALID_KEY = "k" * 32


class TestSettingsDefaults:
    """Test default settings values"""

    def test_app_name_default(self):
        """Test default APP_NAME"""
        assert settings.APP_NAME == "SchoolGuard Authorization Service"

    def test_jwt_defaults(self):
        """Test JWT defaults"""
        assert settings.JWT_ALGORITHM == "HS256"
        assert settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES == 60

    def test_permission_defaults(self):
        """Permission store failures are reported as errors unless configured otherwise"""
        assert settings.PERMISSIONS_FAIL_CLOSED is False
        assert settings.VERIFY_WALL_ON_STARTUP is True

    def test_cors_origins_default(self):
        """Test CORS_ORIGINS contains expected defaults"""
        assert "http://localhost:3000" in settings.CORS_ORIGINS

    def test_test_environment_uses_sqlite(self):
        """Test the test run points at SQLite"""
        assert settings.ENVIRONMENT == "testing"
        assert settings.DATABASE_URL.startswith("sqlite")


class TestSettingsValidation:
    """Test settings validators"""

    def test_secret_key_required_length(self):
        """Test SECRET_KEY shorter than 32 chars is rejected"""
        with pytest.raises(ValidationError):
            Settings(SECRET_KEY="too-short")

    def test_invalid_environment(self):
        """Test unknown ENVIRONMENT is rejected"""
        with pytest.raises(ValidationError) as exc_info:
            Settings(SECRET_KEY=VALID_KEY, ENVIRONMENT="qa")
        assert "ENVIRONMENT must be one of" in str(exc_info.value)

    @pytest.mark.parametrize("env", ["development", "testing", "staging", "production"])
    def test_valid_environments(self, env):
        """Test every known ENVIRONMENT is accepted"""
        assert Settings(SECRET_KEY=VALID_KEY, ENVIRONMENT=env).ENVIRONMENT == env

    def test_log_level_is_uppercased(self):
        """Test LOG_LEVEL is normalized to upper case"""
        assert Settings(SECRET_KEY=VALID_KEY, LOG_LEVEL="debug").LOG_LEVEL == "DEBUG"

    def test_invalid_log_level(self):
        """Test unknown LOG_LEVEL is rejected"""
        with pytest.raises(ValidationError):
            Settings(SECRET_KEY=VALID_KEY, LOG_LEVEL="verbose")

    def test_fail_closed_override(self):
        """Test PERMISSIONS_FAIL_CLOSED can be switched on"""
        assert Settings(SECRET_KEY=VALID_KEY, PERMISSIONS_FAIL_CLOSED=True).PERMISSIONS_FAIL_CLOSED is True
