"""
Tests for start-up secret validation.
"""

import pytest

from utils.security import SecurityValidator


@pytest.fixture
def clean_env(monkeypatch):
    for key in list(SecurityValidator.REQUIRED_SECRETS) + list(SecurityValidator.SYNC_SECRETS):
        monkeypatch.delenv(key, raising=False)
    return monkeypatch


class TestSecurityValidator:
    """Test cases for SecurityValidator"""

    def test_missing_required_raises(self, clean_env):
        with pytest.raises(ValueError) as exc_info:
            SecurityValidator.validate_all_secrets()

        assert 'SESSION_SECRET' in str(exc_info.value)

    def test_missing_required_tolerated_in_tests(self, clean_env):
        results = SecurityValidator.validate_all_secrets(raise_on_missing_required=False)

        assert results['required_valid'] is False
        assert len(results['missing_required']) == 2
        assert results['sync_enabled'] is False

    def test_sync_needs_both_settings(self, clean_env):
        clean_env.setenv('SESSION_SECRET', 's')
        clean_env.setenv('DATABASE_URL', 'sqlite:///:memory:')
        clean_env.setenv('REMOTE_SYNC_URL', 'https://sync.example.com')

        results = SecurityValidator.validate_all_secrets()

        assert results['required_valid'] is True
        assert results['sync_availability'] == {'REMOTE_SYNC_URL': True, 'REMOTE_SYNC_API_KEY': False}
        assert results['sync_enabled'] is False

    def test_sync_enabled(self, clean_env):
        clean_env.setenv('SESSION_SECRET', 's')
        clean_env.setenv('DATABASE_URL', 'sqlite:///:memory:')
        clean_env.setenv('REMOTE_SYNC_URL', 'https://sync.example.com')
        clean_env.setenv('REMOTE_SYNC_API_KEY', 'anon-key')

        assert SecurityValidator.validate_all_secrets()['sync_enabled'] is True
