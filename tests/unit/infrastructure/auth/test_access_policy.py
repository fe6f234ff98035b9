"""Unit tests for StaticAccessPolicy."""

import pytest

from gamebin.core.config import get_settings
from gamebin.domain.services import collection_store
from gamebin.infrastructure.auth import KNOWN_PERMISSIONS, AccessPolicy, StaticAccessPolicy


class TestStaticAccessPolicy:
    def test_grants_everything_by_default(self):
        policy = StaticAccessPolicy()

        assert policy.is_authenticated()
        assert all(policy.has_permission(p) for p in KNOWN_PERMISSIONS)

    def test_permission_names_are_case_insensitive(self):
        policy = StaticAccessPolicy(["READ"])

        assert policy.has_permission("read")
        assert not policy.has_permission("Write")

    def test_unauthenticated_has_no_permissions(self):
        policy = StaticAccessPolicy(authenticated=False)

        assert not policy.is_authenticated()
        assert not policy.has_permission("read")

    def test_unknown_permission(self):
        with pytest.raises(ValueError):
            StaticAccessPolicy(["read", "admin"])

    def test_from_settings(self, monkeypatch):
        monkeypatch.setenv("GAMEBIN_PERMISSIONS", '["read"]')
        get_settings.cache_clear()

        policy = StaticAccessPolicy.from_settings(get_settings())

        assert policy.has_permission("read")
        assert not policy.has_permission("delete")


def test_access_policy_is_the_store_protocol():
    assert AccessPolicy is collection_store.AccessPolicy
