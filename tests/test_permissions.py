import json

import pytest

from lib.shared.permissions import DEFAULT_GROUP, PermissionManager


def test_everyone_is_in_default_group():
    perms = PermissionManager()
    assert perms.GetUserGroups("1.2.3.4") == [DEFAULT_GROUP]
    assert perms.IsInGroup("1.2.3.4", "default")
    assert perms.IsInGroup("1.2.3.4", "admin") is False


def test_default_group_grant_applies_to_unknown_users():
    perms = PermissionManager()
    perms.GrantGroupPermission("default", "SkipNight.Use")
    assert perms.HasPermission("9.9.9.9", "skipnight.use")


def test_user_grant_and_revoke():
    perms = PermissionManager()
    perms.GrantUserPermission("1.1.1.1", "skipnight.admin")
    assert perms.HasPermission("1.1.1.1", "skipnight.admin")
    assert perms.HasPermission("2.2.2.2", "skipnight.admin") is False
    perms.RevokeUserPermission("1.1.1.1", "skipnight.admin")
    assert perms.HasPermission("1.1.1.1", "skipnight.admin") is False


def test_group_membership_grants_permission():
    perms = PermissionManager()
    perms.CreateGroup("VipPlus")
    perms.GrantGroupPermission("vipplus", "skipnight.use")
    perms.AddUserToGroup("1.1.1.1", "vipplus")

    assert perms.IsInGroup("1.1.1.1", "VIPPLUS")
    assert perms.HasPermission("1.1.1.1", "skipnight.use")

    perms.RemoveUserFromGroup("1.1.1.1", "vipplus")
    assert perms.IsInGroup("1.1.1.1", "vipplus") is False


def test_unknown_group_raises():
    perms = PermissionManager()
    with pytest.raises(ValueError):
        perms.AddUserToGroup("1.1.1.1", "nosuchgroup")
    with pytest.raises(ValueError):
        perms.GrantGroupPermission("nosuchgroup", "x")


def test_create_group_twice():
    perms = PermissionManager()
    assert perms.CreateGroup("mods") is True
    assert perms.CreateGroup("mods") is False
    assert perms.GroupExists("MODS")


def test_registered_permissions():
    perms = PermissionManager()
    perms.RegisterPermission("SkipNight.Use", "SkipNight")
    assert perms.PermissionExists("skipnight.use")
    assert perms.PermissionExists("skipnight.admin") is False


def test_file_is_created_and_saved(tmp_path):
    path = tmp_path / "permissions.json"
    perms = PermissionManager.FromFile(str(path))
    assert path.exists()

    perms.AddUserToGroup("1.1.1.1", "admin")
    assert perms.Save() is True

    data = json.loads(path.read_text())
    assert data["users"]["1.1.1.1"]["groups"] == ["admin"]
    assert PermissionManager.FromFile(str(path)).IsInGroup("1.1.1.1", "admin")
