import logging;
import lib.shared.config as config;

Log = logging.getLogger(__name__);

DEFAULT_GROUP = "default";

PERMISSIONS_FALLBACK = \
"""{
    "groups":
    {
        "default":
        {
            "permissions": []
        },
        "admin":
        {
            "permissions": []
        }
    },
    "users":
    {
    }
}
"""

class PermissionManager():
    '''
    Groups and per-user grants, stored as a JSON document.

    Users are keyed by a string id (the client ip). Every user implicitly belongs to the "default" group.
    '''
    def __init__(self, cfg : config.Config = None):
        if cfg == None:
            cfg = config.Config.FromJSONString(PERMISSIONS_FALLBACK);
        self._config = cfg;
        self._registered = set();
        self._config.cfg.setdefault("groups", {});
        self._config.cfg.setdefault("users", {});
        self._groups().setdefault(DEFAULT_GROUP, {"permissions" : []});

    @classmethod
    def FromFile(cls, path : str):
        cfg = config.Config.fromJSON(path, PERMISSIONS_FALLBACK);
        if cfg == None:
            Log.error("Unable to load permissions from %s, using empty permission set" % path);
            return cls();
        return cls(cfg);

    def _groups(self) -> dict:
        return self._config.cfg["groups"];

    def _users(self) -> dict:
        return self._config.cfg["users"];

    def _user(self, userId : str, create : bool = False) -> dict:
        users = self._users();
        userId = str(userId);
        if userId not in users:
            if not create:
                return None;
            users[userId] = {"groups" : [], "permissions" : []};
        return users[userId];

    def Save(self) -> bool:
        return self._config.Save();

    def RegisterPermission(self, perm : str, owner : str = None):
        perm = perm.lower();
        if perm not in self._registered:
            self._registered.add(perm);
            Log.debug("Registered permission %s for %s" % (perm, str(owner)));

    def PermissionExists(self, perm : str) -> bool:
        return perm.lower() in self._registered;

    def GroupExists(self, group : str) -> bool:
        return group.lower() in self._groups();

    def CreateGroup(self, group : str) -> bool:
        group = group.lower();
        if group in self._groups():
            return False;
        self._groups()[group] = {"permissions" : []};
        return True;

    def GrantGroupPermission(self, group : str, perm : str):
        group = group.lower();
        if group not in self._groups():
            raise ValueError("Unknown group %s" % group);
        perms = self._groups()[group].setdefault("permissions", []);
        if perm.lower() not in perms:
            perms.append(perm.lower());

    def RevokeGroupPermission(self, group : str, perm : str):
        group = group.lower();
        if group in self._groups():
            perms = self._groups()[group].get("permissions", []);
            if perm.lower() in perms:
                perms.remove(perm.lower());

    def GrantUserPermission(self, userId : str, perm : str):
        perms = self._user(userId, create = True)["permissions"];
        if perm.lower() not in perms:
            perms.append(perm.lower());

    def RevokeUserPermission(self, userId : str, perm : str):
        user = self._user(userId);
        if user != None and perm.lower() in user["permissions"]:
            user["permissions"].remove(perm.lower());

    def AddUserToGroup(self, userId : str, group : str):
        group = group.lower();
        if group not in self._groups():
            raise ValueError("Unknown group %s" % group);
        groups = self._user(userId, create = True)["groups"];
        if group not in groups:
            groups.append(group);

    def RemoveUserFromGroup(self, userId : str, group : str):
        user = self._user(userId);
        if user != None and group.lower() in user["groups"]:
            user["groups"].remove(group.lower());

    def GetUserGroups(self, userId : str) -> list[str]:
        user = self._user(userId);
        groups = [DEFAULT_GROUP];
        if user != None:
            groups.extend([g for g in user.get("groups", []) if g != DEFAULT_GROUP]);
        return groups;

    def IsInGroup(self, userId : str, group : str) -> bool:
        return group.lower() in self.GetUserGroups(userId);

    def HasPermission(self, userId : str, perm : str) -> bool:
        perm = perm.lower();
        user = self._user(userId);
        if user != None and perm in user.get("permissions", []):
            return True;
        for group in self.GetUserGroups(userId):
            if group in self._groups() and perm in self._groups()[group].get("permissions", []):
                return True;
        return False;
