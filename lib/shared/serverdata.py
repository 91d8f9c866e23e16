import threading
import hostAPI;
import hostinterface;
import lib.shared.gameclock as gameclock;
import lib.shared.permissions as permissions;
import lib.shared.lang as lang;

class ServerData():
    '''
    Everything a plugin gets at OnInitialize: the host API, the server interface, the collaborators,
    the parsed command line, and a small shared variable store plugins use to see each other's state
    (registered commands for !help, votes in progress).
    '''
    def __init__(self, API : hostAPI.API, iface : hostinterface.IServerInterface, clock : gameclock.GameClock,
                 perms : permissions.PermissionManager, messages : lang.MessageCatalog, args):
        self.API = API;
        self.interface = iface;
        self.clock = clock;
        self.permissions = perms;
        self.lang = messages;
        self.args = args;
        self._varsLock = threading.Lock();
        self._vars = dict[str, object]();

    def GetServerVar(self, var : str) -> object:
        with self._varsLock:
            return self._vars.get(var, None);

    def SetServerVar(self, var : str, val : object):
        with self._varsLock:
            self._vars[var] = val;

    def UnsetServerVar(self, var : str) -> bool:
        with self._varsLock:
            if var not in self._vars:
                return False;
            del self._vars[var];
            return True;

    def __repr__(self):
        return "ServerData(vars=%s)" % ", ".join(self._vars.keys());
