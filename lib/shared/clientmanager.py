import threading;
import lib.shared.client as client;

class ClientManager():
    '''
    Connected clients keyed by slot id, safe to query from the console reader thread.
    '''
    def __init__(self):
        self._lock = threading.Lock();
        self._byId = dict[int, client.Client]();

    def GetClientCount(self) -> int:
        with self._lock:
            return len(self._byId);

    def GetAllClients(self) -> list[client.Client]:
        with self._lock:
            return list(self._byId.values());

    def GetClientById(self, id : int) -> client.Client:
        with self._lock:
            return self._byId.get(id, None);

    def GetClientByName(self, name : str) -> client.Client:
        with self._lock:
            matches = [cl for cl in self._byId.values() if cl.GetName() == name];
        return matches[0] if len(matches) > 0 else None;

    # A slot holds one client, a second connect on the same id is refused.
    def AddClient(self, cl : client.Client) -> bool:
        with self._lock:
            if cl.GetId() in self._byId:
                return False;
            self._byId[cl.GetId()] = cl;
            return True;

    def RemoveClient(self, cl : client.Client):
        self.RemoveClientById(cl.GetId());

    def RemoveClientById(self, id : int) -> client.Client:
        with self._lock:
            return self._byId.pop(id, None);
