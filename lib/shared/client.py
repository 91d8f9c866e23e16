import logging
import threading;
import time;

log = logging.getLogger(__name__)

class Client(object):
    '''
    One connected player. The address may carry a port ("1.2.3.4:29070"), the ip is kept without it.
    '''
    def __init__(self, id : int, name : str, address : str):
        self._lock = threading.Lock();
        self._id = id;
        self._name = name;
        self._address = address;
        self._ip = address.rsplit(":", 1)[0];
        self._connectedAt = time.time();

    def GetId(self) -> int:
        return self._id;

    def GetName(self) -> str:
        with self._lock:
            return self._name;

    def SetName(self, name : str):
        with self._lock:
            if name == self._name:
                return;
            old, self._name = self._name, name;
        log.info(f"Client {self._id} renamed from {old} to {name}")

    def GetAddress(self) -> str:
        return self._address

    def GetIp(self) -> str:
        return self._ip;

    def GetConnectedAt(self) -> float:
        return self._connectedAt;

    # Key used for permission and group lookups, stable across reconnects unlike the slot id.
    def GetUserId(self) -> str:
        return self._ip;

    def __repr__(self):
        return f"{self._name} (ID : {self._id}) (IP : {self._ip})";
