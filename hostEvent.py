import lib.shared.client as client

# Event types the host delivers to OnEvent
HOST_EVENT_TYPE_MESSAGE             = 1 # MessageEvent, a player chat line
HOST_EVENT_TYPE_INIT                = 2 # plain Event, every plugin is loaded and started
HOST_EVENT_TYPE_SHUTDOWN            = 3 # plain Event, the host is stopping
HOST_EVENT_TYPE_CLIENTCONNECT       = 4 # ClientConnectEvent, raised after the client is registered
HOST_EVENT_TYPE_CLIENTDISCONNECT    = 5 # ClientDisconnectEvent, the client is unregistered after every plugin saw it
HOST_EVENT_TYPE_SMSAY               = 6 # SmodSayEvent, an admin line
HOST_EVENT_TYPE_SERVER_EMPTY        = 7 # ServerEmptyEvent, raised before the last client is unregistered
HOST_EVENT_TYPE_TIME_CHANGED        = 8 # TimeChangedEvent, the clock was set from the console

class Event():
    def __init__(self, type : int, data : dict = None):
        self.type = type
        self.data = data if data != None else {}

    def __repr__(self):
        return "%s(type=%d)" % (type(self).__name__, self.type)

class MessageEvent(Event):
    def __init__(self, cl : client.Client, message : str, data : dict = None):
        super().__init__(HOST_EVENT_TYPE_MESSAGE, data)
        self.client = cl
        self.message = message

class ClientConnectEvent(Event):
    def __init__(self, cl : client.Client, data : dict = None):
        super().__init__(HOST_EVENT_TYPE_CLIENTCONNECT, data)
        self.client = cl

class ClientDisconnectEvent(Event):
    REASON_NATURAL = 0
    REASON_HOST_SHUTDOWN = 1

    def __init__(self, cl : client.Client, data : dict = None, reason : int = REASON_NATURAL):
        super().__init__(HOST_EVENT_TYPE_CLIENTDISCONNECT, data)
        self.client = cl
        self.reason = reason

class SmodSayEvent(Event):
    def __init__(self, playerName : str, smodID : int, adminIP : str, message : str):
        super().__init__(HOST_EVENT_TYPE_SMSAY)
        self.playerName = playerName
        self.smodID = smodID
        self.adminIP = adminIP
        self.message = message

class ServerEmptyEvent(Event):
    def __init__(self, data : dict = None):
        super().__init__(HOST_EVENT_TYPE_SERVER_EMPTY, data)

class TimeChangedEvent(Event):
    def __init__(self, hour : float, oldHour : float):
        super().__init__(HOST_EVENT_TYPE_TIME_CHANGED)
        self.hour = hour
        self.oldHour = oldHour
