# Function table the host fills in and hands to plugins through ServerData.API
class API():
    def __init__(self):
        self.GetClientCount = None
        self.GetClientById = None
        self.GetClientByName = None
        self.GetAllClients = None
        self.GetServerVar = None
        self.SetServerVar = None
        self.GetPlugin = None
