import sys
import queue
import logging
import threading
import lib.shared.colors as colors

Log = logging.getLogger(__name__)

IFACE_TYPE_INVALID = -1
IFACE_TYPE_CONSOLE = 0

class IServerInterface():
    '''
    What the host and its plugins can do to the game server: talk to everybody, to one player,
    or to the admins, and collect the lines the server produced since the last tick.
    '''
    def Open(self) -> bool:
        raise NotImplementedError()

    def Close(self):
        raise NotImplementedError()

    def IsOpened(self) -> bool:
        raise NotImplementedError()

    def SvSay(self, text : str) -> str:
        raise NotImplementedError()

    def Say(self, text : str) -> str:
        raise NotImplementedError()

    def SvTell(self, pid : int, text : str) -> str:
        raise NotImplementedError()

    def SmSay(self, msg : str) -> str:
        raise NotImplementedError()

    def GetMessages(self) -> list[str]:
        raise NotImplementedError()

    def GetType(self) -> int:
        return IFACE_TYPE_INVALID


class AServerInterface(IServerInterface):
    '''Inbound lines are pushed from any thread and drained by the host loop.'''

    def __init__(self):
        self._inbox = queue.Queue()
        self._isOpened = False

    def Open(self) -> bool:
        self._isOpened = True
        return True

    def Close(self):
        self._isOpened = False

    def IsOpened(self) -> bool:
        return self._isOpened

    def PushMessage(self, line : str):
        self._inbox.put(line)

    def GetMessages(self) -> list[str]:
        drained = []
        while True:
            try:
                drained.append(self._inbox.get_nowait())
            except queue.Empty:
                return drained


class ConsoleInterface(AServerInterface):
    '''
    Local stand-in for a game server: output goes to the log, input lines are read from a text stream.

    Input protocol, one command per line:
        connect <id> <ip> <name>
        disconnect <id>
        say <id> <text>
        smsay <text>
        time <hour>
        quit
    '''
    def __init__(self, inputStream = None, echo : bool = True):
        super().__init__()
        self._input = inputStream if inputStream != None else sys.stdin
        self._echo = echo
        self._stopEvent = threading.Event()
        self._readerThread = None
        self.sent = []

    def GetType(self) -> int:
        return IFACE_TYPE_CONSOLE

    def Open(self) -> bool:
        if self._isOpened:
            return True
        self._stopEvent.clear()
        self._readerThread = threading.Thread(target=self._ReadInput, name="console-reader", daemon=True)
        self._readerThread.start()
        Log.info("Console interface opened.")
        return super().Open()

    def Close(self):
        self._stopEvent.set()
        super().Close()

    def _ReadInput(self):
        for line in iter(self._input.readline, ""):
            if self._stopEvent.is_set():
                return
            line = line.strip()
            if line:
                self.PushMessage(line)
        # end of input, behave as if the operator asked to quit
        self.PushMessage("quit")

    def _Output(self, channel : str, text : str) -> str:
        self.sent.append((channel, text))
        plain = colors.StripColorCodes(text)
        if self._echo:
            Log.info("[%s] %s", channel, plain)
        return plain

    def SvSay(self, text : str) -> str:
        return self._Output("svsay", text)

    def Say(self, text : str) -> str:
        return self._Output("say", text)

    def SvTell(self, pid : int, text : str) -> str:
        return self._Output("svtell %d" % pid, text)

    def SmSay(self, msg : str) -> str:
        return self._Output("smsay", msg)
