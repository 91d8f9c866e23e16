import os
import sys
import time
import signal
import logging
import argparse
import traceback

import lib.shared.config as config
import lib.shared.colors as colors
import lib.shared.serverdata as serverdata
import lib.shared.client as client
import lib.shared.clientmanager as clientmanager
import lib.shared.gameclock as gameclock
import lib.shared.permissions as permissions
import lib.shared.lang as lang
import hostEvent
import hostAPI
import hostinterface
import plugin

Log = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s %(levelname)08s %(name)s %(message)s'
HELP_PREFIX = colors.ColorizeText("[Host]: ", "red")

CONFIG_DEFAULT_PATH = os.path.join(os.getcwd(), "hostCfg.json")
CONFIG_FALLBACK = \
"""{
    "Name":"SkipNight Host",
    "logicDelay":0.05,
    "dayLengthMinutes":45,
    "startHour":12,
    "defaultLanguage":"en",
    "permissionsFile":"permissions.json",
    "smodName":"Console",

    "paths":
    [
        "./"
    ],

    "prologueMessage":"Initialized SkipNight Host",
    "epilogueMessage":"Finishing SkipNight Host",

    "Plugins":
    [
        {
            "path":"plugins.shared.skipnight.skipnight"
        }
    ]
}
"""

# Instance the signal handler talks to while main() runs
ActiveHost = None

def OnSignal(signum, frame):
    if ActiveHost != None and signum in (signal.SIGINT, signal.SIGTERM):
        ActiveHost.Stop()


def BuildArgparser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="SkipNight Host", description="Plugin host running the skip night vote against a simulated day/night clock")
    parser.add_argument("-d", "--debug", action="store_true", help="log at debug level")
    parser.add_argument("-lf", "--logfile", default="", help="log into this file instead of the console")
    parser.add_argument("-c", "--config", default=CONFIG_DEFAULT_PATH, help="host configuration file")
    return parser


def _IsNumber(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class PluginHost:
    '''
    Owns the collaborators (clock, clients, permissions, messages), loads the configured plugins
    and runs the logic loop: advance the clock, dispatch console lines as events, tick the plugins.
    '''

    STATUS_PLUGIN_ERROR = -2
    STATUS_CONFIG_ERROR = -1
    STATUS_INIT = 0
    STATUS_RUNNING = 1
    STATUS_STOPPED = 2
    STATUS_FINISHED = 3

    _STATUS_TEXT = {
        STATUS_PLUGIN_ERROR: "Error at plugin load.",
        STATUS_CONFIG_ERROR: "Error at configuration load.",
        STATUS_INIT: "Initialized Ok.",
        STATUS_RUNNING: "Running.",
        STATUS_STOPPED: "Stopped.",
        STATUS_FINISHED: "Finished.",
    }

    @staticmethod
    def StatusString(statusId) -> str:
        return "Status : " + PluginHost._STATUS_TEXT.get(statusId, str(statusId))

    @staticmethod
    def ValidateConfig(cfg : config.Config) -> bool:
        if cfg == None:
            return False
        problems = []
        delay = cfg.GetValue("logicDelay", None)
        if not _IsNumber(delay) or delay < 0:
            problems.append("logicDelay has to be a non-negative number.")
        dayLength = cfg.GetValue("dayLengthMinutes", None)
        if not _IsNumber(dayLength) or dayLength <= 0:
            problems.append("dayLengthMinutes has to be a positive number.")
        if not isinstance(cfg.GetValue("Plugins", None), list):
            problems.append("Plugins has to be a list.")
        for problem in problems:
            Log.error(problem)
        return len(problems) == 0

    def __init__(self, args, iface : hostinterface.AServerInterface = None, timeFunc = None):
        self._args = args
        self._running = False
        self._finished = False
        self._pluginManager : plugin.PluginManager = None
        self._status = PluginHost.STATUS_INIT

        initStart = time.time()
        Log.info("Initializing SkipNight Host...")
        self._config = config.Config.fromJSON(args.config, CONFIG_FALLBACK)
        if not PluginHost.ValidateConfig(self._config):
            self._status = PluginHost.STATUS_CONFIG_ERROR
            return

        # plugins are imported by dotted path relative to these roots
        for root in self._config.GetValue("paths", []):
            sys.path.append(os.path.normpath(root))

        self._svInterface = iface if iface != None else hostinterface.ConsoleInterface()
        self._clientManager = clientmanager.ClientManager()
        self._clock = gameclock.GameClock(self._config.cfg["dayLengthMinutes"], self._config.GetValue("startHour", 12), timeFunc = timeFunc)
        self._permissions = permissions.PermissionManager.FromFile(self._config.GetValue("permissionsFile", "permissions.json"))
        self._messages = lang.MessageCatalog(self._config.GetValue("defaultLanguage", lang.DEFAULT_LANGUAGE))
        self._serverData = serverdata.ServerData(self._BuildAPI(), self._svInterface, self._clock,
                                                 self._permissions, self._messages, args)

        self._pluginManager = plugin.PluginManager()
        if not self._pluginManager.Initialize(self._config.cfg["Plugins"], self._serverData):
            self._status = PluginHost.STATUS_PLUGIN_ERROR
            return
        self._logicDelayS = self._config.cfg["logicDelay"]
        Log.info("SkipNight Host ready after %.2f seconds.", time.time() - initStart)

    def _BuildAPI(self) -> hostAPI.API:
        api = hostAPI.API()
        api.GetClientCount  = self._clientManager.GetClientCount
        api.GetClientById   = self._clientManager.GetClientById
        api.GetClientByName = self._clientManager.GetClientByName
        api.GetAllClients   = self._clientManager.GetAllClients
        api.GetServerVar    = self.API_GetServerVar
        api.SetServerVar    = self.API_SetServerVar
        api.GetPlugin       = self.API_GetPlugin
        return api

    def GetStatus(self) -> int:
        return self._status

    def GetServerData(self) -> serverdata.ServerData:
        return self._serverData

    def GetClock(self) -> gameclock.GameClock:
        return self._clock

    def _Announce(self, key : str):
        self._svInterface.SvSay(colors.ColorizeText(" %s." % self._config.cfg[key], "red"))

    def Start(self) -> bool:
        if not self._svInterface.Open():
            Log.error("Server interface could not be opened.")
            return False
        if not self._pluginManager.Start():
            self._status = PluginHost.STATUS_PLUGIN_ERROR
            return False
        self._pluginManager.Event(hostEvent.Event(hostEvent.HOST_EVENT_TYPE_INIT, {}))
        self._running = True
        self._status = PluginHost.STATUS_RUNNING
        self._Announce("prologueMessage")
        return True

    def Run(self):
        if not self.Start():
            return
        try:
            while self._running:
                tickStart = time.time()
                self.Loop()
                time.sleep(max(0, self._logicDelayS - (time.time() - tickStart)))
        except KeyboardInterrupt:
            Log.info("Interrupted from the keyboard.")
            self.Stop()

    def Stop(self):
        if not self._running:
            return
        Log.info("Stopping SkipNight Host...")
        self._Announce("epilogueMessage")
        self._pluginManager.Event(hostEvent.Event(hostEvent.HOST_EVENT_TYPE_SHUTDOWN, {}))
        self._svInterface.Close()
        self._running = False
        self._status = PluginHost.STATUS_STOPPED

    def Finish(self):
        if self._finished:
            return
        self.Stop()
        if self._pluginManager != None:
            self._pluginManager.Finish()
        self._finished = True
        self._status = PluginHost.STATUS_FINISHED
        Log.info("SkipNight Host finished.")

    def Loop(self):
        self._clock.Update()
        for line in self._svInterface.GetMessages():
            self._ParseMessage(line)
        self._pluginManager.Loop()

    def _ParseMessage(self, line : str):
        try:
            self._DispatchLine(line)
        except ValueError as e:
            Log.warning("Malformed console line \"%s\": %s", line, str(e))

    def _DispatchLine(self, line : str):
        words = line.split()
        if len(words) == 0:
            return
        command = words[0].lower()
        if command == "connect" and len(words) >= 4:
            self.OnClientConnect(int(words[1]), words[2], " ".join(words[3:]))
        elif command == "disconnect" and len(words) >= 2:
            self.OnClientDisconnect(int(words[1]))
        elif command == "say" and len(words) >= 3:
            self.OnChatMessage(int(words[1]), line.split(None, 2)[2], line)
        elif command == "smsay" and len(words) >= 2:
            self.OnSmsay(line.split(None, 1)[1])
        elif command == "time" and len(words) >= 2:
            self.OnSetTime(float(words[1]))
        elif command == "quit":
            self.Stop()
        else:
            Log.warning("Unrecognized console line: %s", line)

    def OnClientConnect(self, id : int, ip : str, name : str):
        newcomer = client.Client(id, name, ip)
        known = self._clientManager.GetClientById(id)
        if known != None:
            if known.GetIp() == newcomer.GetIp():
                known.SetName(name)
                return
            # slot reused by another player, the previous occupant is gone
            Log.info("Client slot %d taken over by %s, dropping %s", id, newcomer.GetIp(), str(known))
            self._pluginManager.Event(hostEvent.ClientDisconnectEvent(known, {}))
            self._clientManager.RemoveClient(known)
        self._clientManager.AddClient(newcomer)
        Log.info("Client connected %s", str(newcomer))
        self._pluginManager.Event(hostEvent.ClientConnectEvent(newcomer, {}))

    def OnClientDisconnect(self, id : int):
        leaving = self._clientManager.GetClientById(id)
        if leaving == None:
            Log.warning("Disconnect for unknown client id %d", id)
            return
        if self._clientManager.GetClientCount() == 1:
            self._pluginManager.Event(hostEvent.ServerEmptyEvent())
        self._pluginManager.Event(hostEvent.ClientDisconnectEvent(leaving, {}))
        self._clientManager.RemoveClient(leaving)
        Log.info("Client disconnected %s", str(leaving))

    def OnChatMessage(self, senderId : int, message : str, messageRaw : str):
        sender = self._clientManager.GetClientById(senderId)
        if sender == None:
            Log.warning("Chat message from unknown client id %d", senderId)
            return
        Log.debug("Chat message %s, from client %s", message, str(sender))
        words = message[1:].split() if message.startswith("!") else []
        if len(words) > 0 and words[0].lower() == "help":
            self.HandleChatHelp(sender, words)
            return
        self._pluginManager.Event(hostEvent.MessageEvent(sender, message, {"messageRaw" : messageRaw}))

    def OnSmsay(self, message : str):
        words = message.lower().split()
        if len(words) > 0 and words[0] == "!help":
            self.HandleSmodHelp(words)
            return
        self._pluginManager.Event(hostEvent.SmodSayEvent(self._config.GetValue("smodName", "Console"), 0, "127.0.0.1", message))

    def OnSetTime(self, hour : float):
        previous = self._clock.CurrentHour()
        try:
            self._clock.SetHour(hour)
        except ValueError as e:
            Log.warning("Clock not changed: %s", str(e))
            return
        self._pluginManager.Event(hostEvent.TimeChangedEvent(hour, previous))

    def _DescribeCommands(self, serverVar : str, words : list, heading : str, kind : str) -> str:
        """Help text for "!help" (alias list) or "!help <command>" (that command's line)"""
        registered = self._serverData.GetServerVar(serverVar) or []
        if len(words) < 2:
            return heading + ", ".join([alias for alias, _ in registered])
        wanted = words[1].lower()
        for alias, helpText in registered:
            if alias.lower() == wanted:
                return helpText
        return f"Couldn't find {kind} command: {wanted}"

    def HandleChatHelp(self, sender : client.Client, words : list) -> bool:
        text = self._DescribeCommands("registeredCommands", words, "Available commands (Say !help <command> for details): ", "chat")
        self._svInterface.SvTell(sender.GetId(), HELP_PREFIX + text)
        return True

    def HandleSmodHelp(self, words : list) -> bool:
        self._svInterface.SmSay(self._DescribeCommands("registeredSmodCommands", words, "Smod commands: ", "smod"))
        return True

    # API export functions
    def API_GetServerVar(self, var):
        return self._serverData.GetServerVar(var)

    def API_SetServerVar(self, var, val):
        self._serverData.SetServerVar(var, val)

    def API_GetPlugin(self, name) -> plugin.Plugin:
        return self._pluginManager.GetPlugin(name)


def InitLogger(args):
    level = logging.DEBUG if args.debug else logging.INFO
    if args.debug:
        print("DEBUGGING MODE.")
    if not args.logfile:
        logging.basicConfig(level = level, format = LOG_FORMAT)
        return
    # keep earlier runs, a second run with the same name gets a timestamp suffix
    if os.path.exists(args.logfile):
        args.logfile = args.logfile + '-' + time.strftime("%m%d%Y_%H%M%S", time.localtime())
    print(f"Logging into file {args.logfile}")
    logging.basicConfig(filename = args.logfile, filemode = 'a', level = level, format = LOG_FORMAT)


def main(argv = None):
    global ActiveHost
    args = BuildArgparser().parse_args(argv)
    InitLogger(args)
    signal.signal(signal.SIGINT, OnSignal)
    signal.signal(signal.SIGTERM, OnSignal)
    ActiveHost = PluginHost(args)
    status = ActiveHost.GetStatus()
    if status != PluginHost.STATUS_INIT:
        Log.error("SkipNight Host failed to initialize. %s", PluginHost.StatusString(status))
    else:
        try:
            ActiveHost.Run()
        except Exception as e:
            Log.error(f"Host loop stopped by {type(e).__name__}: {e}\n{traceback.format_exc()}")
        ActiveHost.Finish()
    ActiveHost = None


if __name__ == "__main__":
    main()
