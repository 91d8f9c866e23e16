"""
SkipNight Plugin - Timed player vote to skip the night

When the in-game clock reaches the configured hour a vote opens for the players currently
connected. Players type !skipnight to vote yes, members of the VIP group count extra.
The vote passes as soon as the weighted tally reaches the required percentage of the players
present at the start, or fails when the vote time runs out.
- !skipnight - Vote to skip the night

Admin commands (chat with the admin permission, or SMOD smsay):
    !skipnight set timevote <seconds> - Change the vote duration
    !skipnight set requiredpercentage <1-100> - Change the required percentage
    !skipnight reload - Reload the configuration file
"""

import os
import json
import logging
from math import floor, isfinite
from time import time

import hostEvent
import lib.shared.serverdata as serverdata
import lib.shared.config as config
import lib.shared.client as client
from lib.shared.timeout import Scheduler
from lib.shared.votesession import VoteSession, VoteOutcome, BallotResult, SESSION_STATE_IDLE

Log = logging.getLogger(__name__)

PLUGIN_NAME = "SkipNight"
DEFAULT_PREFIX = "^3[Skip Night]^7 "

CONFIG_DEFAULT_PATH = os.path.join(os.path.dirname(__file__), "skipnightCfg.json")
LANG_OVERRIDES_PATH = os.path.join(os.path.dirname(__file__), "skipnightLang.json")

CONFIG_FALLBACK = """{
    "enabled": true,
    "permVoteDay": "skipnight.use",
    "permAdmin": "skipnight.admin",
    "voteStartHour": 19,
    "voteToHour": 7,
    "advanceDay": true,
    "voteDuration": 60,
    "requiredPercentage": 31,
    "minPopulation": 1,
    "groupNameVIP": "vipplus",
    "amountVIP": 3,
    "periodicQuorumCheck": true,
    "notifyNoActiveVote": true,
    "debugMode": false,
    "silentMode": false,
    "messagePrefix": "^3[Skip Night]^7 "
}"""

MESSAGES_DEFAULT = {
    "VoteStarted": "A vote to skip the night has started! You have {0} seconds to vote. Type ^2!skipnight^7 to vote. {1} votes are needed to pass.",
    "VoteCount": "Your vote made the total until now: {0} votes out of {1} needed.",
    "VotePassed": "^2You want daytime!^7 There were {0} votes out of {1} needed. Skipping to daytime.",
    "VoteFailed": "^1The vote failed.^7 {0} votes out of {1} needed. The night will continue.",
    "NoPermission": "^1You do not have permission to use this command.",
    "NoRunningVote": "There is currently no vote active.",
    "AlreadyVoted": "You have already voted.",
    "ConfigReloaded": "Configuration reloaded successfully.",
    "ConfigReloadFailed": "^1Configuration could not be reloaded, keeping the current values.",
    "InvalidCommand": "Invalid command usage. Use !skipnight set timevote <seconds>, !skipnight set requiredpercentage <percentage> or !skipnight reload.",
    "VoteDurationSet": "Vote duration set to {0} seconds.",
    "RequiredPercentageSet": "Required vote percentage set to {0}%.",
    "InvalidPercentage": "^1Invalid percentage. Please enter a value between 1 and 100.",
    "InvalidDuration": "^1Invalid vote duration. Please enter a number of seconds greater than 0.",
}

PluginInstance = None


def _IsNumber(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _IsInteger(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


# key -> accepted values; anything else is replaced by the default
CONFIG_CHECKS = {
    "requiredPercentage": lambda v: _IsInteger(v) and 1 <= v <= 100,
    "voteDuration": lambda v: _IsNumber(v) and v > 0,
    "minPopulation": lambda v: _IsInteger(v) and v >= 1,
    "voteStartHour": lambda v: _IsInteger(v) and 0 <= v < 24,
    "voteToHour": lambda v: _IsNumber(v) and 0 <= v < 24,
    "amountVIP": lambda v: _IsInteger(v) and v >= 1,
}


def ValidateConfig(cfg : config.Config) -> bool:
    """Replace out-of-range values with defaults, returns False if anything was replaced"""
    defaults = json.loads(CONFIG_FALLBACK)
    valid = True
    for key, check in CONFIG_CHECKS.items():
        value = cfg.cfg.get(key, defaults[key])
        if not check(value):
            Log.error(f"Invalid value {value!r} for '{key}', using default {defaults[key]!r}")
            cfg.cfg[key] = defaults[key]
            valid = False
    return valid


def LoadConfig(path : str = CONFIG_DEFAULT_PATH) -> config.Config:
    cfg = config.Config.fromJSON(path, CONFIG_FALLBACK)
    if cfg is None:
        cfg = config.Config.FromJSONString(CONFIG_FALLBACK)
    cfg.UpgradeFrom(CONFIG_FALLBACK)
    ValidateConfig(cfg)
    return cfg


def _FindHandler(table : dict, command : str):
    """Handler registered under the alias, commands are matched without the leading !"""
    command = command.lstrip("!").lower()
    for aliases, (_, handler) in table.items():
        if command in aliases:
            return handler
    return None


class SkipnightPlugin:
    def __init__(self, serverData: serverdata.ServerData, cfg: config.Config, timeFunc=None):
        self._serverData = serverData
        self.config = cfg
        self._ApplySettings()

        self._scheduler = Scheduler(timeFunc)
        self._session = VoteSession(self.config, self._scheduler, self._OnVoteClosed)
        # Set once a vote opened during the current start hour, cleared when the clock leaves it
        self._voteHeldInWindow = False

        self._commandList = {
            ("skipnight", "sn"): ("!skipnight - Vote to skip the night", self.HandleSkipNight),
        }
        self._smodCommandList = {
            ("skipnight", "sn"): ("!skipnight <set timevote <seconds> | set requiredpercentage <1-100> | reload> - Configure the skip night vote", self.HandleSmodSkipNight),
        }

    def _ApplySettings(self):
        self._messagePrefix = self._Setting("messagePrefix", DEFAULT_PREFIX)
        self._runtimeEnabled = self._Setting("enabled", True)

    def _Setting(self, key: str, default=None):
        return self.config.cfg.get(key, default)

    def GetSession(self) -> VoteSession:
        return self._session

    # Output

    def _Render(self, key: str, *args, userId=None) -> str:
        return self._serverData.lang.Format(key, PLUGIN_NAME, *args, userId=userId)

    def _Quiet(self) -> bool:
        return self._Setting("silentMode", False)

    def Broadcast(self, key: str, *args):
        """Message for everyone, nothing in silent mode"""
        if not self._Quiet():
            self._serverData.interface.SvSay(self._messagePrefix + self._Render(key, *args))

    def Tell(self, eventClient: client.Client, key: str, *args):
        """Private message in the player's language, nothing in silent mode"""
        if not self._Quiet():
            text = self._Render(key, *args, userId=eventClient.GetUserId())
            self._serverData.interface.SvTell(eventClient.GetId(), self._messagePrefix + text)

    def TellSmod(self, key: str, *args):
        self._serverData.interface.SmSay(self._messagePrefix + self._Render(key, *args))

    # Shared "votesInProgress" list, lets other vote plugins know a vote is running

    def _VotesInProgress(self) -> list:
        return self._serverData.GetServerVar("votesInProgress") or []

    def _RegisterVote(self):
        running = self._VotesInProgress()
        if PLUGIN_NAME not in running:
            self._serverData.SetServerVar("votesInProgress", running + [PLUGIN_NAME])

    def _UnregisterVote(self):
        running = self._VotesInProgress()
        if PLUGIN_NAME not in running:
            return
        remaining = [name for name in running if name != PLUGIN_NAME]
        if len(remaining) == 0:
            self._serverData.UnsetServerVar("votesInProgress")
        else:
            self._serverData.SetServerVar("votesInProgress", remaining)

    # Vote lifecycle

    def _IsVoteHour(self) -> bool:
        return floor(self._serverData.clock.CurrentHour()) == self._Setting("voteStartHour", 19)

    def _TryStartVote(self) -> bool:
        population = self._serverData.API.GetClientCount()
        if not self._session.TryOpen(population, self._Setting("minPopulation", 1)):
            return False

        self._voteHeldInWindow = True
        self._RegisterVote()
        if self._Setting("debugMode", False):
            Log.debug(f"Skipnight vote started with {population} players")
        self.Broadcast("VoteStarted", self._Setting("voteDuration", 60), self._session.GetRequired())
        return True

    def _CloseIfQuorum(self):
        if self._session.IsOpen() and self._session.CheckQuorum():
            self._session.Close()

    def _OnVoteClosed(self, outcome: VoteOutcome):
        """Session close listener, runs once per real close"""
        self._UnregisterVote()
        if self._Setting("debugMode", False):
            Log.debug(f"Skipnight vote ended, {outcome.tally} yes votes, {outcome.required} required")
        try:
            if outcome.passed:
                self.Broadcast("VotePassed", outcome.tally, outcome.required)
                self._serverData.clock.AdvanceToDay(self._Setting("voteToHour", 7), self._Setting("advanceDay", True))
            else:
                self.Broadcast("VoteFailed", outcome.tally, outcome.required)
        finally:
            self._session.Reset()

    # Admin sub-commands, shared by chat and smsay; reply(key, *args) answers the caller

    def ReloadConfig(self) -> bool:
        """Re-read the config file in place, the open session sees the new percentage right away"""
        if not self.config.Reload():
            return False
        self.config.UpgradeFrom(CONFIG_FALLBACK)
        ValidateConfig(self.config)
        self._ApplySettings()
        Log.info("SkipNight configuration reloaded")
        return True

    def _SetVoteDuration(self, value: str, reply):
        try:
            seconds = float(value)
        except ValueError:
            seconds = 0
        if not (seconds > 0 and isfinite(seconds)):
            reply("InvalidDuration")
            return
        if seconds.is_integer():
            seconds = int(seconds)
        self.config.SetValue("voteDuration", seconds)
        self.config.Save()
        Log.info(f"SkipNight vote duration set to {seconds} seconds")
        reply("VoteDurationSet", seconds)

    def _SetRequiredPercentage(self, value: str, reply):
        try:
            percentage = int(value)
        except ValueError:
            percentage = 0
        if not 1 <= percentage <= 100:
            reply("InvalidPercentage")
            return
        self.config.SetValue("requiredPercentage", percentage)
        self.config.Save()
        Log.info(f"SkipNight required percentage set to {percentage}%")
        reply("RequiredPercentageSet", percentage)
        # a lower percentage can satisfy quorum for the running vote
        if self._Setting("periodicQuorumCheck", True):
            self._CloseIfQuorum()

    def _HandleAdminCommand(self, cmdArgs: list, reply) -> bool:
        """cmdArgs starts after the command name: ["set", "timevote", "90"] or ["reload"]"""
        subcommand = cmdArgs[0].lower()
        if subcommand == "reload":
            reply("ConfigReloaded" if self.ReloadConfig() else "ConfigReloadFailed")
            return True

        setters = {
            "timevote": self._SetVoteDuration,
            "requiredpercentage": self._SetRequiredPercentage,
        }
        if subcommand != "set" or len(cmdArgs) < 3 or cmdArgs[1].lower() not in setters:
            reply("InvalidCommand")
            return True
        setters[cmdArgs[1].lower()](cmdArgs[2], reply)
        return True

    # Chat and SMOD entry points

    def HandleSkipNight(self, eventClient: client.Client, cmdArgs: list) -> bool:
        """Handle !skipnight, a ballot without arguments, an admin command with them"""
        userId = eventClient.GetUserId()
        permissions = self._serverData.permissions
        wantsAdmin = len(cmdArgs) > 1
        needed = self._Setting("permAdmin", "skipnight.admin") if wantsAdmin else self._Setting("permVoteDay", "skipnight.use")
        if not permissions.HasPermission(userId, needed):
            self.Tell(eventClient, "NoPermission")
            return True
        if wantsAdmin:
            return self._HandleAdminCommand(cmdArgs[1:], lambda key, *args: self.Tell(eventClient, key, *args))

        isWeighted = permissions.IsInGroup(userId, self._Setting("groupNameVIP", "vipplus"))
        result = self._session.CastBallot(eventClient.GetId(), isWeighted)
        if result.IsAccepted():
            self.Tell(eventClient, "VoteCount", result.tally, result.required)
            self._CloseIfQuorum()
        elif result.code == BallotResult.ALREADY_VOTED:
            self.Tell(eventClient, "AlreadyVoted")
        elif self._Setting("notifyNoActiveVote", True):
            self.Tell(eventClient, "NoRunningVote")
        return True

    def HandleSmodSkipNight(self, playerName: str, smodID: int, adminIP: str, cmdArgs: list) -> bool:
        if len(cmdArgs) < 2:
            self.TellSmod("InvalidCommand")
            return True
        Log.info(f"SkipNight admin command '{' '.join(cmdArgs[1:])}' from {playerName} (SMOD {smodID})")
        return self._HandleAdminCommand(cmdArgs[1:], self.TellSmod)

    def OnChatMessage(self, eventClient: client.Client, message: str) -> bool:
        """Returns True when the line was one of our commands"""
        if eventClient is None or not self._runtimeEnabled or not message.startswith("!"):
            return False
        cmdArgs = message[1:].split()
        if len(cmdArgs) == 0:
            return False
        handler = _FindHandler(self._commandList, cmdArgs[0])
        return handler(eventClient, cmdArgs) if handler else False

    def OnSmsay(self, playerName: str, smodID: int, adminIP: str, message: str) -> bool:
        cmdArgs = message.split()
        if len(cmdArgs) == 0 or not cmdArgs[0].startswith("!"):
            return False
        handler = _FindHandler(self._smodCommandList, cmdArgs[0])
        return handler(playerName, smodID, adminIP, cmdArgs) if handler else False

    # Exports

    def GetVoteStatus(self) -> dict:
        isOpen = self._session.IsOpen()
        return {
            "state": self._session.GetStateName(),
            "tally": self._session.GetTally(),
            "required": self._session.GetRequired() if isOpen else 0,
            "voters": self._session.GetVoterCount(),
            "population": self._session.GetEligiblePopulation(),
            "timeLeft": self._session.TimeLeft(),
        }

    def IsVoteActive(self) -> bool:
        return self._session.IsOpen()

    def DoLoop(self):
        """One tick: fire the deadline, open the vote at the start hour, re-check quorum"""
        self._scheduler.Poll()

        inVoteHour = self._IsVoteHour()
        if not inVoteHour:
            self._voteHeldInWindow = False
        if not self._runtimeEnabled:
            return

        if self._session.GetState() == SESSION_STATE_IDLE:
            if inVoteHour and not self._voteHeldInWindow:
                self._TryStartVote()
        elif self._session.IsOpen() and self._Setting("periodicQuorumCheck", True):
            self._CloseIfQuorum()

    def Start(self) -> bool:
        if not self._runtimeEnabled:
            Log.info("SkipNight plugin is disabled in configuration")
            return True
        Log.info("SkipNight votes open at hour %s, need %s%% within %s seconds",
                 self._Setting("voteStartHour", 19), self._Setting("requiredPercentage", 31), self._Setting("voteDuration", 60))
        return True

    def Finish(self):
        self._scheduler.CancelAll()
        if self._session.IsOpen():
            self._UnregisterVote()
        Log.info("SkipNight plugin stopped")


def _SetupLogging(args):
    logging.basicConfig(
        filename=args.logfile or None,
        level=logging.DEBUG if args.debug else logging.INFO,
        format='%(asctime)s %(levelname)08s %(name)s %(message)s')


def _PublishHelp(serverData: serverdata.ServerData, serverVar: str, table: dict):
    """Append (alias, help) pairs to the list the host's !help reads"""
    entries = list(serverData.GetServerVar(serverVar) or [])
    for aliases, (helpText, _) in table.items():
        entries.extend([(alias, helpText) for alias in aliases])
    serverData.SetServerVar(serverVar, entries)


# Module-level hooks called by the host

def OnInitialize(serverData: serverdata.ServerData, exports=None) -> bool:
    _SetupLogging(serverData.args)

    cfg = LoadConfig(CONFIG_DEFAULT_PATH)
    global PluginInstance
    PluginInstance = SkipnightPlugin(serverData, cfg)

    for perm in (cfg.cfg["permVoteDay"], cfg.cfg["permAdmin"]):
        serverData.permissions.RegisterPermission(perm, PLUGIN_NAME)
    # overrides first, registration only fills the keys they left out
    serverData.lang.LoadOverrides(PLUGIN_NAME, LANG_OVERRIDES_PATH)
    serverData.lang.RegisterMessages(PLUGIN_NAME, MESSAGES_DEFAULT)

    _PublishHelp(serverData, "registeredCommands", PluginInstance._commandList)
    _PublishHelp(serverData, "registeredSmodCommands", PluginInstance._smodCommandList)

    if exports is not None:
        exports.Add("GetVoteStatus", PluginInstance.GetVoteStatus)
        exports.Add("IsVoteActive", PluginInstance.IsVoteActive)
    return True


def OnStart() -> bool:
    began = time()
    started = PluginInstance.Start()
    if started:
        Log.info(f"SkipNight started in {time() - began:.2f} seconds!")
    return started


def OnLoop():
    PluginInstance.DoLoop()


def OnFinish():
    PluginInstance.Finish()


def OnEvent(event) -> bool:
    if event.type == hostEvent.HOST_EVENT_TYPE_MESSAGE:
        return PluginInstance.OnChatMessage(event.client, event.message)
    if event.type == hostEvent.HOST_EVENT_TYPE_SMSAY:
        return PluginInstance.OnSmsay(event.playerName, event.smodID, event.adminIP, event.message)
    return False


if __name__ == "__main__":
    print("This is a plugin for the SkipNight plugin host.")
    print("Please run host.py to use it.")
