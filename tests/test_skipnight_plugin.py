"""Behaviour of the SkipNight plugin against fake server collaborators."""

import argparse
import json

import pytest

from conftest import RecordingInterface

import hostAPI
import pluginExports
import lib.shared.config as config
import lib.shared.serverdata as serverdata
from lib.shared.client import Client
from lib.shared.clientmanager import ClientManager
from lib.shared.gameclock import GameClock
from lib.shared.lang import MessageCatalog
from lib.shared.permissions import PermissionManager
import plugins.shared.skipnight.skipnight as skipnight


class Harness:
    def __init__(self, tmp_path, fake_time, players=5, hour=12, overrides=None):
        self.time = fake_time
        self.cfgPath = tmp_path / "skipnightCfg.json"
        data = json.loads(skipnight.CONFIG_FALLBACK)
        data.update(overrides or {})
        self.cfgPath.write_text(json.dumps(data))
        self.config = skipnight.LoadConfig(str(self.cfgPath))

        self.iface = RecordingInterface()
        self.clients = ClientManager()
        for i in range(players):
            self.clients.AddClient(Client(i, "Player%d" % i, "10.0.0.%d:29070" % (i + 1)))

        api = hostAPI.API()
        api.GetClientCount = self.clients.GetClientCount
        api.GetClientById = self.clients.GetClientById
        api.GetClientByName = self.clients.GetClientByName
        api.GetAllClients = self.clients.GetAllClients

        self.clock = GameClock(45, hour, timeFunc=fake_time)
        self.perms = PermissionManager()
        self.perms.GrantGroupPermission("default", "skipnight.use")
        self.perms.CreateGroup("vipplus")
        self.perms.GrantGroupPermission("admin", "skipnight.admin")

        self.lang = MessageCatalog()
        self.lang.RegisterMessages(skipnight.PLUGIN_NAME, skipnight.MESSAGES_DEFAULT)

        args = argparse.Namespace(debug=False, logfile="")
        self.serverData = serverdata.ServerData(api, self.iface, self.clock, self.perms, self.lang, args)
        self.plugin = skipnight.SkipnightPlugin(self.serverData, self.config, timeFunc=fake_time)

    def Client(self, id):
        return self.clients.GetClientById(id)

    def Say(self, id, message):
        return self.plugin.OnChatMessage(self.Client(id), message)

    def Smsay(self, message):
        return self.plugin.OnSmsay("Admin", 1, "127.0.0.1", message)

    def ToldTo(self, id):
        return [text for pid, text in self.iface.told if pid == id]

    def StartVote(self):
        self.clock.SetHour(19)
        self.plugin.DoLoop()
        assert self.plugin.IsVoteActive()


@pytest.fixture
def harness(tmp_path, fake_time):
    return Harness(tmp_path, fake_time)


def test_no_vote_outside_start_hour(harness):
    harness.plugin.DoLoop()
    assert harness.plugin.IsVoteActive() is False
    assert harness.iface.said == []


def test_vote_opens_at_start_hour(harness):
    harness.StartVote()

    status = harness.plugin.GetVoteStatus()
    assert status["state"] == "Open"
    assert status["population"] == 5
    assert status["required"] == 2
    assert status["timeLeft"] == 60
    assert "You have 60 seconds to vote" in harness.iface.said[-1]
    assert "2 votes are needed" in harness.iface.said[-1]
    assert harness.iface.said[-1].startswith("^3[Skip Night]^7 ")
    assert harness.serverData.GetServerVar("votesInProgress") == ["SkipNight"]


def test_vote_does_not_open_below_min_population(tmp_path, fake_time):
    h = Harness(tmp_path, fake_time, players=1, overrides={"minPopulation": 2})
    h.clock.SetHour(19)
    h.plugin.DoLoop()
    assert h.plugin.IsVoteActive() is False


def test_two_ballots_pass_and_advance_clock_once(harness):
    harness.StartVote()

    assert harness.Say(0, "!skipnight") is True
    assert "1 votes out of 2 needed" in harness.ToldTo(0)[-1]
    assert harness.plugin.IsVoteActive()

    assert harness.Say(1, "!sn") is True

    assert harness.plugin.IsVoteActive() is False
    assert harness.clock.CurrentHour() == 7
    assert harness.clock.CurrentDay() == 2
    assert "There were 2 votes out of 2 needed" in harness.iface.said[-1]
    assert harness.serverData.GetServerVar("votesInProgress") is None

    # the deadline must not report a second result
    said = len(harness.iface.said)
    harness.time.Advance(120)
    harness.plugin.DoLoop()
    assert len(harness.iface.said) == said
    assert harness.clock.CurrentDay() == 2


def test_deadline_fails_vote(harness):
    harness.StartVote()
    harness.Say(0, "!skipnight")

    harness.time.Advance(60)
    harness.plugin.DoLoop()

    assert harness.plugin.IsVoteActive() is False
    assert "1 votes out of 2 needed" in harness.iface.said[-1]
    assert "The night will continue" in harness.iface.said[-1]
    assert harness.clock.CurrentHour() == 19
    assert harness.clock.CurrentDay() == 1


def test_failed_vote_does_not_reopen_in_same_hour(harness):
    harness.StartVote()
    harness.time.Advance(60)
    harness.plugin.DoLoop()
    assert harness.plugin.IsVoteActive() is False

    harness.plugin.DoLoop()
    harness.clock.SetHour(19.5)
    harness.plugin.DoLoop()
    assert harness.plugin.IsVoteActive() is False

    # leaving and coming back to the start hour allows a new vote
    harness.clock.SetHour(20)
    harness.plugin.DoLoop()
    harness.clock.SetHour(19)
    harness.plugin.DoLoop()
    assert harness.plugin.IsVoteActive() is True


def test_double_vote_is_rejected(harness):
    harness.StartVote()
    harness.Say(0, "!skipnight")
    harness.Say(0, "!skipnight")

    assert harness.ToldTo(0)[-1].endswith("You have already voted.")
    assert harness.plugin.GetSession().GetTally() == 1


def test_vip_vote_counts_weighted(harness):
    harness.perms.AddUserToGroup("10.0.0.1", "vipplus")
    harness.clients.AddClient(Client(9, "Late", "10.0.0.9"))
    harness.StartVote()
    assert harness.plugin.GetSession().GetRequired() == 2

    harness.plugin.config.cfg["requiredPercentage"] = 50
    harness.Say(0, "!skipnight")

    assert harness.plugin.IsVoteActive() is False
    assert "There were 3 votes out of 3 needed" in harness.iface.said[-1]


def test_vote_without_permission(harness):
    harness.perms.RevokeGroupPermission("default", "skipnight.use")
    harness.StartVote()

    harness.Say(0, "!skipnight")

    assert "do not have permission" in harness.ToldTo(0)[-1]
    assert harness.plugin.GetSession().GetTally() == 0


def test_vote_when_nothing_is_running(harness):
    harness.Say(2, "!skipnight")
    assert harness.ToldTo(2)[-1].endswith("There is currently no vote active.")


def test_no_active_vote_notice_can_be_silenced(tmp_path, fake_time):
    h = Harness(tmp_path, fake_time, overrides={"notifyNoActiveVote": False})
    assert h.Say(2, "!skipnight") is True
    assert h.iface.told == []


def test_silent_mode_suppresses_chat(tmp_path, fake_time):
    h = Harness(tmp_path, fake_time, overrides={"silentMode": True})
    h.StartVote()
    h.Say(0, "!skipnight")
    assert h.iface.said == []
    assert h.iface.told == []
    assert h.plugin.GetSession().GetTally() == 1


def test_disabled_plugin_ignores_everything(tmp_path, fake_time):
    h = Harness(tmp_path, fake_time, overrides={"enabled": False})
    h.clock.SetHour(19)
    h.plugin.DoLoop()
    assert h.plugin.IsVoteActive() is False
    assert h.Say(0, "!skipnight") is False


def test_other_chat_is_not_captured(harness):
    assert harness.Say(0, "hello there") is False
    assert harness.Say(0, "!somethingelse") is False
    assert harness.Say(0, "!") is False


def test_admin_sets_vote_duration(harness):
    harness.perms.AddUserToGroup("10.0.0.1", "admin")

    harness.Say(0, "!skipnight set timevote 90")

    assert harness.ToldTo(0)[-1].endswith("Vote duration set to 90 seconds.")
    assert harness.config.cfg["voteDuration"] == 90
    assert json.loads(harness.cfgPath.read_text())["voteDuration"] == 90


def test_duration_change_does_not_move_running_deadline(harness):
    harness.StartVote()
    harness.perms.AddUserToGroup("10.0.0.1", "admin")
    harness.Say(0, "!skipnight set timevote 300")

    harness.time.Advance(60)
    harness.plugin.DoLoop()
    assert harness.plugin.IsVoteActive() is False


def test_admin_rejects_bad_values(harness):
    harness.perms.AddUserToGroup("10.0.0.1", "admin")

    harness.Say(0, "!skipnight set timevote abc")
    assert "Invalid vote duration" in harness.ToldTo(0)[-1]
    harness.Say(0, "!skipnight set timevote 0")
    assert "Invalid vote duration" in harness.ToldTo(0)[-1]
    harness.Say(0, "!skipnight set requiredpercentage 0")
    assert "Invalid percentage" in harness.ToldTo(0)[-1]
    harness.Say(0, "!skipnight set requiredpercentage 101")
    assert "Invalid percentage" in harness.ToldTo(0)[-1]
    harness.Say(0, "!skipnight set colour red")
    assert "Invalid command usage" in harness.ToldTo(0)[-1]
    harness.Say(0, "!skipnight set")
    assert "Invalid command usage" in harness.ToldTo(0)[-1]

    assert harness.config.cfg["voteDuration"] == 60
    assert harness.config.cfg["requiredPercentage"] == 31


def test_admin_command_needs_admin_permission(harness):
    harness.Say(0, "!skipnight set timevote 90")
    assert "do not have permission" in harness.ToldTo(0)[-1]
    assert harness.config.cfg["voteDuration"] == 60


def test_lower_percentage_closes_running_vote(harness):
    harness.StartVote()
    harness.Say(1, "!skipnight")
    assert harness.plugin.IsVoteActive()

    harness.Smsay("!skipnight set requiredpercentage 20")

    assert "Required vote percentage set to 20%." in harness.iface.smsaid[0]
    assert harness.plugin.IsVoteActive() is False
    assert harness.clock.CurrentHour() == 7
    assert "There were 1 votes out of 1 needed" in harness.iface.said[-1]


def test_reload_applies_new_percentage_to_running_vote(harness):
    harness.StartVote()
    harness.Say(1, "!skipnight")

    data = json.loads(harness.cfgPath.read_text())
    data["requiredPercentage"] = 10
    harness.cfgPath.write_text(json.dumps(data))
    harness.Smsay("!skipnight reload")

    assert harness.iface.smsaid[-1].endswith("Configuration reloaded successfully.")
    assert harness.plugin.IsVoteActive()
    harness.plugin.DoLoop()
    assert harness.plugin.IsVoteActive() is False
    assert harness.clock.CurrentDay() == 2


def test_reload_of_broken_file_keeps_values(harness):
    harness.cfgPath.write_text("{ not json")
    harness.Smsay("!skipnight reload")

    assert "could not be reloaded" in harness.iface.smsaid[-1]
    assert harness.config.cfg["requiredPercentage"] == 31


def test_reload_of_list_document_keeps_running_vote(harness):
    harness.StartVote()
    held = harness.config.cfg
    harness.cfgPath.write_text("[1, 2]")

    harness.Smsay("!skipnight reload")

    assert "could not be reloaded" in harness.iface.smsaid[-1]
    assert held is harness.config.cfg
    assert harness.config.cfg["requiredPercentage"] == 31
    assert harness.config.cfg["voteStartHour"] == 19
    assert harness.plugin.IsVoteActive()


def test_load_config_of_scalar_document_uses_defaults(tmp_path):
    path = tmp_path / "cfg.json"
    path.write_text("42")

    cfg = skipnight.LoadConfig(str(path))

    assert cfg.cfg == json.loads(skipnight.CONFIG_FALLBACK)


def test_fractional_start_hour_is_replaced(tmp_path, fake_time):
    harness = Harness(tmp_path, fake_time, overrides={"voteStartHour": 19.5})

    assert harness.config.cfg["voteStartHour"] == 19
    harness.StartVote()


def test_other_plugin_vote_stays_registered(harness):
    harness.serverData.SetServerVar("votesInProgress", ["VoteMute"])
    harness.StartVote()
    assert harness.serverData.GetServerVar("votesInProgress") == ["VoteMute", "SkipNight"]

    harness.Say(1, "!skipnight")
    harness.Say(2, "!skipnight")

    assert harness.plugin.IsVoteActive() is False
    assert harness.serverData.GetServerVar("votesInProgress") == ["VoteMute"]


def test_reload_replaces_invalid_values(harness):
    data = json.loads(harness.cfgPath.read_text())
    data["requiredPercentage"] = 250
    harness.cfgPath.write_text(json.dumps(data))

    harness.Smsay("!sn reload")

    assert harness.config.cfg["requiredPercentage"] == 31


def test_smod_without_subcommand(harness):
    assert harness.Smsay("!skipnight") is True
    assert "Invalid command usage" in harness.iface.smsaid[-1]
    assert harness.Smsay("!unrelated") is False
    assert harness.Smsay("just talking") is False


def test_finish_unregisters_running_vote(harness):
    harness.StartVote()
    harness.plugin.Finish()

    assert harness.serverData.GetServerVar("votesInProgress") is None
    harness.time.Advance(120)
    harness.plugin.DoLoop()
    assert not any("The vote failed" in text for text in harness.iface.said)


def test_load_config_fixes_invalid_and_missing_values(tmp_path):
    path = tmp_path / "cfg.json"
    path.write_text(json.dumps({"requiredPercentage": 0, "voteDuration": -5, "amountVIP": 2}))

    cfg = skipnight.LoadConfig(str(path))

    assert cfg.cfg["requiredPercentage"] == 31
    assert cfg.cfg["voteDuration"] == 60
    assert cfg.cfg["amountVIP"] == 2
    assert cfg.cfg["voteStartHour"] == 19
    assert "groupNameVIP" in json.loads(path.read_text())


def test_validate_config_accepts_defaults():
    cfg = config.Config.FromJSONString(skipnight.CONFIG_FALLBACK)
    assert skipnight.ValidateConfig(cfg) is True


def test_initialize_registers_help_permissions_and_exports(tmp_path, monkeypatch, fake_time):
    monkeypatch.setattr(skipnight, "CONFIG_DEFAULT_PATH", str(tmp_path / "skipnightCfg.json"))
    monkeypatch.setattr(skipnight, "LANG_OVERRIDES_PATH", str(tmp_path / "skipnightLang.json"))
    (tmp_path / "skipnightLang.json").write_text(json.dumps({"AlreadyVoted": "Patience!"}))
    h = Harness(tmp_path, fake_time)
    lang = MessageCatalog()
    sd = serverdata.ServerData(h.serverData.API, h.iface, h.clock, h.perms, lang, h.serverData.args)
    exports = pluginExports.ExportTable()

    assert skipnight.OnInitialize(sd, exports) is True

    assert h.perms.PermissionExists("skipnight.use")
    assert h.perms.PermissionExists("skipnight.admin")
    assert ("sn", "!skipnight - Vote to skip the night") in sd.GetServerVar("registeredCommands")
    assert "skipnight" in [alias for alias, _ in sd.GetServerVar("registeredSmodCommands")]
    assert lang.GetMessage("AlreadyVoted", skipnight.PLUGIN_NAME) == "Patience!"
    assert lang.GetMessage("NoRunningVote", skipnight.PLUGIN_NAME) == skipnight.MESSAGES_DEFAULT["NoRunningVote"]
    assert exports.Get("IsVoteActive").pointer() is False
    assert exports.Get("GetVoteStatus").pointer()["state"] == "Idle"
    assert (tmp_path / "skipnightCfg.json").exists()
