"""
Vote session - the tally state machine behind a timed percentage vote.

A session goes Idle -> Open -> Closed -> Idle. While open it collects one ballot per voter,
weighted by the configured VIP multiplier, and closes either when the caller sees quorum
or when the scheduled deadline fires. Every rejection is reported as a result value,
nothing in here raises for a voter mistake.
"""

import logging

import lib.shared.config as config
from lib.shared.timeout import Scheduler, ScheduledCall

Log = logging.getLogger(__name__)

SESSION_STATE_IDLE      = 0
SESSION_STATE_OPEN      = 1
SESSION_STATE_CLOSED    = 2

SESSION_STATES = {
    SESSION_STATE_IDLE: "Idle",
    SESSION_STATE_OPEN: "Open",
    SESSION_STATE_CLOSED: "Closed",
}

DEFAULT_VOTE_DURATION = 60
DEFAULT_REQUIRED_PERCENTAGE = 31
DEFAULT_VIP_WEIGHT = 3


def RequiredVotes(population : int, percentage : int) -> int:
    """ceil(population * percentage / 100) in integer arithmetic"""
    return -(-(population * percentage) // 100)


class BallotResult():
    ACCEPTED        = 0
    NO_ACTIVE_VOTE  = 1
    ALREADY_VOTED   = 2

    def __init__(self, code : int, tally : int = 0, required : int = 0, weight : int = 0):
        self.code = code
        self.tally = tally
        self.required = required
        self.weight = weight

    def IsAccepted(self) -> bool:
        return self.code == BallotResult.ACCEPTED

    def __repr__(self):
        return f"BallotResult(code={self.code}, tally={self.tally}, required={self.required}, weight={self.weight})"


class VoteOutcome():
    def __init__(self, passed : bool, tally : int, required : int, ignored : bool = False):
        self.passed = passed
        self.tally = tally
        self.required = required
        self.ignored = ignored

    @staticmethod
    def Ignored():
        """Outcome of a close that found no open vote, carries no result"""
        return VoteOutcome(False, 0, 0, ignored = True)

    def __repr__(self):
        if self.ignored:
            return "VoteOutcome(ignored)"
        return f"VoteOutcome(passed={self.passed}, tally={self.tally}, required={self.required})"


class VoteSession():
    def __init__(self, cfg : config.Config, scheduler : Scheduler, onClose = None):
        self._config = cfg
        self._scheduler = scheduler
        self._onClose = onClose
        self._state = SESSION_STATE_IDLE
        self._eligiblePopulation = 0
        self._yesTally = 0
        self._voters = set()
        self._openedAt = 0
        self._deadline = 0
        self._deadlineCall : ScheduledCall = None

    # Live configuration reads, a reload between ballots takes effect on the next call.
    def _GetDuration(self) -> float:
        return self._config.GetValue("voteDuration", DEFAULT_VOTE_DURATION)

    def _GetPercentage(self) -> int:
        return self._config.GetValue("requiredPercentage", DEFAULT_REQUIRED_PERCENTAGE)

    def _GetWeight(self, isWeighted : bool) -> int:
        if isWeighted:
            return self._config.GetValue("amountVIP", DEFAULT_VIP_WEIGHT)
        return 1

    def GetState(self) -> int:
        return self._state

    def GetStateName(self) -> str:
        return SESSION_STATES[self._state]

    def IsOpen(self) -> bool:
        return self._state == SESSION_STATE_OPEN

    def GetTally(self) -> int:
        return self._yesTally

    def GetEligiblePopulation(self) -> int:
        return self._eligiblePopulation

    def GetVoterCount(self) -> int:
        return len(self._voters)

    def HasVoted(self, voterId) -> bool:
        return voterId in self._voters

    def GetDeadline(self) -> float:
        return self._deadline

    def TimeLeft(self) -> float:
        if self._deadlineCall == None or not self.IsOpen():
            return 0
        return self._deadlineCall.Left()

    def GetRequired(self) -> int:
        return RequiredVotes(self._eligiblePopulation, self._GetPercentage())

    def TryOpen(self, nowPopulation : int, minPopulation : int) -> bool:
        if self._state != SESSION_STATE_IDLE:
            Log.debug("Vote open refused, session is %s", self.GetStateName())
            return False

        if nowPopulation < minPopulation:
            Log.debug("Not enough players to open a vote (%d/%d)", nowPopulation, minPopulation)
            return False

        duration = self._GetDuration()
        self._eligiblePopulation = nowPopulation
        self._yesTally = 0
        self._voters = set()
        self._openedAt = self._scheduler.Now()
        self._deadline = self._openedAt + duration
        self._state = SESSION_STATE_OPEN
        self._deadlineCall = self._scheduler.Once(duration, self._OnDeadline)
        Log.info("Vote opened for %d players, %d votes required, closes in %s seconds",
                 nowPopulation, self.GetRequired(), str(duration))
        return True

    def CastBallot(self, voterId, isWeighted : bool) -> BallotResult:
        if self._state != SESSION_STATE_OPEN:
            return BallotResult(BallotResult.NO_ACTIVE_VOTE)

        if voterId in self._voters:
            return BallotResult(BallotResult.ALREADY_VOTED, self._yesTally, self.GetRequired())

        weight = self._GetWeight(isWeighted)
        self._voters.add(voterId)
        self._yesTally += weight
        Log.debug("Ballot from %s accepted with weight %d, tally %d", str(voterId), weight, self._yesTally)
        return BallotResult(BallotResult.ACCEPTED, self._yesTally, self.GetRequired(), weight)

    def CheckQuorum(self) -> bool:
        ''' Whether the tally reached the required count, always False unless a vote is open. '''
        if self._state != SESSION_STATE_OPEN:
            return False
        return self._yesTally >= self.GetRequired()

    def Close(self) -> VoteOutcome:
        if self._state != SESSION_STATE_OPEN:
            Log.debug("Close ignored, session is %s", self.GetStateName())
            return VoteOutcome.Ignored()

        if self._deadlineCall != None:
            self._deadlineCall.Cancel()
            self._deadlineCall = None

        required = self.GetRequired()
        self._state = SESSION_STATE_CLOSED
        outcome = VoteOutcome(self._yesTally >= required, self._yesTally, required)
        Log.info("Vote closed, %s", outcome)
        if self._onClose != None:
            self._onClose(outcome)
        return outcome

    def Reset(self) -> bool:
        if self._state != SESSION_STATE_CLOSED:
            return False
        self._state = SESSION_STATE_IDLE
        return True

    def _OnDeadline(self):
        Log.debug("Vote deadline reached")
        self._deadlineCall = None
        self.Close()

    def __repr__(self):
        return f"VoteSession(state={self.GetStateName()}, tally={self._yesTally}, voters={len(self._voters)}, population={self._eligiblePopulation})"
