import time;
import logging;

Log = logging.getLogger(__name__);

class Timeout:
    def __init__(self, timeFunc = None):
        self._time = timeFunc if timeFunc != None else time.time;
        self._startS = 0;
        self._endS = 0;
        self._timeS = 0;
        self._overflow = False;

    def Set(self, seconds):
        self._startS = self._time();
        self._timeS = seconds;
        self._endS = self._startS + self._timeS;
        if self._endS < self._startS:
            self._overflow = True;
            Log.warning("Timeout overflow.");
        else:
            self._overflow = False;

    def Finish(self):
        self._timeS = 0
        self._startS = 0
        self._endS = 0
        self._overflow = False

    def IsSet(self):
        return (self.Left() > 0);

    def TimeStart(self) -> float:
        return self._startS;

    def TimeEnd(self) -> float:
        return self._endS;

    def Left(self):
        if self._endS == 0:
            return 0;
        left = self._endS - self._time();
        if left < 0:
            left = 0;
        return left;

    def LeftDHMS(self):
        left = self.Left();
        if left > 0:
            seconds = int(left % 60);
            minutes = int((left / 60) % 60);
            hours = int((left / 3600) % 24);
            days = int(left / 86400);
            return f"{str(days).zfill(2)}:{str(hours).zfill(2)}:{str(minutes).zfill(2)}:{str(seconds).zfill(2)}";
        else:
            return "00:00:00";


class ScheduledCall():
    ''' A single-shot callback bound to a Timeout, fired by the owning Scheduler once the timeout runs out. '''
    def __init__(self, seconds, callback, timeFunc = None):
        self._timeout = Timeout(timeFunc);
        self._timeout.Set(seconds);
        self._callback = callback;
        self._cancelled = False;
        self._fired = False;

    def Cancel(self):
        self._cancelled = True;

    def IsCancelled(self) -> bool:
        return self._cancelled;

    def IsFired(self) -> bool:
        return self._fired;

    def IsPending(self) -> bool:
        return not self._cancelled and not self._fired;

    def IsDue(self) -> bool:
        return self.IsPending() and not self._timeout.IsSet();

    def GetDeadline(self) -> float:
        return self._timeout.TimeEnd();

    def Left(self) -> float:
        return self._timeout.Left();

    def Fire(self) -> bool:
        if not self.IsPending():
            return False;
        self._fired = True;
        self._callback();
        return True;


class Scheduler():
    '''
    Keeps one-shot calls and fires the due ones when polled.

    Polling happens from the plugin loop tick, so callbacks never run concurrently with the rest of the plugin.
    '''
    def __init__(self, timeFunc = None):
        self._time = timeFunc if timeFunc != None else time.time;
        self._calls = list[ScheduledCall]();

    def Now(self) -> float:
        return self._time();

    def Once(self, seconds, callback) -> ScheduledCall:
        call = ScheduledCall(seconds, callback, self._time);
        self._calls.append(call);
        Log.debug("Scheduled call in %s seconds", str(seconds));
        return call;

    def Poll(self) -> int:
        fired = 0;
        # callbacks may schedule new calls, iterate over a snapshot
        for call in self._calls.copy():
            if call.IsDue():
                call.Fire();
                fired += 1;
        self._calls = [call for call in self._calls if call.IsPending()];
        return fired;

    def CancelAll(self):
        for call in self._calls:
            call.Cancel();
        self._calls.clear();

    def GetPendingCount(self) -> int:
        return len([call for call in self._calls if call.IsPending()]);
