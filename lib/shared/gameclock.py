import time;
import math;
import logging;

Log = logging.getLogger(__name__);

HOURS_PER_DAY = 24;

class GameClock():
    '''
    In-game day/night clock.

    The hour runs from 0 to 24 and a full in-game day lasts dayLengthMinutes of real time.
    Update() has to be called from the host loop to move the clock forward.
    '''
    def __init__(self, dayLengthMinutes : float = 45, startHour : float = 12, startDay : int = 1, timeFunc = None):
        if dayLengthMinutes <= 0:
            raise ValueError("Day length must be positive, got %s" % str(dayLengthMinutes));
        self._time = timeFunc if timeFunc != None else time.time;
        self._dayLengthS = dayLengthMinutes * 60;
        self._day = startDay;
        self._hour = 0.0;
        self.SetHour(startHour);
        self._lastUpdate = self._time();
        self._frozen = False;

    def CurrentHour(self) -> float:
        return self._hour;

    def CurrentDay(self) -> int:
        return self._day;

    def IsFrozen(self) -> bool:
        return self._frozen;

    def SetFrozen(self, frozen : bool):
        self._frozen = frozen;

    def SetHour(self, hour : float):
        if hour < 0 or hour >= HOURS_PER_DAY:
            raise ValueError("Hour must be within [0, 24), got %s" % str(hour));
        self._hour = float(hour);

    def AdvanceToDay(self, targetHour : float, nextDay : bool = True):
        oldDay, oldHour = self._day, self._hour;
        self.SetHour(targetHour);
        if nextDay:
            self._day += 1;
        Log.info("Clock advanced from day %d %.2fh to day %d %.2fh", oldDay, oldHour, self._day, self._hour);

    def Update(self):
        now = self._time();
        elapsed = now - self._lastUpdate;
        self._lastUpdate = now;
        if self._frozen or elapsed <= 0:
            return;
        hours = self._hour + elapsed / self._dayLengthS * HOURS_PER_DAY;
        if hours >= HOURS_PER_DAY:
            days = math.floor(hours / HOURS_PER_DAY);
            self._day += days;
            hours -= days * HOURS_PER_DAY;
        self._hour = hours;

    def __repr__(self):
        return f"GameClock(day={self._day}, hour={self._hour:.2f})";
