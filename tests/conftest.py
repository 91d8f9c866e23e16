"""Shared fakes for the test suite."""

import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest

import hostinterface


class FakeTime:
    """Callable time source the tests move forward by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def Advance(self, seconds: float):
        self.now += seconds


class RecordingInterface(hostinterface.AServerInterface):
    """Server interface that keeps everything sent instead of talking to a server."""

    def __init__(self):
        super().__init__()
        self.said = []
        self.told = []
        self.smsaid = []

    def Open(self) -> bool:
        self._isOpened = True
        return True

    def SvSay(self, text: str) -> str:
        self.said.append(text)
        return text

    def Say(self, text: str) -> str:
        self.said.append(text)
        return text

    def SvTell(self, pid: int, text: str) -> str:
        self.told.append((pid, text))
        return text

    def SmSay(self, msg: str) -> str:
        self.smsaid.append(msg)
        return msg


@pytest.fixture
def fake_time():
    return FakeTime()


@pytest.fixture
def recording_iface():
    return RecordingInterface()
