"""Shared test fixtures for chat-hitl."""

import asyncio
import socket

import pytest

from chat_hitl.core import DialogResolution
from chat_hitl.history import HistoryLedger
from chat_hitl.hub import DialogHub
from chat_hitl.presenter import Presenter
from chat_hitl.registry import PendingRegistry


class ScriptedPresenter(Presenter):
    """Presenter that records what it was shown and answers from a script."""

    name = "scripted"

    def __init__(self, resolution: DialogResolution | None = None):
        self.resolution = resolution
        self.shown = []
        self.histories = []

    async def present(self, request, history):
        self.shown.append(request)
        self.histories.append(history)
        return self.resolution


async def wait_until(predicate, timeout: float = 2.0):
    """Yield to the loop until predicate() is true."""
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.01)


@pytest.fixture
def ledger():
    return HistoryLedger()


@pytest.fixture
def registry(ledger):
    return PendingRegistry(ledger)


@pytest.fixture
def hub(registry):
    """A hub whose dialogs are only answered through respond()."""
    return DialogHub(registry=registry, workspaces=["/proj"], port=23987)


@pytest.fixture
def continue_resolution():
    return DialogResolution.from_dict({
        "shouldContinue": True,
        "userInput": "keep going",
        "attachments": [{"type": "code", "name": "x.py", "content": "print(1)"}],
    })


@pytest.fixture
def free_port():
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]
