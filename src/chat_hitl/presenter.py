"""Presenters put a dialog in front of a human.

The decision form itself lives outside this package; a presenter is the
seam to it. Each front-end process has exactly one.
"""

import asyncio
import logging
from abc import ABC, abstractmethod

import click

from .core import DialogRequest, DialogResolution, HistoryEntry

logger = logging.getLogger(__name__)


class Presenter(ABC):
    """Base class for dialog front-ends."""

    name: str

    @abstractmethod
    async def present(
        self, request: DialogRequest, history: list[HistoryEntry]
    ) -> DialogResolution | None:
        """Show a request and return the human decision.

        Return None when the answer will arrive out of band, i.e. through
        ``POST /respond`` on the coordination endpoint.
        """
        ...


class ExternalPresenter(Presenter):
    """Announce requests in the log and leave answering to the HTTP endpoint."""

    name = "external"

    async def present(self, request, history):
        logger.info(
            "Dialog %s waiting for %s (#%d): %s",
            request.id,
            request.workspace or "<none>",
            request.sequence_number,
            request.reason,
        )
        return None


class ConsolePresenter(Presenter):
    """Ask on the controlling terminal, one dialog at a time."""

    name = "console"

    def __init__(self) -> None:
        self._lock = asyncio.Lock()

    async def present(self, request, history):
        async with self._lock:
            return await asyncio.to_thread(self._prompt, request, history)

    def _prompt(self, request: DialogRequest, history: list[HistoryEntry]) -> DialogResolution:
        click.echo("")
        click.secho(
            f"[{request.workspace or 'no workspace'}] dialog #{request.sequence_number}",
            bold=True,
        )
        if history:
            last = history[-1]
            click.echo(f"  previous: {'continued' if last.continued else 'stopped'} - {last.user_input[:80]}")
        click.echo(f"  reason: {request.reason}")

        if not click.confirm("Continue?", default=True, err=True):
            return DialogResolution(should_continue=False)
        user_input = click.prompt("Instructions", default="", show_default=False, err=True)
        return DialogResolution(should_continue=True, user_input=user_input)


PRESENTERS = {
    ExternalPresenter.name: ExternalPresenter,
    ConsolePresenter.name: ConsolePresenter,
}


def get_presenter(name: str) -> Presenter:
    try:
        return PRESENTERS[name]()
    except KeyError:
        raise ValueError(f"Unknown presenter: {name}") from None
