"""Commands - deferred effects handed back to the host application."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from typing import Generic, TypeVar

Msg = TypeVar("Msg")
R = TypeVar("R")

Effect = Callable[[], Awaitable[Msg]]


@dataclass(frozen=True)
class Cmd(Generic[Msg]):
    """An immutable batch of effects, each eventually producing one message.

    Effects are zero-argument coroutine factories, so nothing runs until
    the host awaits run().
    """

    effects: tuple[Effect[Msg], ...] = ()

    @staticmethod
    def none() -> Cmd[Msg]:
        return Cmd()

    @staticmethod
    def of(effect: Effect[Msg]) -> Cmd[Msg]:
        return Cmd(effects=(effect,))

    @staticmethod
    def batch(cmds: Iterable[Cmd[Msg]]) -> Cmd[Msg]:
        effects: tuple[Effect[Msg], ...] = ()
        for cmd in cmds:
            effects = effects + cmd.effects
        return Cmd(effects=effects)

    @property
    def is_none(self) -> bool:
        return not self.effects

    def __len__(self) -> int:
        return len(self.effects)

    def map(self, func: Callable[[Msg], R]) -> Cmd[R]:
        """Transform every message this command will produce."""

        def wrap(effect: Effect[Msg]) -> Effect[R]:
            async def mapped() -> R:
                return func(await effect())

            return mapped

        return Cmd(effects=tuple(wrap(effect) for effect in self.effects))

    async def run(self, dispatch: Callable[[Msg], None] | None = None) -> list[Msg]:
        """Start every effect at once and report messages as they arrive.

        Args:
            dispatch: Optional callback invoked with each message on completion

        Returns:
            Messages in completion order

        If an effect or dispatch raises, the effects still running are
        cancelled before the exception propagates.
        """
        running = [asyncio.ensure_future(effect()) for effect in self.effects]
        messages: list[Msg] = []
        try:
            for next_done in asyncio.as_completed(running):
                msg = await next_done
                messages.append(msg)
                if dispatch is not None:
                    dispatch(msg)
        finally:
            pending = [task for task in running if not task.done()]
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)
        return messages
