"""Login form driven through a Meld batch.

Validation and authentication run in sequence so the profile request can
read the token the authentication task merged. Two independent lookups run
concurrently afterwards and report back one message each.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from pydantic import BaseModel, Field, ValidationError

from meld import (
    Cmd,
    Meld,
    MeldConfig,
    MeldError,
    Result,
    configure_logging,
    finish,
    send,
    sequence,
)

logger = logging.getLogger("examples.login")

CONFIG = MeldConfig(track_in_flight=True)


class LoginModel(BaseModel):
    username: str = ""
    password: str = ""
    token: str | None = None
    profile: dict[str, str] = Field(default_factory=dict)
    notices: list[str] = Field(default_factory=list)
    error_message: str | None = None
    meld_tasks: int = 0


class Credentials(BaseModel):
    username: str = Field(min_length=3)
    password: str = Field(min_length=8)


@dataclass(frozen=True)
class Submitted:
    result: Result


@dataclass(frozen=True)
class Looked:
    result: Result


@dataclass(frozen=True)
class Notice:
    text: str


async def validate(meld: Meld) -> Meld:
    model = meld.model
    try:
        Credentials(username=model.username, password=model.password)
    except ValidationError as exc:
        raise MeldError(model, f"invalid credentials: {exc.error_count()} problem(s)") from exc
    return meld


async def authenticate(meld: Meld) -> Meld:
    await asyncio.sleep(0.01)
    token = f"token-{meld.model.username}"
    return meld.with_merge(lambda m: m.model_copy(update={"token": token}))


async def fetch_profile(meld: Meld) -> Meld:
    token = meld.model.token
    if token is None:
        raise MeldError(meld.model, "not authenticated")
    await asyncio.sleep(0.01)
    profile = {"name": meld.model.username.title(), "token": token}

    def welcome(model: LoginModel) -> Cmd[Notice]:
        async def effect() -> Notice:
            return Notice(f"welcome back, {model.profile['name']}")

        return Cmd.of(effect)

    return meld.with_merge(lambda m: m.model_copy(update={"profile": profile})).with_cmds([welcome])


def lookup(name: str, delay: float):
    async def task(meld: Meld) -> Meld:
        await asyncio.sleep(delay)
        return meld.with_merge(lambda m: m.model_copy(update={"notices": m.notices + [f"{name} ready"]}))

    return task


def write_error(model: LoginModel, error: object) -> LoginModel:
    return model.model_copy(update={"error_message": str(error)})


def update(model: LoginModel, msg: object) -> tuple[LoginModel, Cmd]:
    if isinstance(msg, (Submitted, Looked)):
        return finish(model, msg.result, CONFIG, on_error=write_error)
    if isinstance(msg, Notice):
        return model.model_copy(update={"notices": model.notices + [msg.text]}), Cmd.none()
    raise TypeError(f"unexpected message {msg!r}")


async def run_program(model: LoginModel, cmd: Cmd) -> LoginModel:
    """Tiny host loop: run commands and feed every message back into update."""
    pending = [cmd]
    while pending:
        messages = await Cmd.batch(pending).run()
        pending = []
        for msg in messages:
            model, next_cmd = update(model, msg)
            logger.info("%s -> in flight: %d", type(msg).__name__, model.meld_tasks)
            if not next_cmd.is_none:
                pending.append(next_cmd)
    return model


async def main() -> None:
    model = LoginModel(username="ada", password="correct horse")

    batch = Meld.init(model).with_tasks([validate, authenticate, fetch_profile])
    model, cmd = sequence(batch, Submitted, CONFIG)
    model = await run_program(model, cmd)
    print(f"token={model.token} profile={model.profile}")

    lookups = Meld.init(model).with_tasks([lookup("settings", 0.02), lookup("inbox", 0.01)])
    model, cmd = send(lookups, Looked, CONFIG)
    model = await run_program(model, cmd)
    print(f"notices={model.notices} in flight={model.meld_tasks}")

    rejected = LoginModel(username="al", password="short")
    model, cmd = sequence(Meld.init(rejected).with_tasks([validate, authenticate]), Submitted, CONFIG)
    model = await run_program(model, cmd)
    print(f"error={model.error_message}")


if __name__ == "__main__":
    configure_logging()
    asyncio.run(main())
