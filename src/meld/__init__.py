from .attempt import Attempt
from .cmd import Cmd, Effect
from .config import DEFAULT_CONFIG, MeldConfig
from .container import Command, Meld, Merge, Task, init, model
from .finalize import apply_merges, finish, run_commands
from .inflight import bump_in_flight, get_in_flight, in_flight_merge, set_in_flight
from .log import configure_logging
from .result import MeldError, Result
from .strategy import (
    Tagger,
    cmds,
    cmdseq,
    concurrent,
    run_concurrent,
    run_sequential,
    send,
    sequence,
    sequential,
    update,
)
from .trace import Evidence, Trace

__all__ = [
    # Core
    "Meld",
    "MeldError",
    "Result",
    "Cmd",
    "init",
    "model",
    # Function types
    "Task",
    "Merge",
    "Command",
    "Effect",
    "Tagger",
    # Strategies
    "Attempt",
    "concurrent",
    "sequential",
    "run_concurrent",
    "run_sequential",
    # Driving operations
    "send",
    "cmds",
    "sequence",
    "cmdseq",
    "update",
    # Finalization
    "finish",
    "apply_merges",
    "run_commands",
    # In-flight counter
    "get_in_flight",
    "set_in_flight",
    "bump_in_flight",
    "in_flight_merge",
    # Config & observability
    "MeldConfig",
    "DEFAULT_CONFIG",
    "configure_logging",
    "Trace",
    "Evidence",
]
