"""
In-process sandbox executor for learner scripts.
"""

from __future__ import annotations

import ast
import logging
import signal
import threading
import time
import warnings
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from types import FrameType

from coach_core.schemas import ExecutionResult
from sandbox import policy
from sandbox.capture import CapturedOutput, capture_output
from sandbox.timers import TimerRegistry

logger = logging.getLogger(__name__)


def _format_error(exc: BaseException) -> str:
    return f"{exc.__class__.__name__}: {exc}"


@dataclass
class HostInterrupt:
    received: bool = False


@contextmanager
def watch_host_interrupts() -> Iterator[HostInterrupt]:
    """Note whether SIGINT arrives while the block runs.

    Tells a real Ctrl-C apart from a KeyboardInterrupt raised by script code.
    Signals are only delivered to the main thread, so elsewhere nothing is
    installed and ``received`` stays False.
    """
    watch = HostInterrupt()
    if threading.current_thread() is not threading.main_thread():
        yield watch
        return

    previous = signal.getsignal(signal.SIGINT)

    def on_sigint(signum: int, frame: FrameType | None) -> None:
        if previous == signal.SIG_IGN:
            return
        watch.received = True
        if callable(previous):
            previous(signum, frame)
        else:
            raise KeyboardInterrupt

    _ = signal.signal(signal.SIGINT, on_sigint)
    try:
        yield watch
    finally:
        _ = signal.signal(signal.SIGINT, previous)


class ScriptExecutor:
    """
    Run script text against an allow-listed environment and capture what it
    prints and raises.

    Runs in-process and synchronously: there is no OS-level isolation and no
    CPU or memory limit. Callbacks registered through the timer primitives are
    never run, so their output is not part of the result.
    """

    def __init__(self, allowed_modules: Iterable[str] | None = None) -> None:
        self.allowed_modules: list[str] = list(allowed_modules or policy.ALLOWED_MODULES)

    def execute(self, script_text: str) -> ExecutionResult:
        start = time.perf_counter()
        timers = TimerRegistry()
        errors_out: list[str] = []
        captured: CapturedOutput | None = None

        # Only a Ctrl-C from the host propagates; anything the script raises,
        # KeyboardInterrupt and SystemExit included, becomes an error entry.
        with watch_host_interrupts() as host:
            try:
                with capture_output() as captured:
                    try:
                        self._run(script_text, captured, timers)
                    except BaseException as exc:  # noqa: BLE001 - script faults become results
                        if host.received:
                            raise
                        captured.stderr.emit(_format_error(exc))
            except BaseException as exc:  # noqa: BLE001 - capture setup/teardown faults too
                if host.received:
                    raise
                errors_out.append(_format_error(exc))

        runtime_ms = max(0, round((time.perf_counter() - start) * 1000))
        output = tuple(captured.output) if captured is not None else ()
        errors = tuple(captured.errors if captured is not None else ()) + tuple(errors_out)

        if timers.pending_count:
            logger.debug("Dropped %d deferred callback(s) at end of run", timers.pending_count)
        logger.debug(
            "Script finished in %d ms: %d output line(s), %d error(s)",
            runtime_ms,
            len(output),
            len(errors),
        )
        return ExecutionResult(
            output=output,
            errors=errors,
            execution_time_ms=runtime_ms,
            pending_callbacks=timers.pending_count,
        )

    def _run(self, script_text: str, captured: CapturedOutput, timers: TimerRegistry) -> None:
        environment = policy.build_environment(
            print_fn=captured.print,
            channels={"stdout": captured.stdout, "stderr": captured.stderr},
            timer_bindings=timers.bindings(),
            allowed_modules=self.allowed_modules,
        )
        # Warnings raise while compiling and running: SyntaxWarning becomes
        # SyntaxError, runtime warnings become exceptions.
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            tree = ast.parse(script_text, filename=policy.SCRIPT_FILENAME, mode="exec")
            policy.check_source(tree)
            tree = policy.guard_attributes(tree)
            code = compile(tree, policy.SCRIPT_FILENAME, "exec", dont_inherit=True)
            exec(code, environment)


_default_executor = ScriptExecutor()


def execute(script_text: str) -> ExecutionResult:
    """Run script text with the default allow-list."""
    return _default_executor.execute(str(script_text))
