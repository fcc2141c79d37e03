"""Process location and termination.

The locator finds running processes belonging to an application by
normalized substring match against the process table and, when a bundle
identifier is known, through the platform's application scripting
interface. The terminator walks each process up an escalation ladder:
cooperative quit, SIGTERM, and on the last attempt SIGKILL.
"""

import logging
import os
import signal
from collections.abc import Iterable

from softctl.core.context import OperationContext
from softctl.core.errors import CommandError, ProcessRunningError
from softctl.core.matching import normalize_name
from softctl.models.process import ProcessDescriptor
from softctl.utils.shell import command_exists, run_command

logger = logging.getLogger(__name__)

# Process table listing: pid followed by the full command line
_PS_ARGS = ["ps", "-axo", "pid=,command="]

# Timeout for short process-table and scripting queries
_QUERY_TIMEOUT: float = 15.0


def is_process_alive(pid: int) -> bool:
    """Check whether a process id is still alive.

    A process owned by another user counts as alive.
    """
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return True
    return True


class ProcessLocator:
    """Finds processes associated with an application name or bundle id."""

    def __init__(self, timeout: float = _QUERY_TIMEOUT) -> None:
        self._timeout = timeout

    def find(
        self,
        app_name: str,
        bundle_id: str | None = None,
        ctx: OperationContext | None = None,
    ) -> list[ProcessDescriptor]:
        """Find running processes for an application.

        Args:
            app_name: Application or search name.
            bundle_id: Bundle identifier, matched exactly when resolvable.
            ctx: Operation context used to abort the queries.

        Returns:
            Descriptors deduplicated by process id; bundle-id matches win.
        """
        is_cancelled = ctx.is_cancelled if ctx is not None else None
        table = self._process_table(is_cancelled)
        found: dict[int, ProcessDescriptor] = {}

        if bundle_id:
            friendly = self._name_for_bundle(bundle_id, is_cancelled)
            if friendly:
                for proc in self._filter(table, friendly, bundle_id):
                    found[proc.pid] = proc

        for proc in self._filter(table, app_name, None):
            found.setdefault(proc.pid, proc)

        if found:
            logger.info(
                "Found %d process(es) for %s: %s",
                len(found),
                app_name,
                ", ".join(str(pid) for pid in found),
            )
        return list(found.values())

    def _process_table(self, is_cancelled) -> list[tuple[int, str]]:
        """Read the process table as (pid, command) pairs."""
        try:
            result = run_command(_PS_ARGS, timeout=self._timeout, is_cancelled=is_cancelled)
        except (FileNotFoundError, PermissionError) as e:
            logger.warning("Cannot list processes: %s", e)
            return []
        if not result.success:
            logger.warning("ps failed: %s", result.stderr.strip() or result.returncode)
            return []

        own = {os.getpid(), os.getppid()}
        table: list[tuple[int, str]] = []
        for line in result.stdout.splitlines():
            parts = line.strip().split(None, 1)
            if len(parts) != 2 or not parts[0].isdigit():
                continue
            pid = int(parts[0])
            if pid in own:
                continue
            table.append((pid, parts[1]))
        return table

    def _filter(
        self,
        table: Iterable[tuple[int, str]],
        name: str,
        bundle_id: str | None,
    ) -> list[ProcessDescriptor]:
        wanted = normalize_name(name)
        if not wanted:
            return []
        return [
            ProcessDescriptor(pid=pid, command=command, bundle_id=bundle_id)
            for pid, command in table
            if wanted in normalize_name(command)
        ]

    def _name_for_bundle(self, bundle_id: str, is_cancelled) -> str | None:
        """Resolve the running application name of a bundle identifier."""
        if not command_exists("osascript"):
            return None
        script = (
            'tell application "System Events" to get name of application processes '
            f'where bundle identifier is "{bundle_id}"'
        )
        try:
            result = run_command(
                ["osascript", "-e", script],
                timeout=self._timeout,
                is_cancelled=is_cancelled,
            )
        except (OSError, CommandError) as e:
            logger.debug("Bundle name lookup failed for %s: %s", bundle_id, e)
            return None
        name = result.stdout.strip() if result.success else ""
        return name.split(",")[0].strip() or None


class ProcessTerminator:
    """Stops processes with escalating signals and liveness checks.

    Attributes:
        attempts: Escalation attempts per process.
        kill_delay: Seconds waited after each signal before re-checking.
    """

    def __init__(self, attempts: int = 3, kill_delay: float = 2.0) -> None:
        self.attempts = attempts
        self.kill_delay = kill_delay

    def terminate(
        self,
        processes: list[ProcessDescriptor],
        ctx: OperationContext,
        app_name: str | None = None,
    ) -> None:
        """Terminate every process, escalating until each is gone.

        Args:
            processes: Processes found by the locator.
            ctx: Operation context; cancellation aborts the ladder.
            app_name: Friendly name for the cooperative quit request.

        Raises:
            ProcessRunningError: If any process survives all attempts.
            OperationCancelledError: If the operation is cancelled.
            OperationTimeoutError: If the operation deadline expires.
        """
        survivors: list[ProcessDescriptor] = []
        quit_requested: set[str] = set()

        for proc in processes:
            ctx.check()
            if not self._stop(proc, ctx, app_name, quit_requested):
                survivors.append(proc)

        if survivors:
            pids = ", ".join(str(p.pid) for p in survivors)
            raise ProcessRunningError(
                f"{len(survivors)} process(es) still running after termination",
                details=f"Surviving process ids: {pids}",
            )

    def _stop(
        self,
        proc: ProcessDescriptor,
        ctx: OperationContext,
        app_name: str | None,
        quit_requested: set[str],
    ) -> bool:
        """Run the escalation ladder for one process. Returns True once gone."""
        for attempt in range(1, self.attempts + 1):
            if not is_process_alive(proc.pid):
                return True

            target = proc.bundle_id or app_name
            if target and target not in quit_requested:
                quit_requested.add(target)
                if self._request_quit(proc.bundle_id, app_name, ctx):
                    self._pause(ctx)
                    if not is_process_alive(proc.pid):
                        return True

            logger.debug("Sending SIGTERM to %d (attempt %d)", proc.pid, attempt)
            if self._signal(proc.pid, signal.SIGTERM):
                return True
            self._pause(ctx)
            if not is_process_alive(proc.pid):
                return True

            if attempt == self.attempts:
                logger.debug("Sending SIGKILL to %d", proc.pid)
                if self._signal(proc.pid, signal.SIGKILL):
                    return True
                self._pause(ctx)

        alive = is_process_alive(proc.pid)
        if alive:
            logger.warning("Process %d survived %d termination attempts", proc.pid, self.attempts)
        return not alive

    def _request_quit(
        self,
        bundle_id: str | None,
        app_name: str | None,
        ctx: OperationContext,
    ) -> bool:
        """Ask the application to quit through the scripting interface."""
        if not command_exists("osascript"):
            return False
        if bundle_id:
            script = f'tell application id "{bundle_id}" to quit'
        elif app_name:
            script = f'tell application "{app_name}" to quit'
        else:
            return False
        try:
            result = run_command(
                ["osascript", "-e", script],
                timeout=_QUERY_TIMEOUT,
                is_cancelled=ctx.is_cancelled,
            )
        except (OSError, CommandError) as e:
            logger.debug("Cooperative quit failed: %s", e)
            return False
        return result.success

    def _signal(self, pid: int, sig: signal.Signals) -> bool:
        """Send a signal. Returns True if the process no longer exists."""
        try:
            os.kill(pid, sig)
        except ProcessLookupError:
            return True
        except PermissionError:
            logger.warning("Not permitted to signal process %d", pid)
        return False

    def _pause(self, ctx: OperationContext) -> None:
        if ctx.wait(self.kill_delay):
            raise ctx.cancellation_error()
