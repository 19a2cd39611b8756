"""Finding a container's filesystem and the processes inside it to profile."""

from __future__ import annotations

import logging
import re
import subprocess
from typing import Callable, Protocol

from kprofagent.execution import Commander, default_commander
from kprofagent.runtimes import Container, ContainerRuntime, ContainerRuntimeError, get_runtime

logger = logging.getLogger(__name__)

PS_COMMAND = "/app/get-ps-command.sh"
MANDATORY_TEXT = "container runtime and container ID are mandatory"

_RUNTIME_PREFIX = re.compile(r"cri-o://|containerd://")

RuntimeFactory = Callable[["ContainerRuntime | str"], Container]


class ChildPidSource(Protocol):
    def get(self, pid: str) -> str: ...


def _is_blank(value: str | None) -> bool:
    return value is None or not value.strip()


def normalize_container_id(container_id: str) -> str:
    """Strip the runtime scheme prefixes from a container ID."""
    return _RUNTIME_PREFIX.sub("", container_id)


def container_file_system(
    runtime: ContainerRuntime | str,
    container_id: str,
    runtime_path: str = "",
    runtime_factory: RuntimeFactory = get_runtime,
) -> str:
    """Return the root path of the container's filesystem."""
    if not runtime or not container_id:
        raise ContainerRuntimeError(MANDATORY_TEXT)
    return runtime_factory(runtime).root_file_system_location(container_id, runtime_path)


class ChildPidGetter:
    """Looks up the child processes of a PID with pgrep."""

    def __init__(self, commander: Commander | None = None) -> None:
        self.commander = commander if commander is not None else default_commander()

    def get(self, pid: str) -> str:
        """Return the newline-separated child PIDs of ``pid``, or "" if none."""
        cmd = self.commander.command("pgrep", "-P", pid)
        if cmd is None:
            return ""
        try:
            result = cmd.run()
        except (subprocess.CalledProcessError, OSError):
            return ""
        return result.output.decode(errors="replace").strip()


def collect_leaf_pids(pid: str, child_pid_getter: ChildPidSource) -> list[str]:
    """Follow child processes down from ``pid`` and return the leaf PIDs."""
    leaves: list[str] = []

    def walk(current: str) -> None:
        child = child_pid_getter.get(current)
        if _is_blank(child):
            leaves.append(current)
            return
        children = child.split("\n")
        if len(children) > 1:
            logger.debug("Detected more than one child process %s for PID: %s", children, current)
            for p in children:
                walk(p)
            return
        walk(child)

    walk(pid)
    return leaves


def filter_pids(pids: list[str], pgrep: str, commander: Commander | None = None) -> list[str]:
    """Keep only PIDs whose ps output contains ``pgrep`` (case-insensitive)."""
    if _is_blank(pgrep):
        return list(pids)
    commander = commander if commander is not None else default_commander()
    needle = pgrep.lower()
    filtered: list[str] = []
    for pid in pids:
        cmd = commander.command(PS_COMMAND, pid)
        if cmd is None:
            raise ContainerRuntimeError("ps command failed with error: no command")
        try:
            result = cmd.run()
        except subprocess.CalledProcessError as err:
            detail = (err.stderr or b"").decode(errors="replace")
            raise ContainerRuntimeError(f"ps command failed with error: {detail}: {err}") from err
        except OSError as err:
            raise ContainerRuntimeError(f"ps command failed with error: : {err}") from err
        output = result.output.decode(errors="replace").strip()
        logger.debug("ps command output: %s", output)
        if needle in output.lower():
            filtered.append(pid)
    return filtered


def get_candidate_pids(
    runtime: ContainerRuntime | str,
    container_id: str,
    runtime_path: str = "",
    pgrep: str = "",
    runtime_factory: RuntimeFactory = get_runtime,
    child_pid_getter: ChildPidSource | None = None,
    commander: Commander | None = None,
) -> list[str]:
    """Return the PIDs inside the container that should be profiled."""
    if not runtime or not container_id:
        raise ContainerRuntimeError(MANDATORY_TEXT)
    container = runtime_factory(runtime)
    pid = container.pid(container_id, runtime_path)

    commander = commander if commander is not None else default_commander()
    getter = child_pid_getter if child_pid_getter is not None else ChildPidGetter(commander)

    pids = collect_leaf_pids(pid, getter)
    if not pids:
        raise ContainerRuntimeError(f"no PIDs found for container ID: {container_id}")
    pids = filter_pids(pids, pgrep, commander)

    if len(pids) > 1:
        logger.warning(
            "Detected more than one PID to profile: %s. "
            "It will be attempt to profile all of them. "
            "Use the --pid flag specifying the corresponding PID if you only want "
            "to profile one of them.",
            pids,
        )
    return pids