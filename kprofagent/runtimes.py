"""Locating the root filesystem and PID of containers per container runtime."""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Protocol


class ContainerRuntime(str, Enum):
    CRIO = "crio"
    CONTAINERD = "containerd"
    FAKE = "fake"
    FAKE_WITH_ROOT_FS_ERROR = "fakeWithRootFileSystemLocationResultError"
    FAKE_WITH_PID_ERROR = "fakeWithPIDResultError"


class ContainerRuntimeError(Exception):
    """Raised when container information cannot be obtained."""


class Container(Protocol):
    def root_file_system_location(self, container_id: str, runtime_path: str) -> str: ...

    def pid(self, container_id: str, runtime_path: str) -> str: ...


def _require(container_id: str, runtime_path: str) -> None:
    if not container_id or not container_id.strip():
        raise ContainerRuntimeError("container ID is mandatory")
    if not runtime_path or not runtime_path.strip():
        raise ContainerRuntimeError("container runtime path is mandatory")


def containerd_pid_file(container_id: str, runtime_path: str) -> str:
    return f"{runtime_path}/io.containerd.runtime.v2.task/k8s.io/{container_id}/init.pid"


def containerd_container_id_pid_file(container_id: str, runtime_path: str) -> str:
    return f"{runtime_path}/io.containerd.runtime.v2.task/k8s.io/{container_id}/{container_id}.pid"


def containerd_root_fs(container_id: str, runtime_path: str) -> str:
    return f"{runtime_path}/io.containerd.runtime.v2.task/k8s.io/{container_id}/rootfs"


def crio_config_file(container_id: str, runtime_path: str) -> str:
    return f"{runtime_path}/overlay-containers/{container_id}/userdata/config.json"


def crio_state_file(container_id: str, runtime_path: str) -> str:
    return f"{runtime_path}/overlay-containers/{container_id}/userdata/state.json"


def _read_json_object(path: str) -> dict[str, Any]:
    try:
        raw = Path(path).read_bytes()
    except OSError as err:
        raise ContainerRuntimeError(f"read file failed: {path}: {err}") from err
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as err:
        raise ContainerRuntimeError(f"unmarshal file failed: {path}: {err}") from err
    if not isinstance(data, dict):
        raise ContainerRuntimeError(f"unmarshal file failed: {path}: not a JSON object")
    return data


def read_runtime_spec(config_file: str) -> dict[str, Any]:
    """Read an OCI runtime spec (config.json)."""
    spec = _read_json_object(config_file)
    root = spec.get("root")
    if root is not None:
        if not isinstance(root, dict) or not isinstance(root.get("path", ""), str):
            raise ContainerRuntimeError(f"unmarshal file failed: {config_file}: invalid root")
    return spec


def read_runtime_state(state_file: str) -> dict[str, Any]:
    """Read an OCI runtime state (state.json)."""
    state = _read_json_object(state_file)
    pid = state.get("pid", 0)
    if isinstance(pid, bool) or not isinstance(pid, int):
        raise ContainerRuntimeError(f"unmarshal file failed: {state_file}: invalid pid")
    return state


class Containerd:
    """containerd layout under the runtime path."""

    def root_file_system_location(self, container_id: str, runtime_path: str) -> str:
        _require(container_id, runtime_path)
        return containerd_root_fs(container_id, runtime_path)

    def pid(self, container_id: str, runtime_path: str) -> str:
        _require(container_id, runtime_path)
        file = Path(containerd_pid_file(container_id, runtime_path))
        if not file.exists():
            file = Path(containerd_container_id_pid_file(container_id, runtime_path))
            if not file.exists():
                raise ContainerRuntimeError(f"pid file not found: {file}")
        try:
            return file.read_text()
        except OSError as err:
            raise ContainerRuntimeError(f"read file failed: {file}: {err}") from err


class Crio:
    """CRI-O layout under the runtime path."""

    def root_file_system_location(self, container_id: str, runtime_path: str) -> str:
        _require(container_id, runtime_path)
        config = crio_config_file(container_id, runtime_path)
        root = read_runtime_spec(config).get("root")
        if root is None:
            raise ContainerRuntimeError(f"root not found in runtime spec: {config}")
        return root.get("path", "")

    def pid(self, container_id: str, runtime_path: str) -> str:
        _require(container_id, runtime_path)
        state = read_runtime_state(crio_state_file(container_id, runtime_path))
        return str(state.get("pid", 0))


@dataclass
class RuntimeFake:
    """Runtime returning canned values, optionally failing."""

    root_fs_error: bool = False
    pid_error: bool = False

    def root_file_system_location(self, container_id: str, runtime_path: str) -> str:
        if self.root_fs_error:
            raise ContainerRuntimeError("fake RootFileSystemLocation with error")
        return f"/root/fs/{container_id}"

    def pid(self, container_id: str, runtime_path: str) -> str:
        if self.pid_error:
            raise ContainerRuntimeError("fake PID with error")
        return f"PID_{container_id}"


def get_runtime(runtime: ContainerRuntime | str) -> Container:
    """Return the Container implementation for the given runtime."""
    if not runtime:
        raise ContainerRuntimeError("container runtime is are mandatory")
    try:
        kind = ContainerRuntime(runtime)
    except ValueError:
        raise ContainerRuntimeError(f"unsupported container runtime: {runtime}") from None
    if kind is ContainerRuntime.CRIO:
        return Crio()
    if kind is ContainerRuntime.CONTAINERD:
        return Containerd()
    if kind is ContainerRuntime.FAKE_WITH_ROOT_FS_ERROR:
        return RuntimeFake(root_fs_error=True)
    if kind is ContainerRuntime.FAKE_WITH_PID_ERROR:
        return RuntimeFake(pid_error=True)
    return RuntimeFake()