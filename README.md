# kprofagent

This package is a set of building blocks for a profiling agent that runs
next to containers on a Linux node. It does three jobs:

- it finds the processes inside a container,
- it reads container runtime metadata from disk,
- it turns collapsed stack samples into flame graphs.

## Installation

```
pip install kprofagent
```

To run the test suite:

```
pip install "kprofagent[test]"
pytest
```

## Modules

### `kprofagent.execution`

This module is a small wrapper around external commands.

- `command(name, *args)` builds a `Command`. You can set `stdin` and
  `stdout` on the command before it runs.
- `Command.run()` runs the command and returns a `CommandResult`. It raises
  `subprocess.CalledProcessError` on a non-zero exit and `OSError` when the
  program cannot be started.
- `execute(cmd)` runs a command and returns a `CommandResult`. The result
  holds the exit code in `exit_code` and the combined stdout and stderr in
  `output`. A non-zero exit does not raise here. It is only reported in the
  result, and `ok` is true only for exit code 0.
- `default_commander()` returns a `Commander` that logs each command line at
  debug level. `silent_commander()` returns one that does not log.
  `silent_command(name, *args)` builds a command through the silent
  commander.
- `FakeCommander` stands in for a `Commander` in tests:
  - `on("command")` and `on("execute")` each return a `FakeMethod`.
  - `returns(...)` queues the values that the next calls will return. A
    queued error is raised by `execute`.
  - `invoked_times()` counts the calls.

### `kprofagent.runtimes`

This module reads container runtime state on disk.

- `Containerd.pid` first reads
  `<path>/io.containerd.runtime.v2.task/k8s.io/<id>/init.pid`. If that file
  is missing, it reads `<id>.pid` in the same directory.
- `Containerd.root_file_system_location` returns the task's `rootfs`
  directory.
- `Crio.root_file_system_location` takes `root.path` from
  `<path>/overlay-containers/<id>/userdata/config.json`.
- `Crio.pid` takes `pid` from `state.json` in the same directory.
- `read_runtime_spec` and `read_runtime_state` load those OCI JSON files.
- The path helpers are `containerd_pid_file`,
  `containerd_container_id_pid_file`, `containerd_root_fs`,
  `crio_config_file` and `crio_state_file`.
- `RuntimeFake` returns canned answers: `/root/fs/<id>` and `PID_<id>`. It
  can be set to fail instead.
- `get_runtime(runtime)` maps a `ContainerRuntime` value, such as `"crio"`
  or `"containerd"`, to its implementation.
- Every failure raises `ContainerRuntimeError`. This covers a missing ID or
  path, an unreadable file, bad JSON and an unsupported runtime.

### `kprofagent.container`

This module finds the processes to profile.

- `normalize_container_id` removes a `cri-o://` or `containerd://` prefix.
- `container_file_system(runtime, container_id, runtime_path)` returns the
  container's root filesystem.
- `collect_leaf_pids(pid, child_pid_getter)` follows child processes down to
  the leaves. `ChildPidGetter` looks the children up with `pgrep -P`.
- `filter_pids(pids, pgrep, commander)` keeps a PID only if the output of
  `/app/get-ps-command.sh <pid>` contains `pgrep`. The match ignores case. A
  blank pattern keeps every PID.
- `get_candidate_pids(...)` combines these steps:
  1. It reads the container's main PID from the runtime.
  2. It collects the leaf processes under that PID.
  3. It applies the optional `pgrep` filter.
  4. It logs a warning when more than one PID remains.

  You can pass the runtime factory, the child PID lookup and the commander
  in, for example to use fakes in tests.

### `kprofagent.flamegraph`

- `FlameGrapherScript` holds the options for `flamegraph.pl`. The default
  script path is `/app/FlameGraph/flamegraph.pl`.
  - Blank or non-numeric values for path, title, width, height, minimum
    width and font size fall back to the defaults.
  - `arguments()` returns the exact options that will be passed to the
    script.
  - `stack_samples_to_flame_graph(input_file, output_file)` pipes the input
    file through the script and writes the SVG to the output file. It raises
    `FlameGraphError` if the script cannot run or fails.
- `for_language(language, width)` picks a grapher for a `Language`:
  - Python and Go get the default colours.
  - Node gets `js` colours.
  - C and C++ get `mem` colours.

  The title is always `"<LANGUAGE> - CPU Flamegraph"`. The fake language
  gives a `FlameGrapherFake`. An unknown language gives a
  `FlameGrapherFakeWithError`, whose conversion always fails.

## Example

```python
from kprofagent.container import get_candidate_pids, normalize_container_id
from kprofagent.flamegraph import Language, for_language
from kprofagent.runtimes import ContainerRuntime

container_id = normalize_container_id("containerd://3f2a...")
pids = get_candidate_pids(
    ContainerRuntime.CONTAINERD,
    container_id,
    "/run/containerd",
    pgrep="python",
)

grapher = for_language(Language.PYTHON, width="1200")
grapher.stack_samples_to_flame_graph("/tmp/raw.txt", "/tmp/flamegraph.svg")
```

The PID lookup and the flame graph step both run external programs, which
must be present on the host:

- the PID lookup runs `pgrep` and the `/app/get-ps-command.sh` helper;
- the flame graph step runs `flamegraph.pl`.

## What this package does not do

This is a library only. It has no command-line program and no agent process.

It does not run any profiler to collect stack samples. It also does not
compress, split or publish the flame graphs it produces.