[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "kprofagent"
version = "1.3.0"
description = "Profiling agent utilities: container PID discovery, container runtime inspection and flame graph generation"
requires-python = ">=3.10"
dependencies = []
keywords = ["profiling", "flamegraph", "containers", "containerd", "cri-o", "pid"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Debuggers",
    "Topic :: System :: Monitoring",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["kprofagent"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
