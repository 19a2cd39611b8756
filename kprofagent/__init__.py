"""Container process discovery, container runtime inspection and flame graph generation for profiling."""

__version__ = "1.3.0"
__all__ = ["container", "execution", "flamegraph", "runtimes"]