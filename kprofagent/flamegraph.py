"""Turning stack samples into flame graphs with the flamegraph.pl script."""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from enum import Enum

from kprofagent import execution

logger = logging.getLogger(__name__)

DEFAULT_PATH = "/app/FlameGraph/flamegraph.pl"
DEFAULT_TITLE = "CPU Flamegraph"
DEFAULT_WIDTH = "1800"
DEFAULT_HEIGHT = "16"
DEFAULT_FONT_TYPE = "Verdana"
DEFAULT_FONT_SIZE = "12"


class Language(str, Enum):
    PYTHON = "python"
    GO = "go"
    NODE = "node"
    CLANG = "clang"
    CLANG_PLUS_PLUS = "clang++"
    FAKE = "fake"


class FlameGraphError(Exception):
    """Raised when a flame graph cannot be produced."""


def _is_blank(value: str) -> bool:
    return not value or not value.strip()


def _is_numeric(value: str) -> bool:
    return bool(value) and value.isascii() and value.isdigit()


@dataclass
class FlameGrapherScript:
    """Options for flamegraph.pl; invalid values fall back to the defaults."""

    path: str = DEFAULT_PATH
    title: str = DEFAULT_TITLE
    subtitle: str = ""
    width: str = DEFAULT_WIDTH
    height: str = DEFAULT_HEIGHT
    min_width: str = ""
    font_type: str = DEFAULT_FONT_TYPE
    font_size: str = DEFAULT_FONT_SIZE
    count_name: str = ""
    name_type: str = ""
    colors: str = ""
    bg_colors: str = ""
    hash: bool = False
    reverse: bool = False
    inverted: bool = False
    flame_chart: bool = False
    negate: bool = False

    def __post_init__(self) -> None:
        if _is_blank(self.path):
            self.path = DEFAULT_PATH
        if _is_blank(self.title):
            self.title = DEFAULT_TITLE
        if not _is_numeric(self.width):
            self.width = DEFAULT_WIDTH
        if not _is_numeric(self.height):
            self.height = DEFAULT_HEIGHT
        if self.min_width and not _is_numeric(self.min_width):
            self.min_width = ""
        if not _is_numeric(self.font_size):
            self.font_size = DEFAULT_FONT_SIZE

    def arguments(self) -> list[str]:
        """Command-line arguments passed to the script."""
        args = [
            "--title", self.title,
            "--width", self.width,
            "--height", self.height,
            "--fonttype", self.font_type,
            "--fontsize", self.font_size,
        ]
        optional = [
            ("--subtitle", self.subtitle),
            ("--minwidth", self.min_width),
            ("--countname", self.count_name),
            ("--nametype", self.name_type),
            ("--colors", self.colors),
            ("--bgcolors", self.bg_colors),
        ]
        for flag, value in optional:
            if not _is_blank(value):
                args += [flag, value]
        switches = [
            ("--hash", self.hash),
            ("--reverse", self.reverse),
            ("--inverted", self.inverted),
            ("--flamechart", self.flame_chart),
            ("--negate", self.negate),
        ]
        args += [flag for flag, enabled in switches if enabled]
        return args

    def stack_samples_to_flame_graph(self, input_file: str, output_file: str) -> None:
        """Feed ``input_file`` to the script and write the SVG to ``output_file``.

        Raises OSError if a file cannot be opened and FlameGraphError if the
        script cannot be run or fails.
        """
        with open(input_file, "rb") as src, open(output_file, "wb") as dst:
            cmd = execution.command(self.path, *self.arguments())
            cmd.stdin = src
            cmd.stdout = dst
            try:
                cmd.run()
            except subprocess.CalledProcessError as err:
                detail = (err.stderr or b"").decode(errors="replace")
                logger.error(detail)
                raise FlameGraphError(
                    f"{self.path} exited with status {err.returncode}: {detail}"
                ) from err
            except OSError as err:
                logger.error("cannot run %s: %s", self.path, err)
                raise FlameGraphError(f"cannot run {self.path}: {err}") from err


@dataclass
class FlameGrapherFake:
    """Flame grapher that only records that it was called."""

    invoked: bool = False

    def stack_samples_to_flame_graph(self, input_file: str, output_file: str) -> None:
        self.invoked = True


@dataclass
class FlameGrapherFakeWithError:
    """Flame grapher that records the call and always fails."""

    invoked: bool = False

    def stack_samples_to_flame_graph(self, input_file: str, output_file: str) -> None:
        self.invoked = True
        raise FlameGraphError("StackSamplesToFlameGraph with error")


FlameGrapher = FlameGrapherScript | FlameGrapherFake | FlameGrapherFakeWithError


def for_language(language: Language | str, width: str = "") -> FlameGrapher:
    """Return the flame grapher suited to ``language``."""
    try:
        lang = Language(language)
    except ValueError:
        return FlameGrapherFakeWithError()
    title = f"{lang.value.upper()} - CPU Flamegraph"
    if lang in (Language.PYTHON, Language.GO):
        return FlameGrapherScript(title=title, width=width)
    if lang is Language.NODE:
        return FlameGrapherScript(title=title, width=width, colors="js")
    if lang in (Language.CLANG, Language.CLANG_PLUS_PLUS):
        return FlameGrapherScript(title=title, width=width, colors="mem")
    return FlameGrapherFake()