import os
import stat

import pytest

from kprofagent.flamegraph import (
    FlameGrapherFake,
    FlameGrapherFakeWithError,
    FlameGrapherScript,
    FlameGraphError,
    Language,
    for_language,
)

DEFAULTS = dict(
    path="/app/FlameGraph/flamegraph.pl",
    title="CPU Flamegraph",
    width="1800",
    height="16",
    font_type="Verdana",
    font_size="12",
)


def expected(**overrides):
    values = dict(DEFAULTS)
    values.update(overrides)
    g = FlameGrapherScript()
    for key, value in values.items():
        setattr(g, key, value)
    return g


def test_default_script():
    g = FlameGrapherScript()
    assert (g.path, g.title, g.width, g.height, g.font_type, g.font_size) == (
        "/app/FlameGraph/flamegraph.pl", "CPU Flamegraph", "1800", "16", "Verdana", "12"
    )
    assert g.subtitle == "" and g.min_width == "" and g.colors == ""
    assert not (g.hash or g.reverse or g.inverted or g.flame_chart or g.negate)


@pytest.mark.parametrize(
    "options, overrides",
    [
        ({"path": "/other/path"}, {"path": "/other/path"}),
        ({"path": ""}, {}),
        ({"title": "Title"}, {"title": "Title"}),
        ({"title": ""}, {}),
        ({"subtitle": "Subtitle"}, {"subtitle": "Subtitle"}),
        ({"width": "1000"}, {"width": "1000"}),
        ({"width": ""}, {}),
        ({"width": "no-numeric"}, {}),
        ({"height": "20"}, {"height": "20"}),
        ({"height": ""}, {}),
        ({"height": "no-numeric"}, {}),
        ({"min_width": "100"}, {"min_width": "100"}),
        ({"min_width": "no-numeric"}, {}),
        ({"font_type": "FontType"}, {"font_type": "FontType"}),
        ({"font_size": "10"}, {"font_size": "10"}),
        ({"font_size": "no-numeric"}, {}),
        ({"count_name": "CountName"}, {"count_name": "CountName"}),
        ({"name_type": "NameType"}, {"name_type": "NameType"}),
        ({"colors": "Colors"}, {"colors": "Colors"}),
        ({"bg_colors": "BgColors"}, {"bg_colors": "BgColors"}),
        ({"hash": True}, {"hash": True}),
        ({"reverse": True}, {"reverse": True}),
        ({"inverted": True}, {"inverted": True}),
        ({"flame_chart": True}, {"flame_chart": True}),
        ({"negate": True}, {"negate": True}),
    ],
)
def test_script_options(options, overrides):
    assert FlameGrapherScript(**options) == expected(**overrides)


def test_default_arguments():
    assert FlameGrapherScript().arguments() == [
        "--title", "CPU Flamegraph",
        "--width", "1800",
        "--height", "16",
        "--fonttype", "Verdana",
        "--fontsize", "12",
    ]


def test_full_arguments():
    g = FlameGrapherScript(
        title="Title",
        subtitle="Subtitle",
        width="1000",
        height="20",
        min_width="1",
        font_type="FontType",
        font_size="20",
        count_name="CountName",
        name_type="NameType",
        colors="Colors",
        bg_colors="BgColors",
        hash=True,
        reverse=True,
        inverted=True,
        flame_chart=True,
        negate=True,
    )
    wanted = [
        "--title", "Title",
        "--subtitle", "Subtitle",
        "--width", "1000",
        "--height", "20",
        "--minwidth", "1",
        "--fonttype", "FontType",
        "--fontsize", "20",
        "--countname", "CountName",
        "--nametype", "NameType",
        "--colors", "Colors",
        "--bgcolors", "BgColors",
        "--hash",
        "--reverse",
        "--inverted",
        "--flamechart",
        "--negate",
    ]
    assert sorted(g.arguments()) == sorted(wanted)


@pytest.fixture
def raw_file(tmp_path):
    path = tmp_path / "raw.txt"
    path.write_text("main;work 10\nmain;idle 5\n")
    return path


def test_fails_when_input_missing(tmp_path):
    with pytest.raises(FileNotFoundError):
        FlameGrapherScript().stack_samples_to_flame_graph(str(tmp_path / "unknown"), "")


def test_fails_when_output_cannot_be_created(raw_file):
    with pytest.raises(OSError):
        FlameGrapherScript().stack_samples_to_flame_graph(str(raw_file), "")


def test_fails_when_script_cannot_be_invoked(tmp_path, raw_file):
    g = FlameGrapherScript(path=str(tmp_path / "missing.pl"))
    with pytest.raises(FlameGraphError):
        g.stack_samples_to_flame_graph(str(raw_file), str(tmp_path / "out.svg"))


def _script(tmp_path, body):
    path = tmp_path / "flamegraph.sh"
    path.write_text("#!/bin/sh\n" + body)
    path.chmod(path.stat().st_mode | stat.S_IXUSR)
    return str(path)


def test_runs_script_with_arguments_and_input(tmp_path, raw_file):
    g = FlameGrapherScript(path=_script(tmp_path, 'echo "$@"\ncat\n'), colors="js")
    out = tmp_path / "out.svg"
    g.stack_samples_to_flame_graph(str(raw_file), str(out))
    assert out.read_text() == (
        "--title CPU Flamegraph --width 1800 --height 16 --fonttype Verdana "
        "--fontsize 12 --colors js\n"
        "main;work 10\nmain;idle 5\n"
    )


def test_failing_script_raises(tmp_path, raw_file):
    g = FlameGrapherScript(path=_script(tmp_path, "echo broken >&2\nexit 3\n"))
    with pytest.raises(FlameGraphError, match="status 3"):
        g.stack_samples_to_flame_graph(str(raw_file), str(tmp_path / "out.svg"))
    assert os.path.exists(tmp_path / "out.svg")


@pytest.mark.parametrize(
    "language, wanted",
    [
        (Language.PYTHON, FlameGrapherScript(title="PYTHON - CPU Flamegraph")),
        (Language.GO, FlameGrapherScript(title="GO - CPU Flamegraph")),
        (Language.NODE, FlameGrapherScript(title="NODE - CPU Flamegraph", colors="js")),
        (Language.CLANG, FlameGrapherScript(title="CLANG - CPU Flamegraph", colors="mem")),
        (Language.FAKE, FlameGrapherFake()),
        ("", FlameGrapherFakeWithError()),
    ],
)
def test_for_language(language, wanted):
    assert for_language(language) == wanted


def test_for_language_with_width():
    assert for_language("python", "1000").width == "1000"


def test_fake_records_invocation():
    fake = FlameGrapherFake()
    fake.stack_samples_to_flame_graph("in", "out")
    assert fake.invoked is True


def test_fake_with_error_raises():
    fake = FlameGrapherFakeWithError()
    with pytest.raises(FlameGraphError, match="StackSamplesToFlameGraph with error"):
        fake.stack_samples_to_flame_graph("in", "out")
    assert fake.invoked is True