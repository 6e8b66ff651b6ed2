import io
import json
import os
import sys
from pathlib import Path

import pytest

from styx.builder import Builder, BuildError
from styx.compilers import GCCCompiler
from styx.config import Config, TargetConfig
from styx.console import Logger

FAKE_COMPILER = """\
import sys, pathlib
here = pathlib.Path(__file__).parent
args = sys.argv[1:]
with (here / "calls.log").open("a") as handle:
    handle.write(" ".join(args) + "\\n")
if args and args[0] == "--fail":
    sys.exit(3)
if args and args[0] == "--record":
    (here / "recorded.txt").write_text(args[1])
    sys.exit(0)
out = args[args.index("-o") + 1]
if "-c" in args:
    src = args[args.index("-c") + 1]
    text = pathlib.Path(src).read_text()
    if "#error" in text:
        sys.stderr.write(src + ":1:2: error: boom\\n")
        sys.exit(1)
    pathlib.Path(out).write_text(text)
else:
    objs = args[: args.index("-o")]
    pathlib.Path(out).write_text("".join(pathlib.Path(o).read_text() for o in objs))
"""

MAIN_C = '#include "util.h"\nint main(void) { return util(); }\n'
UTIL_C = "int util(void) { return 0; }\n"


@pytest.fixture
def tools(tmp_path):
    directory = tmp_path / "tools"
    directory.mkdir()
    script = directory / "fakecc"
    script.write_text(f"#!{sys.executable}\n{FAKE_COMPILER}")
    script.chmod(0o755)
    return directory


@pytest.fixture
def project(tmp_path, monkeypatch):
    root = tmp_path / "proj"
    (root / "src").mkdir(parents=True)
    (root / "include").mkdir()
    (root / "src" / "main.c").write_text(MAIN_C)
    (root / "src" / "util.c").write_text(UTIL_C)
    (root / "include" / "util.h").write_text("int util(void);\n")
    monkeypatch.chdir(root)
    return root


def make_config():
    config = Config()
    config.project.name = "app"
    config.project.version = "0.1.0"
    config.project.language = "c"
    config.project.standard = "c11"
    config.build.output_type = "executable"
    config.build.output_name = "app"
    config.build.sources = ["src/*.c"]
    config.build.include_dirs = ["include"]
    debug = TargetConfig()
    debug.c_flags.append("-g")
    config.targets["debug"] = debug
    config.targets["release"] = TargetConfig()
    return config


def make_builder(tools, config=None):
    compiler = GCCCompiler(path=str(tools / "fakecc"), version="test")
    builder = Builder(config or make_config(), compiler)
    builder.logger = Logger(False, io.StringIO())
    return builder


def test_init_creates_build_and_cache_dirs(project, tools):
    builder = make_builder(tools)
    assert builder.output_dir == "build"
    assert builder.target == "debug"
    assert builder.compiler.version == "test"
    assert Path(builder.output_dir).is_dir()
    assert Path(".styx", "cache").is_dir()


def test_set_target(project, tools):
    builder = make_builder(tools)
    builder.set_target("release")
    assert builder.target == "release"
    builder.set_target("")
    assert builder.target == "debug"
    with pytest.raises(BuildError, match="target not found: nightly"):
        builder.set_target("nightly")


def test_set_output_dir(project, tools):
    builder = make_builder(tools)
    with pytest.raises(BuildError, match="output directory cannot be empty"):
        builder.set_output_dir("")
    builder.set_output_dir("out")
    assert builder.output_dir == "out"
    assert Path("out").is_dir()


def test_build_without_sources_fails(project, tools):
    config = make_config()
    config.build.sources = ["nothing/*.c"]
    builder = make_builder(tools, config)
    with pytest.raises(BuildError, match="no source files found"):
        builder.build()


def test_build_links_executable(project, tools):
    builder = make_builder(tools)
    result = builder.build()
    compiler = builder.compiler
    assert result == os.path.join("build", "debug", "app" + compiler.executable_extension)
    assert Path(result).read_text() == MAIN_C + UTIL_C
    assert Path("build", "debug", "src", "main.o").read_text() == MAIN_C


def test_build_passes_flags_to_compiler(project, tools):
    builder = make_builder(tools)
    builder.build()
    calls = (tools / "calls.log").read_text().splitlines()
    compile_calls = [call for call in calls if call.startswith("-c ")]
    assert len(compile_calls) == 2
    for call in compile_calls:
        assert "-std=c11" in call.split()
        assert "-Iinclude" in call.split()
        assert "-g" in call.split()


def test_build_records_header_dependencies(project, tools):
    builder = make_builder(tools)
    builder.build()
    obj = os.path.join("build", "debug", "src", "main.o")
    node = builder.graph.get_node(obj)
    ids = {dep.id for dep in node.dependencies}
    assert os.path.join("src", "main.c") in ids
    assert os.path.join("include", "util.h") in ids


def test_build_writes_cache(project, tools):
    builder = make_builder(tools)
    result = builder.build()
    assert result == os.path.join(
        "build", "debug", "app" + builder.compiler.executable_extension
    )
    data = json.loads(Path(".styx", "cache", "build.json").read_text())
    obj = os.path.join("build", "debug", "src", "main.o")
    assert obj in data["entries"]
    assert data["entries"][obj]["dependencies"][0] == os.path.join("src", "main.c")


def test_compile_error_is_reported(project, tools):
    Path("src", "util.c").write_text("#error broken\n")
    builder = make_builder(tools)
    with pytest.raises(BuildError, match="failed to compile source files"):
        builder.build()
    assert "boom" in builder.logger.output.getvalue()


def test_failing_pre_build_command(project, tools):
    config = make_config()
    config.build.pre_build_cmds = [f"{tools / 'fakecc'} --fail"]
    builder = make_builder(tools, config)
    with pytest.raises(BuildError, match="pre-build commands failed"):
        builder.build()
    assert not Path("build", "debug", "src").exists()


def test_post_build_substitutes_output(project, tools):
    config = make_config()
    config.build.post_build_cmds = [f"{tools / 'fakecc'} --record ${{output}}"]
    builder = make_builder(tools, config)
    result = builder.build()
    assert (tools / "recorded.txt").read_text() == result


def test_unsupported_output_type(project, tools):
    config = make_config()
    config.build.output_type = "plugin"
    builder = make_builder(tools, config)
    with pytest.raises(BuildError, match="unsupported output type: plugin"):
        builder.build()


def test_clean_removes_target_outputs(project, tools):
    builder = make_builder(tools)
    output = builder.build()
    assert Path(output).read_text() == MAIN_C + UTIL_C
    builder.clean()
    assert not Path(output).exists()
    assert not Path("build", "debug").exists()
    data = json.loads(Path(".styx", "cache", "build.json").read_text())
    assert data["entries"] == {}