import pytest

from styx.config import (
    BuildConfig,
    Config,
    ConfigError,
    ProjectConfig,
    config_from_dict,
    load_config,
    parse_file,
    validate_config,
)

SAMPLE = """[project]
name = "demo"
version = "0.1.0"
language = "c++"
standard = "c++23"

[build]
output_type = "executable"
output_name = "demo"
sources = [ "src/*.cpp", "src/**/*.cpp" ]
include_dirs = [ "include" ]

[toolchain]
compiler = "auto"
c_flags = [ "-Wall", "-Wextra" ]
cxx_flags = [ "-Wall", "-Wextra" ]
linker_flags = []

[targets.debug]
c_flags = ["-g", "-O0"]
cxx_flags = ["-g", "-O0"]

[targets.release]
c_flags = ["-O2", "-DNDEBUG"]
cxx_flags = ["-O2", "-DNDEBUG"]
"""


def _write(path, text):
    path.write_text(text, encoding="utf-8")
    return path


def test_parse_file_reads_all_sections(tmp_path):
    config = parse_file(_write(tmp_path / "styx.toml", SAMPLE))
    assert config.project.name == "demo"
    assert config.project.standard == "c++23"
    assert config.build.output_type == "executable"
    assert config.build.sources == ["src/*.cpp", "src/**/*.cpp"]
    assert config.build.include_dirs == ["include"]
    assert config.toolchain.compiler == "auto"
    assert config.toolchain.linker_flags == []
    assert set(config.targets) == {"debug", "release"}
    assert config.targets["release"].cxx_flags == ["-O2", "-DNDEBUG"]


def test_missing_sections_get_defaults():
    config = config_from_dict({"project": {"name": "p"}})
    assert config.build.sources == []
    assert config.toolchain.compiler == ""
    assert config.targets == {}
    assert config.environment == {}


def test_dependencies_and_environment():
    config = config_from_dict(
        {
            "dependencies": {"zlib": {"version": "1.3", "local": "third_party/zlib"}},
            "environment": {"osdev": {"output_dir": "out", "env": {"CC": "cc"}}},
        }
    )
    assert config.dependencies["zlib"].local == "third_party/zlib"
    assert config.environment["osdev"].env == {"CC": "cc"}


def test_unknown_keys_are_ignored():
    config = config_from_dict({"project": {"name": "p", "extra": 1}, "other": {}})
    assert config.project.name == "p"


@pytest.mark.parametrize(
    "data",
    [
        {"project": {"name": 5}},
        {"build": {"sources": "src/*.c"}},
        {"build": {"sources": ["a.c", 3]}},
        {"project": "name"},
        {"targets": {"debug": ["-g"]}},
    ],
)
def test_wrong_types_raise(data):
    with pytest.raises(ConfigError):
        config_from_dict(data)


def test_validate_requires_name():
    config = Config(build=BuildConfig(output_type="executable"))
    with pytest.raises(ConfigError, match="project name is required"):
        validate_config(config)


def test_validate_requires_output_type():
    config = Config(project=ProjectConfig(name="p"))
    with pytest.raises(ConfigError, match="build output type is required"):
        validate_config(config)


def test_validate_rejects_unknown_output_type():
    config = Config(project=ProjectConfig(name="p"), build=BuildConfig(output_type="plugin"))
    with pytest.raises(ConfigError, match="invalid output type: plugin"):
        validate_config(config)


@pytest.mark.parametrize("output_type", ["executable", "static_lib", "shared_lib"])
def test_validate_defaults_output_name(output_type):
    config = Config(project=ProjectConfig(name="proj"), build=BuildConfig(output_type=output_type))
    validate_config(config)
    assert config.build.output_name == "proj"


def test_validate_keeps_explicit_output_name():
    config = Config(
        project=ProjectConfig(name="proj"),
        build=BuildConfig(output_type="executable", output_name="tool"),
    )
    validate_config(config)
    assert config.build.output_name == "tool"


def test_parse_file_missing(tmp_path):
    with pytest.raises(ConfigError, match="configuration file not found"):
        parse_file(tmp_path / "nope.toml")


def test_parse_file_malformed(tmp_path):
    path = _write(tmp_path / "styx.toml", "[project\nname = ")
    with pytest.raises(ConfigError, match="failed to parse configuration"):
        parse_file(path)


def test_parse_file_invalid(tmp_path):
    path = _write(tmp_path / "styx.toml", '[build]\noutput_type = "executable"\n')
    with pytest.raises(ConfigError, match="invalid configuration: project name is required"):
        parse_file(path)


def test_load_config_from_directory(tmp_path):
    _write(tmp_path / "styx.toml", SAMPLE)
    assert load_config(tmp_path).project.name == "demo"


def test_load_config_from_toml_path(tmp_path):
    path = _write(tmp_path / "custom.toml", SAMPLE)
    assert load_config(path).build.output_name == "demo"


def test_load_config_capitalised_name(tmp_path):
    _write(tmp_path / "Styx.toml", SAMPLE)
    assert load_config(tmp_path).project.version == "0.1.0"


def test_load_config_from_working_directory(tmp_path, monkeypatch):
    _write(tmp_path / "styx.toml", SAMPLE)
    monkeypatch.chdir(tmp_path)
    assert load_config().project.language == "c++"


def test_load_config_none_found(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    with pytest.raises(ConfigError, match="no configuration file found"):
        load_config(tmp_path)