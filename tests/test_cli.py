import pytest

from styx.cli import build_parser, init_project, load_project_config, main
from styx.config import ConfigError, parse_file


def test_init_project_writes_parsable_config(tmp_path):
    name = init_project(tmp_path)
    assert name == tmp_path.name
    config = parse_file(tmp_path / "styx.toml")
    assert config.project.name == tmp_path.name
    assert config.build.output_name == tmp_path.name
    assert config.build.output_type == "executable"
    assert config.targets["debug"].c_flags == ["-g", "-O0"]
    assert config.targets["release"].cxx_flags == ["-O2", "-DNDEBUG"]


def test_init_project_creates_layout(tmp_path):
    init_project(tmp_path)
    for directory in ("src", "include", "build"):
        assert (tmp_path / directory).is_dir()
    assert "Hello from" in (tmp_path / "src" / "main.cpp").read_text()


def test_init_project_refuses_existing_project(tmp_path):
    init_project(tmp_path)
    before = (tmp_path / "styx.toml").read_text()
    with pytest.raises(FileExistsError):
        init_project(tmp_path)
    assert (tmp_path / "styx.toml").read_text() == before


def test_load_project_config_explicit_path(tmp_path):
    init_project(tmp_path)
    config = load_project_config(str(tmp_path / "styx.toml"))
    assert config.project.name == tmp_path.name


def test_load_project_config_finds_toml_in_cwd(tmp_path, monkeypatch):
    init_project(tmp_path)
    monkeypatch.chdir(tmp_path)
    config = load_project_config(None)
    assert config.project.version == "0.1.0"


def test_load_project_config_falls_back_to_script(tmp_path, monkeypatch):
    (tmp_path / "styx.script").write_text(
        'Project("demo", "1.0")\nExecutable("demo", [Sources("src/*.c")])\n'
    )
    monkeypatch.chdir(tmp_path)
    config = load_project_config(None)
    assert config.project.name == "demo"
    assert config.build.output_type == "executable"
    assert config.build.sources == ["src/*.c"]


def test_load_project_config_missing(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    with pytest.raises(ConfigError, match="no configuration file found"):
        load_project_config(None)


def test_load_project_config_missing_explicit_file(tmp_path):
    with pytest.raises(ConfigError):
        load_project_config(str(tmp_path / "absent.toml"))


def test_parser_build_options():
    args = build_parser().parse_args(["build", "-t", "release", "-o", "out", "-j", "3"])
    assert args.command == "build"
    assert args.target == "release"
    assert args.output_dir == "out"
    assert args.jobs == 3
    assert args.verbose is False
    assert args.config is None


def test_parser_global_options_before_and_after_command():
    parser = build_parser()
    before = parser.parse_args(["-v", "-c", "a.toml", "clean"])
    after = parser.parse_args(["clean", "-v", "-c", "a.toml"])
    assert (before.verbose, before.config) == (True, "a.toml")
    assert (after.verbose, after.config) == (True, "a.toml")


def test_parser_run_collects_program_arguments():
    args = build_parser().parse_args(["run", "-t", "release", "alpha", "beta"])
    assert args.target == "release"
    assert args.args == ["alpha", "beta"]


def test_main_init_in_working_directory(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    assert main(["init"]) == 0
    assert (tmp_path / "styx.toml").is_file()
    assert main(["init"]) == 1


def test_main_build_without_config_fails(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    assert main(["build"]) == 1
    assert main(["clean"]) == 1


def test_main_without_command_prints_help(capsys):
    assert main([]) == 0
    out = capsys.readouterr().out
    assert "build" in out
    assert "compiler" in out


def test_main_version(capsys):
    with pytest.raises(SystemExit) as excinfo:
        main(["--version"])
    assert excinfo.value.code == 0
    assert "0.1.0" in capsys.readouterr().out


def test_main_rejects_unknown_command():
    with pytest.raises(SystemExit) as excinfo:
        main(["deploy"])
    assert excinfo.value.code == 2