# styx

A small build system for C and C++ projects. You describe the project once in
`styx.toml`, or in a `styx.script` file. `styx` then finds the sources and
tracks their header dependencies. It compiles only what has changed. Last, it
links an executable or creates a static or shared library.

GCC and Clang are supported. When the compiler is set to `auto` or left
empty, styx uses Clang if it is installed and GCC if it is not.

## Installing

```
pip install .
```

This installs the `styx` command. You need Python 3.11 or newer and no
third-party packages. A C/C++ compiler must be on `PATH`. Static libraries
also need `ar`; with Clang, `llvm-ar` is tried first.

## Quick start

```
mkdir hello && cd hello
styx init
styx build
styx run
```

`styx init` creates `src/`, `include/` and `build/` and a starter
`src/main.cpp`. It also writes a `styx.toml` that names the project after the
current directory. It refuses to run if `styx.toml` already exists.

## Commands

| Command          | What it does                                                     |
|------------------|------------------------------------------------------------------|
| `styx build`     | build the project                                                |
| `styx run`       | build, then run the resulting executable with any further args   |
| `styx clean`     | remove `<output>/<target>/` and the whole `.styx/` cache folder   |
| `styx init`      | create a new project in the current directory                    |
| `styx compiler`  | list the GCC and Clang installations found on `PATH`             |

Options:

- `-c, --config PATH` selects the configuration file, which is read as TOML.
  Without this option, styx looks in the current directory for `styx.toml` or
  `Styx.toml`. If neither is there, it looks for `styx.script` or
  `Styx.script`.
- `-v, --verbose` prints more output.
- `-t, --target NAME` selects the target for `build`, `run` and `clean`. The
  default is `debug`. A name given here must be defined in the configuration.
- `-o, --output-dir DIR` sets the output directory for `build`. The default is
  `build`.
- `-j, --jobs N` is accepted by `build`. The build always uses one worker per
  CPU.
- `--version` prints the version.

Build output goes to `<output-dir>/<target>/`. Object files mirror the
relative directory of their sources. Cache data is kept in
`.styx/cache/build.json`.

## Configuration (`styx.toml`)

```toml
[project]
name = "hello"
version = "0.1.0"
language = "c++"        # "c" or "c++"
standard = "c++23"      # passed as -std=...

[build]
output_type = "executable"   # executable, static_lib or shared_lib
output_name = "hello"        # defaults to the project name
sources = ["src/*.cpp", "src/**/*.cpp"]
include_dirs = ["include"]
exclude = ["*_test.cpp"]
pre_build_cmds = ["echo starting"]
post_build_cmds = ["strip ${output}"]

[toolchain]
compiler = "auto"            # auto, gcc or clang
c_flags = ["-Wall", "-Wextra"]
cxx_flags = ["-Wall", "-Wextra"]
linker_flags = []
archiver_flags = []

[targets.debug]
cxx_flags = ["-g", "-O0"]

[targets.release]
cxx_flags = ["-O2", "-DNDEBUG"]
linker_flags = []
```

- `project.name` and `build.output_type` are required.
- Flags are taken from `c_flags` when the language is `"c"` and from
  `cxx_flags` when it is `"c++"`. The target's flags come after the toolchain
  flags, the `-std=` flag and the `-I` flags.
- When any source has a C++ extension (`.cpp`, `.cc`, `.cxx`, `.C`), styx
  compiles those sources with `clang++` or `g++`. Linking also uses that
  driver and adds `-lstdc++`.
- Source patterns are shell globs. In a pattern that contains a directory
  part, `**` matches a single directory level.
- An `exclude` entry drops a file when the entry matches the file's base name
  as a glob, or when the entry appears anywhere in the file's path.
- Pre- and post-build commands are split on whitespace and run directly,
  without a shell. In `post_build_cmds`, `${output}` is replaced with the path
  of the built artifact.
- Shared libraries get `-shared`. On Linux they also get `-fPIC`; on macOS
  they get `-fPIC -dynamiclib`.

## Script configuration (`styx.script`)

You can also write the configuration as a short script with one statement per
line. Lines starting with `//` are comments.

```
Project("hello", "0.1.0")
Language("c++", "c++20")
Executable("hello", [Sources("src/*.cpp"), IncludeDirs("include")])
Compiler("gcc")
Flags("-Wall", "-Wextra")
```

- `StaticLib(...)` and `SharedLib(...)` take the same form as
  `Executable(...)`.
- A build block may contain `Sources`, `Exclude` and `IncludeDirs`.
- `Flags(...)` adds its flags to both the C and the C++ flags.
- Any other statement is reported as an error, together with its line number.
- A line that contains `Flags(...)` is always read as a global `Flags`
  statement. So a `Target("name", [Flags(...)])` line adds its flags to the
  global flags and does not define a target. Use `styx.toml` when you need
  named targets.

## Incremental builds

Each source file is scanned for `#include` directives, and so is every file it
includes. A header becomes a dependency when it can be found:

- a quoted include is looked for next to the including file and then in the
  include directories;
- an angle-bracket include is looked for only in the include directories.

A source file is recompiled when:

- its object file is missing;
- the source or one of its headers is newer than the object file;
- the object file no longer matches its cached timestamp or content hash;
- the compiler flags have changed.

Compiler errors are parsed and shown with file, line and column.

## Using it from Python

`styx.cli.main(argv)` runs the command line and returns the exit status.
`styx.cli.load_project_config()` and `styx.cli.init_project(directory)` do
what `--config` lookup and `styx init` do, without printing anything.
`styx.builder.Builder` takes a `styx.config.Config` and offers
`set_target`, `set_output_dir`, `set_verbose`, `build()` and `clean()`.

## What it does not do

- The `[dependencies]` and `[environment]` tables are read and checked, but
  the build does not use them.
- A target's `env` table is not applied to the commands it runs.
- There is no support for MSVC. Only GCC and Clang are detected.
- The `-j` option does not limit parallelism.