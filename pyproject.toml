[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "styx"
version = "0.1.0"
description = "A lightweight build system for C and C++ projects"
requires-python = ">=3.11"
dependencies = []
keywords = ["build", "build-system", "c", "c++", "gcc", "clang", "incremental"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: POSIX",
    "Operating System :: MacOS",
    "Operating System :: Microsoft :: Windows",
    "Programming Language :: C",
    "Programming Language :: C++",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Build Tools",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
styx = "styx.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["styx"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py311"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]
