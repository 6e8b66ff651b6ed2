"""Styx: a lightweight build system for C and C++ projects using GCC or Clang."""

__version__ = "0.1.0"