"""Drives a whole build: scanning, compiling, linking and cleaning."""

from __future__ import annotations

import os
import shutil
import time
from collections.abc import Callable, Sequence

from styx.cache import Cache, CacheError, command_hash
from styx.compilers import (
    Compiler,
    CompilerError,
    detect_compilers,
    get_compiler,
    get_default_compiler,
)
from styx.config import Config
from styx.console import Logger
from styx.diagnostics import ErrorParser
from styx.executor import Executor, Result, Task
from styx.flags import (
    archiver_flags,
    compilation_flags,
    compiler_command,
    is_cpp_source,
    linking_flags,
    needs_rebuild,
    object_file_path,
    output_path,
)
from styx.graph import Graph, GraphError, Node, NodeType
from styx.osinfo import Platform, get_platform_info
from styx.scanner import DependencyScanner, find_source_files

DEFAULT_OUTPUT_DIR = "build"
DEFAULT_TARGET = "debug"
CACHE_ROOT = ".styx"


class BuildError(Exception):
    """Raised when a build or clean cannot be completed."""


def _resolve_compiler(name: str) -> Compiler:
    if not name or name == "auto":
        try:
            name = get_default_compiler("").name
        except CompilerError as exc:
            raise BuildError(f"failed to find a suitable compiler: {exc}") from exc
    try:
        return get_compiler(name)
    except CompilerError:
        detect_compilers()
    try:
        return get_compiler(name)
    except CompilerError:
        raise BuildError(f"compiler not found: {name}") from None


def _failure(result: Result | None) -> str | None:
    """The error text of a failed result, or None when it succeeded."""
    if result is None:
        return "unknown error"
    if not result.success:
        return result.error or "unknown error"
    return None


class Builder:
    """Builds one project configuration for a chosen target."""

    def __init__(self, config: Config, compiler: Compiler | None = None) -> None:
        try:
            os.makedirs(DEFAULT_OUTPUT_DIR, exist_ok=True)
        except OSError as exc:
            raise BuildError(f"failed to create build directory: {exc}") from exc
        cache_dir = os.path.join(CACHE_ROOT, "cache")
        try:
            os.makedirs(cache_dir, exist_ok=True)
        except OSError as exc:
            raise BuildError(f"failed to create cache directory: {exc}") from exc

        if compiler is None:
            compiler = _resolve_compiler(config.toolchain.compiler)

        self.config = config
        self.compiler = compiler
        self.scanner = DependencyScanner(config.build.include_dirs)
        self.graph = Graph()
        self.cache = Cache(os.path.join(cache_dir, "build.json"))
        try:
            self.cache.load()
        except CacheError as exc:
            raise BuildError(f"failed to load cache: {exc}") from exc
        self.target = DEFAULT_TARGET
        self.output_dir = DEFAULT_OUTPUT_DIR
        self.verbose = False
        self.has_cpp_files = False
        self.platform_info = get_platform_info()
        self.logger = Logger(False)
        self.executor: Executor | None = None

    def set_verbose(self, verbose: bool) -> None:
        self.verbose = verbose
        self.logger = Logger(verbose, self.logger.output)

    def set_target(self, target: str) -> None:
        """Select a configured target; an empty name means ``debug``."""
        if not target:
            self.target = DEFAULT_TARGET
            return
        if target not in self.config.targets:
            raise BuildError(f"target not found: {target}")
        self.target = target

    def set_output_dir(self, output_dir: str) -> None:
        if not output_dir:
            raise BuildError("output directory cannot be empty")
        try:
            os.makedirs(output_dir, exist_ok=True)
        except OSError as exc:
            raise BuildError(f"failed to create output directory: {exc}") from exc
        self.output_dir = output_dir

    @property
    def _target_dir(self) -> str:
        return os.path.join(self.output_dir, self.target)

    def build(self) -> str:
        """Run the whole build and return the path of the produced output."""
        log = self.logger
        log.info("starting build for target: %s", self.target)
        log.info(
            "project: %s (version %s)",
            self.config.project.name,
            self.config.project.version,
        )
        log.info("compiler: %s", self.compiler.name)

        start = time.monotonic()
        target_dir = self._target_dir
        try:
            os.makedirs(target_dir, exist_ok=True)
        except OSError as exc:
            raise BuildError(f"failed to create target output directory: {exc}") from exc

        self.executor = Executor(0, log)
        self.executor.start()
        try:
            result = self._run_build(target_dir)
        finally:
            self.executor.shutdown()

        log.success("build completed in %.2f seconds", time.monotonic() - start)
        log.success("output: %s", result)
        return result

    def _run_build(self, target_dir: str) -> str:
        log = self.logger
        try:
            self._run_commands(self.config.build.pre_build_cmds, "pre-build")
        except BuildError as exc:
            raise BuildError(f"pre-build commands failed: {exc}") from exc

        log.info("finding source files...")
        try:
            sources = find_source_files(
                self.config.build.sources, self.config.build.exclude
            )
        except (OSError, ValueError) as exc:
            raise BuildError(f"failed to find source files: {exc}") from exc
        if not sources:
            log.warning("no source files found. Check your sources configuration.")
            raise BuildError("no source files found")
        log.info("found %d source files", len(sources))

        try:
            self._build_dependency_graph(sources)
        except BuildError as exc:
            raise BuildError(f"failed to build dependency graph: {exc}") from exc

        log.info("compiling source files...")
        try:
            objects = self._compile(sources, target_dir)
        except BuildError as exc:
            raise BuildError(f"failed to compile source files: {exc}") from exc

        result = output_path(self.config, target_dir, self.compiler)
        output_type = self.config.build.output_type
        name = os.path.basename(result)
        if output_type == "executable":
            log.info("linking executable: %s", name)
            try:
                self._link(objects, result)
            except BuildError as exc:
                raise BuildError(f"failed to link object files: {exc}") from exc
        elif output_type == "static_lib":
            log.info("creating static library: %s", name)
            try:
                self._archive(objects, result)
            except BuildError as exc:
                raise BuildError(f"failed to create static library: {exc}") from exc
        elif output_type == "shared_lib":
            log.info("creating shared library: %s", name)
            try:
                self._shared_library(objects, result)
            except BuildError as exc:
                raise BuildError(f"failed to create shared library: {exc}") from exc
        else:
            raise BuildError(f"unsupported output type: {output_type}")

        try:
            self._run_commands(
                self.config.build.post_build_cmds,
                "post-build",
                lambda arg: arg.replace("${output}", result),
            )
        except BuildError as exc:
            raise BuildError(f"post-build commands failed: {exc}") from exc

        try:
            self.cache.save()
        except CacheError as exc:
            log.warning("failed to save build cache: %s", exc)
        return result

    def _execute(self, task: Task) -> Result | None:
        assert self.executor is not None
        self.executor.submit(task)
        return self.executor.wait_for_task(task)

    def _run_commands(
        self,
        commands: Sequence[str],
        phase: str,
        substitute: Callable[[str], str] | None = None,
    ) -> None:
        if not commands:
            return
        log = self.logger
        log.info("executing %s commands...", phase)
        log.start_progress(len(commands), f"running {phase} commands")
        for number, line in enumerate(commands, start=1):
            parts = line.split()
            if not parts:
                continue
            command, *args = parts
            if substitute is not None:
                args = [substitute(arg) for arg in args]
            log.update_progress(number, f"running: {command}")
            task = Task(id=f"{phase}-{command}", command=command, args=args)
            error = _failure(self._execute(task))
            if error is not None:
                log.stop_progress()
                log.error("%s command failed: %s", phase, error)
                raise BuildError(f"{phase} command failed: {error}")
        log.stop_progress()
        log.success("%s commands completed", phase)

    def _add_node(self, node_id: str, node_type: NodeType, what: str) -> None:
        try:
            self.graph.add_node(Node(id=node_id, type=node_type, path=node_id))
        except GraphError as exc:
            if "already exists" not in str(exc):
                raise BuildError(f"failed to add {what} node: {exc}") from exc

    def _add_dependency(self, from_id: str, to_id: str) -> None:
        try:
            self.graph.add_dependency(from_id, to_id)
        except GraphError as exc:
            raise BuildError(f"failed to add dependency: {exc}") from exc

    def _build_dependency_graph(self, sources: Sequence[str]) -> None:
        log = self.logger
        log.info("analyzing dependencies...")
        log.start_progress(len(sources), "scanning dependencies")
        try:
            for number, source in enumerate(sources, start=1):
                log.update_progress(number, f"scanning {os.path.basename(source)}")
                self._add_node(source, NodeType.SOURCE, "source")
                try:
                    headers = self.scanner.scan(source)
                except OSError as exc:
                    raise BuildError(
                        f"failed to scan dependencies for {source}: {exc}"
                    ) from exc
                if self.verbose:
                    log.note("found %d dependencies for %s", len(headers), source)
                for header in headers:
                    self._add_node(header, NodeType.HEADER, "header")
                    self._add_dependency(source, header)
        finally:
            log.stop_progress()
        log.success("dependency analysis complete")

    def _source_dependencies(self, source: str) -> list[str]:
        node = self.graph.get_node(source)
        headers = [dep.path for dep in node.dependencies] if node is not None else []
        return [source, *headers]

    def _compile(self, sources: Sequence[str], target_dir: str) -> list[str]:
        log = self.logger
        if any(is_cpp_source(source) for source in sources):
            self.has_cpp_files = True
        flags = compilation_flags(self.config, self.target)
        hash_of_command = command_hash(self.compiler.name, flags)

        objects: list[str] = []
        pending: list[tuple[Task, list[str]]] = []
        done = 0
        log.start_progress(len(sources), "compiling")
        try:
            for source in sources:
                obj = object_file_path(source, target_dir, self.compiler.object_extension)
                objects.append(obj)
                self._add_node(obj, NodeType.OBJECT, "object")
                self._add_dependency(obj, source)
                source_node = self.graph.get_node(source)
                for dep in source_node.dependencies if source_node else []:
                    self._add_dependency(obj, dep.id)

                dependencies = self._source_dependencies(source)
                rebuild, _reason = needs_rebuild(
                    self.cache, obj, dependencies, hash_of_command
                )
                if not rebuild:
                    done += 1
                    log.update_progress(
                        done, f"Skipping {os.path.basename(source)} (up to date)"
                    )
                    if self.verbose:
                        log.note("Skipping up-to-date file: %s", source)
                    continue

                try:
                    os.makedirs(os.path.dirname(obj) or ".", exist_ok=True)
                except OSError as exc:
                    raise BuildError(f"failed to create output directory: {exc}") from exc

                task = Task(
                    id=source,
                    command=compiler_command(self.compiler.path, is_cpp_source(source)),
                    args=["-c", source, "-o", obj, *flags],
                    source_file=source,
                    output_file=obj,
                )
                pending.append((task, dependencies))
        except BuildError:
            log.stop_progress()
            raise

        assert self.executor is not None
        for task, _ in pending:
            self.executor.submit(task)

        failures: list[str] = []
        parser = ErrorParser(log)
        for task, dependencies in pending:
            result = self.executor.wait_for_task(task)
            done += 1
            log.update_progress(done, f"Compiled {os.path.basename(task.source_file)}")
            error = _failure(result)
            if error is not None:
                message = f"Compilation of {task.source_file} failed: {error}"
                failures.append(message)
                if result is None:
                    log.error("%s", message)
                else:
                    parser.report(error, task.source_file)
                continue
            if self.verbose:
                log.note(
                    "Compiled %s in %.2f seconds",
                    os.path.basename(task.source_file),
                    result.duration,
                )
            try:
                self.cache.update_entry(
                    task.output_file,
                    dependencies,
                    hash_of_command,
                    task.output_file,
                    result.duration,
                )
            except CacheError as exc:
                log.warning(
                    "Failed to update cache entry for %s: %s", task.source_file, exc
                )

        log.stop_progress()
        if failures:
            for message in failures:
                log.error("%s", message)
            raise BuildError(f"compilation failed with {len(failures)} errors")
        log.success("Compilation complete")
        return objects

    def _run_link_task(
        self, task_id: str, objects: Sequence[str], result_path: str,
        flags: Sequence[str], what: str,
    ) -> None:
        try:
            os.makedirs(os.path.dirname(result_path) or ".", exist_ok=True)
        except OSError as exc:
            raise BuildError(f"failed to create output directory: {exc}") from exc
        task = Task(
            id=task_id,
            command=compiler_command(self.compiler.path, self.has_cpp_files),
            args=[*objects, "-o", result_path, *flags],
            output_file=result_path,
        )
        self.logger.start_progress(1, what)
        outcome = self._execute(task)
        self.logger.stop_progress()
        error = _failure(outcome)
        if error is not None:
            self.logger.error("%s failed: %s", what, error)
            raise BuildError(f"{what} failed: {error}")

    def _link(self, objects: Sequence[str], result_path: str) -> None:
        flags = linking_flags(self.config, self.target, self.has_cpp_files)
        self._run_link_task("link", objects, result_path, flags, "linking")
        self.logger.success("linking complete")

    def _shared_library(self, objects: Sequence[str], result_path: str) -> None:
        flags = [*linking_flags(self.config, self.target, self.has_cpp_files), "-shared"]
        if self.platform_info.platform == Platform.LINUX:
            flags.append("-fPIC")
        elif self.platform_info.platform == Platform.MACOS:
            flags.extend(["-fPIC", "-dynamiclib"])
        self._run_link_task(
            "shared_lib", objects, result_path, flags, "shared library creation"
        )
        self.logger.success("Shared library created")

    def _archive(self, objects: Sequence[str], result_path: str) -> None:
        try:
            os.makedirs(os.path.dirname(result_path) or ".", exist_ok=True)
        except OSError as exc:
            raise BuildError(f"failed to create output directory: {exc}") from exc
        self.logger.start_progress(1, "creating static library")
        try:
            self.compiler.archive(objects, result_path, archiver_flags(self.config))
        except CompilerError as exc:
            self.logger.stop_progress()
            self.logger.error("archiving failed: %s", exc)
            raise BuildError(f"archiving failed: {exc}") from exc
        self.logger.stop_progress()
        self.logger.success("static library created")

    def clean(self) -> None:
        """Remove the target's outputs and the build cache."""
        log = self.logger
        if not self.target:
            log.info("cleaning all build artifacts")
        else:
            log.info("cleaning build artifacts for target: %s", self.target)

        try:
            shutil.rmtree(self._target_dir)
        except FileNotFoundError:
            pass
        except OSError as exc:
            log.error("failed to clean target directory: %s", exc)
            raise BuildError(f"failed to clean target directory: {exc}") from exc

        if os.path.exists(CACHE_ROOT):
            log.info("removing cache: %s", CACHE_ROOT)
            try:
                shutil.rmtree(CACHE_ROOT)
            except OSError as exc:
                log.warning("failed to remove cache: %s", exc)

        self.cache.clean()
        try:
            self.cache.save()
        except CacheError as exc:
            log.warning("failed to save cleaned cache: %s", exc)
        log.success("clean completed successfully")