"""A pool of worker threads that runs build commands as subprocesses."""

from __future__ import annotations

import os
import queue
import subprocess
import threading
import time
from dataclasses import dataclass, field

from styx.console import Logger

_POLL_INTERVAL = 0.05
_REQUEUE_DELAY = 0.01


@dataclass(eq=False)
class Task:
    """One command to run, optionally after other tasks have succeeded."""

    id: str
    command: str
    args: list[str] = field(default_factory=list)
    dir: str = ""
    env: dict[str, str] = field(default_factory=dict)
    output: str = ""
    source_file: str = ""
    output_file: str = ""
    dependencies: list[Task] = field(default_factory=list)
    completed: bool = False
    error: str | None = None
    start_time: float = 0.0
    end_time: float = 0.0
    _done: threading.Event | None = field(default=None, init=False, repr=False)

    @property
    def duration(self) -> float:
        return max(self.end_time - self.start_time, 0.0)


@dataclass
class Result:
    """Outcome of running a task; ``duration`` is in seconds."""

    task: Task
    success: bool
    error: str | None = None
    output: str = ""
    duration: float = 0.0


def _describe_exit(returncode: int) -> str:
    if returncode < 0:
        return f"killed by signal {-returncode}"
    return f"exit status {returncode}"


class Executor:
    """Runs submitted tasks on a fixed number of worker threads."""

    def __init__(self, worker_count: int = 0, logger: Logger | None = None) -> None:
        if worker_count <= 0:
            worker_count = os.cpu_count() or 1
        self.worker_count = worker_count
        self.logger = logger if logger is not None else Logger(False)
        self.completed_tasks: set[str] = set()
        self._queue: queue.Queue[Task] = queue.Queue()
        self._results: queue.Queue[Result] = queue.Queue()
        self._lock = threading.Lock()
        self._closing = threading.Event()
        self._cancel = threading.Event()
        self._running: set[subprocess.Popen] = set()
        self._workers: list[threading.Thread] = []

    def set_verbose(self, verbose: bool) -> None:
        self.logger = Logger(verbose)

    def start(self) -> None:
        """Start the worker threads."""
        self.logger.info("starting build executor with %d workers", self.worker_count)
        for number in range(self.worker_count):
            worker = threading.Thread(
                target=self._work, name=f"styx-worker-{number}", daemon=True
            )
            self._workers.append(worker)
            worker.start()

    def submit(self, task: Task) -> None:
        """Queue a task; raises RuntimeError once the executor is shut down."""
        if self._closing.is_set():
            raise RuntimeError("executor is shut down")
        if task._done is None:
            task._done = threading.Event()
        self._queue.put(task)

    def wait_for_task(self, task: Task) -> Result | None:
        """Block until ``task`` finishes; None if it was never submitted."""
        if task._done is None:
            return None
        task._done.wait()
        return Result(
            task=task,
            success=task.error is None,
            error=task.error,
            output=task.output,
            duration=task.duration,
        )

    def wait_for_all(self) -> list[Result]:
        """Stop accepting tasks, let the queue drain and return every result."""
        self._close()
        results: list[Result] = []
        while True:
            try:
                results.append(self._results.get_nowait())
            except queue.Empty:
                return results

    def shutdown(self) -> None:
        """Stop accepting tasks and wait for the workers to finish the queue."""
        self.logger.info("shutting down build executor")
        self._close()
        self.logger.info("build executor shut down")

    def shutdown_now(self) -> None:
        """Kill running commands and abandon queued tasks."""
        self.logger.info("forcefully shutting down build executor")
        self._cancel.set()
        with self._lock:
            for process in self._running:
                process.kill()
        self._close()
        self.logger.info("build executor forcefully shut down")

    def _close(self) -> None:
        if self._closing.is_set():
            raise RuntimeError("executor is already shut down")
        self._closing.set()
        for worker in self._workers:
            worker.join()
        reason = "cancelled" if self._cancel.is_set() else "executor shut down"
        while True:
            try:
                task = self._queue.get_nowait()
            except queue.Empty:
                break
            self._abandon(task, reason)

    def _work(self) -> None:
        while True:
            try:
                task = self._queue.get(timeout=_POLL_INTERVAL)
            except queue.Empty:
                if self._closing.is_set() or self._cancel.is_set():
                    return
                continue
            if self._cancel.is_set():
                self._abandon(task, "cancelled")
                continue
            ready, failure = self._dependency_state(task)
            if failure is not None:
                self._abandon(task, failure)
            elif ready:
                self._run(task)
            else:
                self._queue.put(task)
                time.sleep(_REQUEUE_DELAY)

    def _dependency_state(self, task: Task) -> tuple[bool, str | None]:
        """Return (ready, reason the task can never run)."""
        with self._lock:
            done = set(self.completed_tasks)
        for dependency in task.dependencies:
            if dependency.id in done:
                continue
            if dependency.completed:
                return False, f"dependency {dependency.id} failed"
            if self._closing.is_set() and dependency._done is None:
                return False, f"dependency {dependency.id} was never submitted"
            return False, None
        return True, None

    def _abandon(self, task: Task, reason: str) -> None:
        task.error = reason
        task.completed = True
        self._results.put(Result(task=task, success=False, error=reason))
        if task._done is not None:
            task._done.set()

    def _run(self, task: Task) -> None:
        task.start_time = time.monotonic()
        stdout = stderr = ""
        error: str | None = None
        try:
            process = subprocess.Popen(
                [task.command, *task.args],
                cwd=task.dir or None,
                env={**os.environ, **task.env},
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
            )
        except OSError as exc:
            error = f"{exc}: "
            reason = str(exc)
        else:
            with self._lock:
                self._running.add(process)
                if self._cancel.is_set():
                    process.kill()
            out, err = process.communicate()
            with self._lock:
                self._running.discard(process)
            stdout = out.decode(errors="replace")
            stderr = err.decode(errors="replace")
            reason = _describe_exit(process.returncode)
            if process.returncode != 0:
                error = f"{reason}: {stderr}"
        task.end_time = time.monotonic()
        task.output += stdout
        task.completed = True

        if error is not None:
            task.error = error
            self.logger.error("task %s failed: %s", task.id, reason)
            if stderr:
                self.logger.note("error output: %s", stderr)
            result = Result(
                task=task, success=False, error=error, output=stderr,
                duration=task.duration,
            )
        else:
            with self._lock:
                self.completed_tasks.add(task.id)
            self.logger.note(
                "task %s completed successfully in %.2f seconds", task.id, task.duration
            )
            result = Result(
                task=task, success=True, output=task.output, duration=task.duration
            )

        self._results.put(result)
        if task._done is not None:
            task._done.set()