from __future__ import annotations

import shutil
import sys
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Callable, Iterator, Optional, Union

from .utils import PathLike, expand_files, expand_glob, glob_base


class Task:
    def __init__(self, name: str, action: Callable[[], object]):
        self.name = name
        self.action = action

    def __call__(self) -> None:
        self.action()

    def __repr__(self) -> str:
        return f"Task({self.name!r})"


class Series:
    def __init__(self, name: str, children: tuple[Node, ...]):
        self.name = name
        self.children = children

    def __repr__(self) -> str:
        return f"Series({self.name!r}, {len(self.children)} children)"


class Parallel:
    def __init__(self, name: str, children: tuple[Node, ...]):
        self.name = name
        self.children = children

    def __repr__(self) -> str:
        return f"Parallel({self.name!r}, {len(self.children)} children)"


Node = Union[Task, Series, Parallel]


def _composite_name(kind: str, children: tuple[Node, ...]) -> str:
    return f"<{kind}>" if not children else f"<{kind}:{','.join(child.name for child in children)}>"


def task(name: str, action: Callable[[], object]) -> Task:
    return Task(name, action)


def series(*children: Node, name: Optional[str] = None) -> Series:
    return Series(name or _composite_name("series", children), tuple(children))


def parallel(*children: Node, name: Optional[str] = None) -> Parallel:
    return Parallel(name or _composite_name("parallel", children), tuple(children))


def leaves(node: Node) -> Iterator[Task]:
    if isinstance(node, Task):
        yield node
        return
    for child in node.children:
        yield from leaves(child)


def copy_files(source_glob: PathLike, dest_dir: PathLike) -> list[Path]:
    base = glob_base(source_glob)
    dest = Path(dest_dir)
    copied = []
    for path in expand_files(source_glob):
        target = dest / path.relative_to(base)
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(path, target)
        copied.append(target)
    return copied


def delete_paths(target_glob: PathLike) -> list[Path]:
    removed = []
    for path in expand_glob(target_glob):
        if path.is_dir() and not path.is_symlink():
            shutil.rmtree(path)
        else:
            try:
                path.unlink()
            except FileNotFoundError:
                continue
        removed.append(path)
    return removed


def copy(source_glob: PathLike, dest_dir: PathLike, alt: Optional[str] = None) -> Task:
    name = f'copy: "{source_glob}" to "{dest_dir}"' if alt is None else f"copy:{alt}"
    return task(name, lambda: copy_files(source_glob, dest_dir))


def clean(target_glob: PathLike, alt: Optional[str] = None) -> Task:
    name = f'clean: "{target_glob}"' if alt is None else f"clean:{alt}"
    return task(name, lambda: delete_paths(target_glob))


class TaskGraph:
    """Named entry points into a build, constructed once per invocation."""

    def __init__(self) -> None:
        self._nodes: dict[str, Node] = {}

    def register(self, name: str, node: Node) -> Node:
        if name in self._nodes:
            raise ValueError(f"Task already registered: {name}")
        self._nodes[name] = node
        return node

    def __getitem__(self, name: str) -> Node:
        try:
            return self._nodes[name]
        except KeyError:
            raise KeyError(f"Unknown task: {name}") from None

    def __contains__(self, name: object) -> bool:
        return name in self._nodes

    def names(self) -> list[str]:
        return list(self._nodes)


class Runner:
    """Executes a node.

    Series stop at the first failure. Parallel groups let every started
    sibling settle, then re-raise the first failure in declaration order.

    Each parallel group gets its own thread pool, so nested groups add
    waiting threads, but at most `workers` tasks execute at any moment.
    """

    def __init__(self, workers: int = 1, verbose: bool = True):
        self.workers = max(1, workers)
        self.verbose = verbose
        self.slots = threading.BoundedSemaphore(self.workers)

    def run(self, node: Node) -> None:
        if isinstance(node, Task):
            self._run_task(node)
        elif isinstance(node, Series):
            for child in node.children:
                self.run(child)
        elif isinstance(node, Parallel):
            self._run_parallel(node)
        else:
            raise TypeError(f"Not a task node: {node!r}")

    def _run_task(self, node: Task) -> None:
        if self.verbose:
            print(f"Starting '{node.name}'...")
        with self.slots:
            start = time.perf_counter()
            try:
                node()
            except Exception as exc:
                print(f"'{node.name}' errored: {exc}", file=sys.stderr)
                raise
        if self.verbose:
            elapsed = (time.perf_counter() - start) * 1000
            print(f"Finished '{node.name}' after {elapsed:.0f} ms")

    def _run_parallel(self, node: Parallel) -> None:
        if not node.children:
            return
        if len(node.children) == 1 or self.workers == 1:
            errors = []
            for child in node.children:
                try:
                    self.run(child)
                except Exception as exc:
                    errors.append(exc)
        else:
            workers = min(self.workers, len(node.children))
            with ThreadPoolExecutor(max_workers=workers) as executor:
                futures = [executor.submit(self.run, child) for child in node.children]
            errors = [future.exception() for future in futures if future.exception() is not None]
        if errors:
            for extra in errors[1:]:
                print(f"Also failed in '{node.name}': {extra}", file=sys.stderr)
            raise errors[0]
