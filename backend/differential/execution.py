"""
Feat — Implementation loading and guarded invocation.

An implementation is anything with an ``identifier`` and an
``invoke(inputs, timeout) -> Outcome`` method.  Two flavours ship:

* ``InProcessImplementation`` — the function is exec'd once and each
  call runs on a daemon thread joined with a timeout; a thread that
  overruns gets an asynchronous ``SystemExit`` and the call is a TIMEOUT.
* ``SubprocessImplementation`` — every call runs in a fresh interpreter,
  so hangs inside C code and hard crashes are contained as well.

Raising, hanging and crashing are *outcomes*.  Failing to load or call an
implementation at all is a ``ToolingError``.
"""
from __future__ import annotations

import abc
import ast
import ctypes
import enum
import inspect
import logging
import subprocess
import sys
import textwrap
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Sequence

from config import EXECUTION_MODE, STRICT_CODE_SAFETY
from errors import ToolingError
from generation.values import Value

logger = logging.getLogger("feat.differential.execution")

# ── Outcomes ──────────────────────────────────────────────────────────

class OutcomeKind(enum.Enum):
    SUCCESS = "success"
    EXCEPTION = "exception"
    TIMEOUT = "timeout"
    CRASH = "crash"


@dataclass(frozen=True)
class Outcome:
    """What one call produced: a value, or the way it failed."""
    kind: OutcomeKind
    value: Value | None = None
    error_type: str | None = None
    detail: str = ""

    @classmethod
    def success(cls, value: Value) -> Outcome:
        return cls(OutcomeKind.SUCCESS, value=value)

    @classmethod
    def exception(cls, error_type: str, detail: str = "") -> Outcome:
        return cls(OutcomeKind.EXCEPTION, error_type=error_type, detail=detail)

    @classmethod
    def timeout(cls, seconds: float) -> Outcome:
        return cls(OutcomeKind.TIMEOUT, detail=f"no result after {seconds:g}s")

    @classmethod
    def crash(cls, detail: str) -> Outcome:
        return cls(OutcomeKind.CRASH, detail=detail)

    @property
    def ok(self) -> bool:
        return self.kind is OutcomeKind.SUCCESS

    def matches(self, other: Outcome) -> bool:
        """Equal values, or the same class of failure."""
        if self.kind is not other.kind:
            return False
        if self.kind is OutcomeKind.SUCCESS:
            return self.value == other.value
        if self.kind is OutcomeKind.EXCEPTION:
            return self.error_type == other.error_type
        return True

    def __str__(self) -> str:
        if self.kind is OutcomeKind.SUCCESS:
            return str(self.value)
        if self.kind is OutcomeKind.EXCEPTION:
            return f"raises {self.error_type}"
        return self.kind.value


# ── Safety whitelist ──────────────────────────────────────────────────

_DANGEROUS_BUILTINS = frozenset({
    "exec", "eval", "compile", "__import__", "open",
    "exit", "quit", "breakpoint", "globals", "locals",
    "getattr", "setattr", "delattr",
    "vars", "dir", "type", "super",
    "memoryview", "classmethod", "staticmethod",
    "property", "input",
})

_DANGEROUS_MODULES = frozenset({
    "os", "sys", "subprocess", "shutil", "pathlib",
    "socket", "http", "ctypes", "signal", "importlib",
    "io", "pickle", "shelve", "tempfile", "multiprocessing",
    "threading", "asyncio", "webbrowser", "code", "codeop",
    "compileall", "py_compile",
})

_DANGEROUS_ATTRS = frozenset({
    "__class__", "__subclasses__", "__bases__", "__mro__",
    "__builtins__", "__globals__", "__code__", "__func__",
    "__self__", "__module__", "__dict__", "__init_subclass__",
    "__set_name__", "__reduce__", "__reduce_ex__",
    "__getattr__", "__setattr__", "__delattr__",
    "__import__",
})


def find_unsafe_construct(code: str) -> str | None:
    """Describe the first disallowed construct in ``code``, or ``None``.

    Imports, exec/eval, OS modules and dunder attribute access are all
    refused.  Unparseable code is reported too.
    """
    try:
        tree = ast.parse(textwrap.dedent(code))
    except SyntaxError as exc:
        return f"syntax error: {exc}"

    for node in ast.walk(tree):
        if isinstance(node, (ast.Import, ast.ImportFrom)):
            return f"import on line {node.lineno}"
        if isinstance(node, ast.Call) and isinstance(node.func, ast.Name):
            if node.func.id in _DANGEROUS_BUILTINS:
                return f"call to {node.func.id}() on line {node.lineno}"
        if isinstance(node, ast.Attribute):
            if isinstance(node.value, ast.Name) and node.value.id in _DANGEROUS_MODULES:
                return f"use of module {node.value.id!r} on line {node.lineno}"
            if node.attr.startswith("__") and node.attr.endswith("__"):
                return f"dunder attribute {node.attr!r} on line {node.lineno}"
        if isinstance(node, ast.Constant) and isinstance(node.value, str):
            if node.value in _DANGEROUS_ATTRS:
                return f"dunder string {node.value!r} on line {node.lineno}"
    return None


# ── Thread-based execution with timeout ──────────────────────────────

def _raise_in_thread(thread_id: int) -> None:
    ctypes.pythonapi.PyThreadState_SetAsyncExc(
        ctypes.c_ulong(thread_id),
        ctypes.py_object(SystemExit),
    )


def run_with_timeout(
    func: Callable[..., Any], args: tuple, timeout: float,
) -> Outcome:
    """Call ``func(*args)`` on a daemon thread; never blocks past ``timeout`` (+1s)."""
    holder: dict[str, Any] = {}
    tid_holder: list[int | None] = [None]

    def _worker() -> None:
        tid_holder[0] = threading.get_ident()
        try:
            holder["result"] = func(*args)
        except (Exception, SystemExit) as exc:
            holder["error"] = exc

    t = threading.Thread(target=_worker, daemon=True, name="feat-call")
    t.start()
    t.join(timeout=timeout)

    if t.is_alive():
        tid = tid_holder[0]
        if tid is not None:
            _raise_in_thread(tid)
        t.join(timeout=1)
        return Outcome.timeout(timeout)

    if "error" in holder:
        exc = holder["error"]
        return Outcome.exception(type(exc).__name__, str(exc))
    if "result" in holder:
        try:
            return Outcome.success(Value.from_python(holder["result"]))
        except RecursionError:
            result = holder["result"]
            return Outcome.success(Value.opaque(type(result).__name__, "<recursive>"))
    return Outcome.crash("worker thread ended without a result")


# ── Implementations ──────────────────────────────────────────────────

class Implementation(abc.ABC):
    """Base for every invocable implementation."""

    identifier: str

    @abc.abstractmethod
    def invoke(self, inputs: Sequence[Value], timeout: float) -> Outcome:
        """Run once on ``inputs``; failures come back as outcomes."""

    @abc.abstractmethod
    def check_arity(self, n_params: int) -> None:
        """Raise ``ToolingError`` if the function cannot take ``n_params`` arguments."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.identifier!r})"


class InProcessImplementation(Implementation):
    """A Python callable invoked on a guarded thread."""

    def __init__(self, identifier: str, func: Callable[..., Any]) -> None:
        if not callable(func):
            raise ToolingError(f"{identifier}: {func!r} is not callable")
        self.identifier = identifier
        self.func = func

    def invoke(self, inputs: Sequence[Value], timeout: float) -> Outcome:
        args = tuple(v.to_python() for v in inputs)
        return run_with_timeout(self.func, args, timeout)

    def check_arity(self, n_params: int) -> None:
        try:
            sig = inspect.signature(self.func)
        except (TypeError, ValueError):
            return
        try:
            sig.bind(*range(n_params))
        except TypeError as exc:
            raise ToolingError(
                f"{self.identifier}: cannot be called with {n_params} "
                f"argument(s): {exc}"
            ) from exc


_RESULT_MARKER = "@@FEAT-RESULT "
_EXCEPTION_MARKER = "@@FEAT-EXCEPTION "

_DRIVER = textwrap.dedent("""
    import sys
    path, fname = sys.argv[1], sys.argv[2]
    args = eval(sys.stdin.read(), {"__builtins__": {"set": set, "float": float}})
    ns = {"__name__": "feat_impl"}
    with open(path, encoding="utf-8") as fh:
        exec(compile(fh.read(), path, "exec"), ns)
    try:
        result = ns[fname](*args)
    except BaseException as exc:
        print("\\n@@FEAT-EXCEPTION " + type(exc).__name__, flush=True)
    else:
        print("\\n@@FEAT-RESULT " + repr(result), flush=True)
""")


def _parse_result_text(text: str) -> Value:
    try:
        return Value.from_python(ast.literal_eval(text))
    except (ValueError, SyntaxError, TypeError, MemoryError, RecursionError):
        return Value.opaque("repr", text)


class SubprocessImplementation(Implementation):
    """A source file run in a fresh interpreter for every call."""

    def __init__(
        self,
        identifier: str,
        path: Path,
        function_name: str,
        function_def: ast.FunctionDef | ast.AsyncFunctionDef,
        python: str = sys.executable,
    ) -> None:
        self.identifier = identifier
        self.path = path
        self.function_name = function_name
        self.function_def = function_def
        self.python = python

    def invoke(self, inputs: Sequence[Value], timeout: float) -> Outcome:
        call_args = "(" + "".join(v.to_literal() + ", " for v in inputs) + ")"
        try:
            completed = subprocess.run(
                [self.python, "-c", _DRIVER, str(self.path), self.function_name],
                input=call_args,
                capture_output=True,
                text=True,
                timeout=timeout,
                check=False,
            )
        except subprocess.TimeoutExpired:
            return Outcome.timeout(timeout)
        except OSError as exc:
            raise ToolingError(
                f"{self.identifier}: cannot launch {self.python}: {exc}"
            ) from exc

        out = completed.stdout
        res_idx = out.rfind(_RESULT_MARKER)
        exc_idx = out.rfind(_EXCEPTION_MARKER)
        if exc_idx > res_idx:
            error_type = out[exc_idx + len(_EXCEPTION_MARKER):].strip()
            return Outcome.exception(error_type)
        if res_idx != -1:
            text = out[res_idx + len(_RESULT_MARKER):].rstrip("\n")
            return Outcome.success(_parse_result_text(text))

        tail = completed.stderr.strip().splitlines()[-1:] or [""]
        return Outcome.crash(f"exit code {completed.returncode}: {tail[0]}")

    def check_arity(self, n_params: int) -> None:
        a = self.function_def.args
        positional = len(a.posonlyargs) + len(a.args)
        required = positional - len(a.defaults)
        ok = (
            required <= n_params
            and (n_params <= positional or a.vararg is not None)
            and all(d is not None for d in a.kw_defaults)
        )
        if not ok:
            raise ToolingError(
                f"{self.identifier}: {self.function_name}() cannot be called "
                f"with {n_params} argument(s)"
            )


# ── Loading ───────────────────────────────────────────────────────────

def _check_safety(identifier: str, source: str, restricted: bool) -> None:
    if not restricted:
        return
    problem = find_unsafe_construct(source)
    if problem is not None:
        raise ToolingError(f"{identifier}: refusing to execute ({problem})")


def _find_function_def(
    identifier: str, source: str, function_name: str,
) -> ast.FunctionDef | ast.AsyncFunctionDef:
    try:
        tree = ast.parse(source, filename=identifier)
    except SyntaxError as exc:
        raise ToolingError(f"{identifier}: syntax error: {exc}") from exc
    for node in tree.body:
        if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)) \
                and node.name == function_name:
            return node
    raise ToolingError(f"{identifier}: no top-level function {function_name!r}")


def implementation_from_source(
    identifier: str,
    source: str,
    function_name: str,
    restricted: bool = STRICT_CODE_SAFETY,
) -> InProcessImplementation:
    """Exec ``source`` in its own namespace and wrap ``function_name``."""
    source = textwrap.dedent(source)
    _check_safety(identifier, source, restricted)
    try:
        code = compile(source, identifier, "exec")
    except SyntaxError as exc:
        raise ToolingError(f"{identifier}: syntax error: {exc}") from exc

    ns: dict[str, Any] = {"__name__": f"feat_impl_{function_name}"}
    try:
        exec(code, ns)
    except Exception as exc:
        raise ToolingError(
            f"{identifier}: module-level code failed: {type(exc).__name__}: {exc}"
        ) from exc
    if function_name not in ns:
        raise ToolingError(f"{identifier}: no function {function_name!r}")
    return InProcessImplementation(identifier, ns[function_name])


def load_implementation(
    path: str | Path,
    function_name: str,
    mode: str = EXECUTION_MODE,
    restricted: bool = STRICT_CODE_SAFETY,
    identifier: str | None = None,
) -> Implementation:
    path = Path(path)
    identifier = identifier or path.name
    try:
        source = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ToolingError(f"{identifier}: cannot read {path}: {exc}") from exc

    if mode == "thread":
        return implementation_from_source(identifier, source, function_name, restricted)
    if mode == "process":
        _check_safety(identifier, source, restricted)
        func_def = _find_function_def(identifier, source, function_name)
        return SubprocessImplementation(identifier, path.resolve(), function_name, func_def)
    raise ToolingError(f"unknown execution mode {mode!r} (expected 'thread' or 'process')")


def load_candidates(
    directory: str | Path,
    function_name: str,
    mode: str = EXECUTION_MODE,
    restricted: bool = STRICT_CODE_SAFETY,
) -> list[Implementation]:
    """Every ``*.py`` file in ``directory``, sorted by name."""
    directory = Path(directory)
    if not directory.is_dir():
        raise ToolingError(f"candidate directory {directory} does not exist")
    files = sorted(p for p in directory.glob("*.py") if p.is_file())
    if not files:
        logger.warning("No candidate implementations found in %s", directory)
    candidates = [
        load_implementation(p, function_name, mode, restricted) for p in files
    ]
    logger.info("Loaded %d candidate(s) from %s (%s mode)",
                len(candidates), directory, mode)
    return candidates
