"""
Command pattern with plain functions.

Commands are callables (optionally paired with an undo callable). Queues
collect them for deferred execution, the undo/redo system keeps two stacks
of executed commands, and ``batch_commands`` makes a group all-or-nothing.
"""

import asyncio
from types import SimpleNamespace
from typing import Any, Awaitable, Callable, List, Optional, Tuple

from tenacity import Retrying, stop_after_attempt, wait_exponential

from ..config import settings
from ..exceptions import ValidationException
from ..logging_config import get_logger
from ..registry import Category, demo, run_module
from ..simulation import get_random, simulate_latency

logger = get_logger(__name__)


def create_command_queue() -> SimpleNamespace:
    """
    Create a FIFO queue of deferred calls.

    Returns:
        Namespace with ``enqueue(fn, *args, **kwargs)`` (returns the new
        length), ``execute_all()``, ``clear()`` and ``size()``
    """
    queue: List[Tuple[Callable[..., Any], tuple, dict]] = []

    def enqueue(fn: Callable[..., Any], *args: Any, **kwargs: Any) -> int:
        queue.append((fn, args, kwargs))
        return len(queue)

    def execute_all() -> List[Any]:
        """Run queued commands in order and empty the queue."""
        pending = list(queue)
        queue.clear()
        return [fn(*args, **kwargs) for fn, args, kwargs in pending]

    return SimpleNamespace(enqueue=enqueue, execute_all=execute_all, clear=queue.clear, size=lambda: len(queue))


class AsyncCommandQueue:
    """Queue of coroutine functions run one by one or with bounded concurrency."""

    def __init__(self) -> None:
        self._queue: List[Tuple[Callable[..., Awaitable[Any]], tuple]] = []

    def enqueue(self, fn: Callable[..., Awaitable[Any]], *args: Any) -> int:
        """Queue ``fn(*args)`` and return the queue length."""
        self._queue.append((fn, args))
        return len(self._queue)

    def size(self) -> int:
        return len(self._queue)

    def _drain(self) -> List[Tuple[Callable[..., Awaitable[Any]], tuple]]:
        pending, self._queue = self._queue, []
        return pending

    async def execute_sequential(self) -> List[Any]:
        """Await each queued command in order and empty the queue."""
        results = []
        for fn, args in self._drain():
            results.append(await fn(*args))
        return results

    async def execute_parallel(self, limit: int = 5) -> List[Any]:
        """Run with at most ``limit`` commands in flight; results keep queue order.

        Raises:
            ValidationException: If ``limit`` is below 1
        """
        if limit < 1:
            raise ValidationException("limit", limit, "must be at least 1")
        semaphore = asyncio.Semaphore(limit)

        async def bounded(fn: Callable[..., Awaitable[Any]], args: tuple) -> Any:
            async with semaphore:
                return await fn(*args)

        return list(await asyncio.gather(*(bounded(fn, args) for fn, args in self._drain())))


# ==================== UNDO / REDO ====================


def create_undoable(do: Callable[[], Any], undo: Callable[[], Any], description: str = "") -> SimpleNamespace:
    """Pair an action with its inverse."""
    return SimpleNamespace(execute=do, undo=undo, description=description)


def create_undo_redo_system(max_history: int = 100) -> SimpleNamespace:
    """
    Track executed undoable commands.

    Executing a new command clears the redo stack; the oldest command is
    forgotten once ``max_history`` is exceeded.

    Args:
        max_history: Number of commands that can be undone

    Returns:
        Namespace with ``execute``, ``undo`` and ``redo`` (both return
        False when there is nothing to do), ``history``, ``can_undo`` and
        ``can_redo``
    """
    undo_stack: List[SimpleNamespace] = []
    redo_stack: List[SimpleNamespace] = []

    def execute(command: SimpleNamespace) -> Any:
        result = command.execute()
        undo_stack.append(command)
        if len(undo_stack) > max_history:
            undo_stack.pop(0)
        redo_stack.clear()
        return result

    def undo() -> bool:
        if not undo_stack:
            logger.debug("Nothing to undo")
            return False
        command = undo_stack.pop()
        command.undo()
        redo_stack.append(command)
        return True

    def redo() -> bool:
        if not redo_stack:
            logger.debug("Nothing to redo")
            return False
        command = redo_stack.pop()
        command.execute()
        undo_stack.append(command)
        return True

    def history() -> List[str]:
        return [command.description for command in undo_stack]

    return SimpleNamespace(
        execute=execute,
        undo=undo,
        redo=redo,
        history=history,
        can_undo=lambda: bool(undo_stack),
        can_redo=lambda: bool(redo_stack),
    )


def create_editor(text: str = "") -> SimpleNamespace:
    """A document held as an immutable string; commands swap it for a new one."""
    state = {"text": text}

    def text_command(description: str, transform: Callable[[str], str]) -> SimpleNamespace:
        snapshot: dict = {}

        def do() -> str:
            snapshot["before"] = state["text"]
            state["text"] = transform(state["text"])
            return state["text"]

        def undo() -> str:
            state["text"] = snapshot["before"]
            return state["text"]

        return create_undoable(do, undo, description)

    def insert(position: int, value: str) -> SimpleNamespace:
        def transform(current: str) -> str:
            if not 0 <= position <= len(current):
                raise ValidationException("position", position, f"must be within 0..{len(current)}")
            return current[:position] + value + current[position:]

        return text_command(f"insert {value!r} at {position}", transform)

    def delete(position: int, length: int) -> SimpleNamespace:
        def transform(current: str) -> str:
            if position < 0 or position + length > len(current):
                raise ValidationException("range", (position, length), "outside the document")
            return current[:position] + current[position + length:]

        return text_command(f"delete {length} at {position}", transform)

    def replace(old: str, new: str) -> SimpleNamespace:
        def transform(current: str) -> str:
            if old not in current:
                raise ValidationException("old", old, "not found in the document")
            return current.replace(old, new)

        return text_command(f"replace {old!r} with {new!r}", transform)

    return SimpleNamespace(text=lambda: state["text"], insert=insert, delete=delete, replace=replace)


def batch_commands(*commands: SimpleNamespace) -> SimpleNamespace:
    """All-or-nothing group: a failure undoes the commands already executed."""

    def do() -> List[Any]:
        done: List[SimpleNamespace] = []
        results = []
        try:
            for command in commands:
                results.append(command.execute())
                done.append(command)
        except Exception:
            logger.warning("Batch failed, rolling back", executed=len(done), total=len(commands))
            for command in reversed(done):
                command.undo()
            raise
        return results

    def undo() -> None:
        for command in reversed(commands):
            command.undo()

    description = "batch: " + "; ".join(command.description for command in commands)
    return create_undoable(do, undo, description)


def retry_command(
    fn: Callable[..., Any],
    attempts: int = 3,
    base_delay: float = 0.1,
    on_retry: Optional[Callable[[int], None]] = None,
) -> Callable[..., Any]:
    """Wrap ``fn`` so failures are retried with exponential backoff."""

    def before_sleep(retry_state) -> None:
        logger.info("Retrying command", attempt=retry_state.attempt_number)
        if on_retry:
            on_retry(retry_state.attempt_number)

    def run(*args: Any, **kwargs: Any) -> Any:
        retrying = Retrying(
            stop=stop_after_attempt(attempts),
            wait=wait_exponential(multiplier=base_delay * settings.LATENCY_SCALE),
            before_sleep=before_sleep,
            reraise=True,
        )
        return retrying(fn, *args, **kwargs)

    return run


async def _fetch_report(name: str) -> str:
    await simulate_latency(get_random().randint(20, 80))
    return f"{name}.csv"


@demo(
    "command-queue.function-queues",
    pattern="Function Queue",
    category=Category.FUNCTIONAL,
    title="Function queues, async batches, undo/redo and retrying commands",
)
async def run_demo() -> None:
    queue = create_command_queue()
    for amount in (10, 25, 5):
        queue.enqueue(lambda a: a * 2, amount)
    print(f"Queued {queue.size()} commands -> {queue.execute_all()}")

    reports = AsyncCommandQueue()
    for name in ("sales", "traffic", "churn", "refunds"):
        reports.enqueue(_fetch_report, name)
    print(f"Parallel (limit 2): {await reports.execute_parallel(limit=2)}")

    editor = create_editor("Hello world")
    history = create_undo_redo_system()
    history.execute(editor.insert(5, ","))
    history.execute(editor.replace("world", "patterns"))
    history.execute(editor.delete(0, 7))
    print(f"\nEditor: {editor.text()!r}")
    history.undo()
    print(f"After undo: {editor.text()!r}")
    history.redo()
    print(f"After redo: {editor.text()!r}")
    print(f"History: {history.history()}")

    batch = batch_commands(editor.insert(0, ">> "), editor.replace("missing", "x"))
    try:
        history.execute(batch)
    except ValidationException as e:
        print(f"Batch rolled back ({e.message}); text is {editor.text()!r}")

    calls = {"n": 0}

    def flaky_upload() -> str:
        calls["n"] += 1
        if calls["n"] < 3:
            raise ConnectionError("upload timed out")
        return "uploaded"

    print(f"\nRetrying upload: {retry_command(flaky_upload, attempts=4)()} after {calls['n']} attempts")


if __name__ == "__main__":
    run_module(run_demo)
