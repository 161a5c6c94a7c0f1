import asyncio
import threading
import time
import sys
from typing import Any, Awaitable, Callable, Optional, TextIO, TypeVar

T = TypeVar("T")


async def run(
    func: Callable[..., Awaitable[T]],
    *args: Any,
    text: str = "Generating",
    interval: float = 0.1,
    stream: Optional[TextIO] = None,
    **kwargs: Any,
) -> T:
    """
    Запускает асинхронную функцию func и крутит спиннер в ОТДЕЛЬНОМ потоке,
    пока функция не завершится. Пишет в stderr, чтобы не портить YAML в stdout.
    """
    out = stream or sys.stderr
    spinner_chars = "|/-\\"
    stop_event = threading.Event()

    def clear():
        out.write("\r" + " " * (len(text) + 2) + "\r")
        out.flush()

    def spinner():
        i = 0
        while not stop_event.is_set():
            frame = spinner_chars[i % len(spinner_chars)]
            out.write(f"\r{text} {frame}")
            out.flush()
            i += 1
            time.sleep(interval)
        clear()

    thread = threading.Thread(target=spinner, daemon=True)
    thread.start()

    success = False

    try:
        result = await func(*args, **kwargs)
        success = True
        return result
    finally:
        stop_event.set()
        await asyncio.to_thread(thread.join)

        clear()
        out.write(f"{text} - {'done' if success else 'failed'}\n")
        out.flush()
