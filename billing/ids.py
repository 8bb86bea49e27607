import threading
import time

_lock = threading.Lock()
_last_millis = 0


def new_id(prefix: str) -> str:
    """Return ``{prefix}_{epoch millis}``.

    Within one process the millisecond part never repeats: a call landing in
    the same millisecond as the previous one takes the next value instead.
    Separate processes can still collide.
    """
    global _last_millis
    with _lock:
        millis = int(time.time() * 1000)
        if millis <= _last_millis:
            millis = _last_millis + 1
        _last_millis = millis
    return f"{prefix}_{millis}"
