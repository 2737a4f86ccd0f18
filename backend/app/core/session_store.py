"""Estado por sesión en memoria con expiración (TTL).

Cada sesión es un diccionario clave-valor (página actual, búsqueda actual...)
que se renueva en cada acceso y caduca junto con el token que la identifica.
Las sesiones expiradas se descartan en el primer acceso tras cada
``SWEEP_INTERVAL``; ``purge_expired`` fuerza el barrido.
"""
import threading
import time
from collections.abc import Iterator, MutableMapping
from typing import Any

_sessions: dict[str, tuple[dict[str, Any], float]] = {}
_lock = threading.Lock()
DEFAULT_TTL = 480 * 60
SWEEP_INTERVAL = 60  # segundos entre barridos de sesiones expiradas
_last_sweep = 0.0


def _drop_expired(now: float) -> int:
    """Debe llamarse con ``_lock`` adquirido."""
    expired = [sid for sid, (_, expires) in _sessions.items() if expires <= now]
    for sid in expired:
        del _sessions[sid]
    return len(expired)


def _touch(session_id: str, ttl: float) -> dict[str, Any]:
    """Debe llamarse con ``_lock`` adquirido."""
    global _last_sweep
    now = time.time()
    if now - _last_sweep >= SWEEP_INTERVAL:
        _drop_expired(now)
        _last_sweep = now
    entry = _sessions.get(session_id)
    if entry and entry[1] > now:
        state = entry[0]
    else:
        state = {}
    _sessions[session_id] = (state, now + ttl)
    return state


class SessionContext(MutableMapping):
    """Vista de una sola sesión; se crea vacía en el primer acceso."""

    def __init__(self, session_id: str, ttl: float = DEFAULT_TTL):
        self.session_id = session_id
        self._ttl = ttl

    def __getitem__(self, key: str) -> Any:
        with _lock:
            return _touch(self.session_id, self._ttl)[key]

    def __setitem__(self, key: str, value: Any) -> None:
        with _lock:
            _touch(self.session_id, self._ttl)[key] = value

    def __delitem__(self, key: str) -> None:
        with _lock:
            del _touch(self.session_id, self._ttl)[key]

    def __iter__(self) -> Iterator[str]:
        with _lock:
            return iter(list(_touch(self.session_id, self._ttl)))

    def __len__(self) -> int:
        with _lock:
            return len(_touch(self.session_id, self._ttl))

    def __repr__(self) -> str:
        return f"SessionContext({self.session_id!r})"


def purge_expired() -> int:
    with _lock:
        return _drop_expired(time.time())


def clear_sessions() -> None:
    global _last_sweep
    with _lock:
        _sessions.clear()
        _last_sweep = 0.0
