"""
Observable state cell and one-shot effect queue.

StateStore holds the single current value a screen renders; every update
replaces it and notifies subscribers in order. EffectQueue carries events
that must be consumed at most once (dialogs, toasts).
"""
import threading
from collections import deque
from typing import Callable, Generic, TypeVar

T = TypeVar("T")
E = TypeVar("E")


class StateStore(Generic[T]):

    def __init__(self, initial: T):
        self._lock = threading.Lock()
        self._state = initial
        self._listeners: list[Callable[[T], None]] = []

    def get_state(self) -> T:
        with self._lock:
            return self._state

    def subscribe(self, listener: Callable[[T], None]) -> Callable[[], None]:
        """Register a listener; returns a callable that removes it."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def update(self, fn: Callable[[T], T]) -> T:
        with self._lock:
            self._state = fn(self._state)
            state = self._state
            listeners = list(self._listeners)
        for listener in listeners:
            listener(state)
        return state


class EffectQueue(Generic[E]):

    def __init__(self, maxlen: int = 100):
        self._lock = threading.Lock()
        self._effects: deque[E] = deque(maxlen=maxlen)

    def emit(self, effect: E) -> None:
        with self._lock:
            self._effects.append(effect)

    def drain(self) -> list[E]:
        """Return and remove every pending effect."""
        with self._lock:
            effects = list(self._effects)
            self._effects.clear()
        return effects

    def __len__(self) -> int:
        with self._lock:
            return len(self._effects)
