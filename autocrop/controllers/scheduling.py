"""Состояние планировщика: часы, стартовый шлюз, реестр занятых идентификаторов.

Принципы:
- DIP: время берётся из `Clock`, поэтому логика проверяется без реальных задержек.
- Потокобезопасность: события файловой системы приходят из потока наблюдателя,
  обработка идёт в потоках таймеров.
"""
from __future__ import annotations

import threading
import time
from typing import Callable, Dict, Protocol, Set


class Clock(Protocol):
    def monotonic(self) -> float: ...


class SystemClock:
    def monotonic(self) -> float:
        return time.monotonic()


class StartupGate:
    """Закрыт первые `delay` секунд после создания.

    Отсекает события создания, которые наблюдатель присылает для уже
    существующих файлов при запуске.
    """
    def __init__(self, clock: Clock, delay: float) -> None:
        self._clock = clock
        self._opens_at = clock.monotonic() + max(0.0, delay)

    def is_open(self) -> bool:
        return self._clock.monotonic() >= self._opens_at


class InFlightRegistry:
    """Не более одного прогона на идентификатор.

    После `release` идентификатор остаётся занятым ещё `hold` секунд, чтобы
    поглотить почти одновременные повторные события. Просроченные записи
    удаляются лениво.
    """
    def __init__(self, clock: Clock, hold: float) -> None:
        self._clock = clock
        self._hold = max(0.0, hold)
        self._lock = threading.Lock()
        self._running: Set[str] = set()
        self._cooling: Dict[str, float] = {}

    def try_acquire(self, key: str) -> bool:
        """Занимает идентификатор; `False`, если он уже занят."""
        with self._lock:
            self._purge()
            if key in self._running or key in self._cooling:
                return False
            self._running.add(key)
            return True

    def release(self, key: str) -> None:
        with self._lock:
            self._running.discard(key)
            if self._hold > 0:
                self._cooling[key] = self._clock.monotonic() + self._hold

    def __contains__(self, key: object) -> bool:
        with self._lock:
            self._purge()
            return key in self._running or key in self._cooling

    def __len__(self) -> int:
        with self._lock:
            self._purge()
            return len(self._running) + len(self._cooling)

    def _purge(self) -> None:
        now = self._clock.monotonic()
        expired = [k for k, until in self._cooling.items() if until <= now]
        for k in expired:
            del self._cooling[k]


Scheduler = Callable[[float, Callable[[], None]], object]


def thread_timer_scheduler(delay: float, fn: Callable[[], None]) -> threading.Timer:
    """Запускает `fn` через `delay` секунд в отдельном потоке-демоне."""
    timer = threading.Timer(delay, fn)
    timer.daemon = True
    timer.start()
    return timer
