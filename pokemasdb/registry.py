"""Cache registry: owns the published caches and their lifecycle.

One ``CacheRegistry`` is created per process and passed to whatever needs
the caches. Its state moves ``UNINITIALIZED -> INITIALIZING -> READY``;
``invalidate`` returns it to ``UNINITIALIZED``.

Builds run one at a time, either synchronously (``initialize``) or on a
single background worker (``submit_initialize``). Readers never lock: the
published ``DerivedCaches`` is frozen and swapped in by one assignment.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from enum import Enum
from typing import Any, Callable, Iterable, Optional

from .errors import CachingError, PokemasDBError
from .entities import Trainer
from .transform import DerivedCaches, build_caches

logger = logging.getLogger(__name__)

TrainerLoader = Callable[[], Iterable[Trainer]]


class CacheState(Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"


class CacheType(Enum):
    """The kinds of cache a name can be looked up in."""

    TRAINER = ("trainer",)
    POKEMON = ("pokemon",)
    SKILL = ("skill", "passive")
    MOVE = ("move",)
    THEME = ("theme",)
    UNKNOWN = ()

    def __init__(self, *aliases: str):
        self.aliases = aliases

    @classmethod
    def parse(cls, name: Any) -> "CacheType":
        """Map a user supplied kind (``"passive"``, ``"Move"``...) to a type."""
        if not isinstance(name, str):
            return cls.UNKNOWN
        wanted = name.strip().lower()
        for member in cls:
            if wanted in member.aliases:
                return member
        return cls.UNKNOWN

    @classmethod
    def is_type(cls, name: Any) -> bool:
        """True when ``name`` names any known cache type."""
        return cls.parse(name) is not cls.UNKNOWN

    def matches(self, name: Any) -> bool:
        return CacheType.parse(name) is self


class CacheRegistry:
    """Builds, publishes and invalidates the derived caches.

    ``loader`` returns the trainers to aggregate; it is called once per
    build, under the run lock.
    """

    def __init__(self, loader: TrainerLoader):
        self._loader = loader
        self._state_lock = threading.Lock()
        self._run_lock = threading.Lock()
        self._state = CacheState.UNINITIALIZED
        self._caches: Optional[DerivedCaches] = None
        self._generation = 0
        self._executor: Optional[ThreadPoolExecutor] = None

    @property
    def state(self) -> CacheState:
        return self._state

    def get_instance(self) -> Optional[DerivedCaches]:
        """Return the published caches, or None when not ready. Never blocks."""
        return self._caches

    def initialize(self) -> Optional[DerivedCaches]:
        """Build and publish the caches unless they are ready or being built.

        Returns the published caches, or None when another build is already
        running. A failed build leaves the registry ``UNINITIALIZED`` and the
        error propagates.
        """
        with self._state_lock:
            if self._state is CacheState.READY:
                return self._caches
            if self._state is CacheState.INITIALIZING:
                logger.debug("Cache build already in progress")
                return None
            self._state = CacheState.INITIALIZING
            generation = self._generation

        with self._run_lock:
            try:
                caches = self._build()
            except BaseException:
                with self._state_lock:
                    if self._generation == generation:
                        self._state = CacheState.UNINITIALIZED
                raise

        with self._state_lock:
            if self._generation != generation:
                logger.warning("Discarding cache build invalidated while running")
                return self._caches
            self._caches = caches
            self._state = CacheState.READY
        logger.info("Caches ready: %s", caches.summary())
        return caches

    def _build(self) -> DerivedCaches:
        logger.info("Building caches")
        try:
            trainers = list(self._loader())
            return build_caches(trainers)
        except PokemasDBError:
            raise
        except Exception as exc:
            raise CachingError(exc) from exc

    def invalidate(self) -> None:
        """Drop the published caches. A build still running is discarded."""
        with self._state_lock:
            self._generation += 1
            self._caches = None
            self._state = CacheState.UNINITIALIZED
        logger.info("Caches invalidated")

    def reinitialize(self) -> Optional[DerivedCaches]:
        self.invalidate()
        return self.initialize()

    # Background worker

    def _worker(self) -> ThreadPoolExecutor:
        with self._state_lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="pokemasdb-cache")
            return self._executor

    def submit_initialize(self) -> "Future[Optional[DerivedCaches]]":
        """Queue ``initialize`` on the background worker."""
        return self._worker().submit(self.initialize)

    def submit_reinitialize(self) -> "Future[Optional[DerivedCaches]]":
        """Queue ``reinitialize`` on the background worker."""
        return self._worker().submit(self.reinitialize)

    def shutdown(self, wait: bool = True) -> None:
        with self._state_lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=wait)

    def __enter__(self) -> "CacheRegistry":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown()

    # Queries

    def lookup(self, cache_type: CacheType, name: Any) -> Any:
        """Look ``name`` up in the cache for ``cache_type``; None when absent."""
        caches = self._caches
        if caches is None:
            return None
        if cache_type is CacheType.TRAINER:
            return caches.get_trainer(name)
        if cache_type is CacheType.POKEMON:
            return caches.get_pokemon(name)
        if cache_type is CacheType.SKILL:
            return caches.get_skill(name)
        if cache_type is CacheType.MOVE:
            return caches.get_move(name)
        if cache_type is CacheType.THEME:
            return caches.get_theme(name)
        return None
