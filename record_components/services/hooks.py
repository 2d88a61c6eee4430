"""
Post-save hooks.

Side effects that must follow a successful primary save (secondary-store
writes, notifications...) are registered as named hooks on a
``SaveHookRegistry``. Hooks run in registration order after the commit;
each one is retried on its own and a failing hook never stops the others.
"""
from __future__ import annotations

import time
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Callable, Dict, List, Optional, Tuple

import redis
import structlog

from record_components.core.config import Settings, get_settings
from record_components.core.exceptions import ReadOnlyAttributeError, SaveHookError

logger = structlog.get_logger()

SaveHook = Callable[[Any], Any]


@dataclass
class HookResult:
    """Outcome of one hook for one save."""

    name: str
    ok: bool
    attempts: int
    error: Optional[str] = None


@dataclass
class RegisteredHook:
    name: str
    hook: SaveHook
    max_attempts: int


class SaveHookRegistry:
    """Ordered, named post-save hooks with per-hook retries."""

    def __init__(
        self,
        max_attempts: int = 3,
        retry_backoff: float = 0.5,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.max_attempts = max(1, int(max_attempts))
        self.retry_backoff = retry_backoff
        self._sleep = sleep
        self._hooks: List[RegisteredHook] = []

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "SaveHookRegistry":
        settings = settings or get_settings()
        return cls(
            max_attempts=settings.save_hook_max_attempts,
            retry_backoff=settings.save_hook_retry_backoff,
        )

    def __len__(self) -> int:
        return len(self._hooks)

    @property
    def names(self) -> List[str]:
        return [entry.name for entry in self._hooks]

    def register(self, name: str, hook: SaveHook, max_attempts: Optional[int] = None) -> "SaveHookRegistry":
        if name in self.names:
            raise ValueError(f"A save hook named {name!r} is already registered")
        attempts = self.max_attempts if max_attempts is None else max(1, int(max_attempts))
        self._hooks.append(RegisteredHook(name=name, hook=hook, max_attempts=attempts))
        return self

    def unregister(self, name: str) -> None:
        self._hooks = [entry for entry in self._hooks if entry.name != name]

    def copy(self) -> "SaveHookRegistry":
        clone = SaveHookRegistry(self.max_attempts, self.retry_backoff, self._sleep)
        clone._hooks = list(self._hooks)
        return clone

    def _run_one(self, entry: RegisteredHook, instance: Any) -> HookResult:
        last_error: Optional[Exception] = None
        for attempt in range(1, entry.max_attempts + 1):
            try:
                entry.hook(instance)
                return HookResult(name=entry.name, ok=True, attempts=attempt)
            except Exception as e:
                last_error = e
                logger.warning(
                    "save_hook.attempt_failed",
                    hook=entry.name,
                    attempt=attempt,
                    max_attempts=entry.max_attempts,
                    error=str(e),
                )
                if attempt < entry.max_attempts and self.retry_backoff:
                    self._sleep(self.retry_backoff * attempt)

        logger.error("save_hook.failed", hook=entry.name, error=str(last_error))
        return HookResult(name=entry.name, ok=False, attempts=entry.max_attempts, error=str(last_error))

    def run(self, instance: Any, raise_on_failure: bool = False) -> List[HookResult]:
        """Run every hook against ``instance``; returns one result per hook."""
        results = [self._run_one(entry, instance) for entry in self._hooks]
        failures = [result for result in results if not result.ok]
        if failures and raise_on_failure:
            raise SaveHookError(failures)
        return results


@lru_cache
def get_redis_client() -> redis.Redis:
    settings = get_settings()
    return redis.from_url(
        settings.redis_url,
        decode_responses=True,
        socket_connect_timeout=5,
        socket_timeout=5,
    )


@dataclass
class RedisCommandQueue:
    """
    Redis commands recorded now and replayed later in one MULTI/EXEC.

    The queue is only cleared once the transaction succeeded, so a retried
    ``process()`` replays the same commands.
    """

    client_factory: Callable[[], redis.Redis] = get_redis_client
    client: Optional[redis.Redis] = None
    _commands: List[Tuple[str, Tuple[Any, ...], Dict[str, Any]]] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self._commands)

    @property
    def pending(self) -> List[Tuple[str, Tuple[Any, ...], Dict[str, Any]]]:
        return list(self._commands)

    def queue(self, command: str, *args: Any, **kwargs: Any) -> "RedisCommandQueue":
        self._commands.append((command, args, kwargs))
        return self

    def discard(self) -> None:
        self._commands.clear()

    def process(self) -> List[Any]:
        if not self._commands:
            return []
        if self.client is None:
            self.client = self.client_factory()
        pipe = self.client.pipeline(transaction=True)
        for command, args, kwargs in self._commands:
            getattr(pipe, command)(*args, **kwargs)
        results = pipe.execute()
        logger.info("redis_queue.processed", count=len(self._commands))
        self._commands.clear()
        return results


class RedisIntegrationMixin:
    """
    Mapped classes whose saves are mirrored into Redis.

    Commands queued on ``redis_queue`` are executed by a post-save hook once
    the primary save committed. ``redis_client_factory`` supplies the client.
    """

    redis_client_factory = staticmethod(get_redis_client)

    @property
    def redis_queue(self) -> RedisCommandQueue:
        queue = getattr(self, "_redis_queue", None)
        if queue is None:
            queue = RedisCommandQueue(client_factory=type(self).redis_client_factory)
            self._redis_queue = queue
        return queue

    @redis_queue.setter
    def redis_queue(self, value) -> None:
        raise ReadOnlyAttributeError("Redis attribute is read-only")

    @classmethod
    def build_save_hooks(cls) -> SaveHookRegistry:
        hooks = super().build_save_hooks()
        return hooks.register("redis_queue", lambda instance: instance.redis_queue.process())
