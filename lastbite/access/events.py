"""
In-process profile change notifications.

A seller waiting on review subscribes to changes for their own user id and
holds a single long-poll open until the profile turns verified, the wait times
out, or the client goes away. ProfileService publishes every successful write.
Writes happen on threadpool workers, so delivery hops onto the subscriber's
event loop with call_soon_threadsafe.
"""
import asyncio
import logging
import threading
from typing import Awaitable, Callable, Dict, Optional, Set

from starlette.concurrency import run_in_threadpool

from lastbite.modules.profiles.schemas import Profile

logger = logging.getLogger(__name__)

# How often a waiting subscriber checks whether its client disconnected
CANCEL_CHECK_INTERVAL = 1.0
# How often a waiting subscriber re-reads the profile store; events only reach
# waiters in the process that handled the write
RECHECK_INTERVAL = 5.0


class Subscription:
    def __init__(self, user_id: str, loop: asyncio.AbstractEventLoop):
        self.user_id = user_id
        self.loop = loop
        self.queue: "asyncio.Queue[Profile]" = asyncio.Queue()


class ProfileEvents:
    def __init__(self):
        self._subscribers: Dict[str, Set[Subscription]] = {}
        self._lock = threading.Lock()

    def subscribe(self, user_id: str) -> Subscription:
        """Must be called from a running event loop"""
        subscription = Subscription(user_id, asyncio.get_running_loop())
        with self._lock:
            self._subscribers.setdefault(user_id, set()).add(subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            subscriptions = self._subscribers.get(subscription.user_id)
            if not subscriptions:
                return
            subscriptions.discard(subscription)
            if not subscriptions:
                del self._subscribers[subscription.user_id]

    def subscriber_count(self, user_id: str) -> int:
        with self._lock:
            return len(self._subscribers.get(user_id, ()))

    def publish(self, profile: Profile) -> None:
        with self._lock:
            subscriptions = list(self._subscribers.get(profile.user_id, ()))
        for subscription in subscriptions:
            try:
                subscription.loop.call_soon_threadsafe(subscription.queue.put_nowait, profile)
            except RuntimeError:
                # loop already closed; the waiter is gone
                logger.debug(f"Dropping profile event for closed subscriber of user {profile.user_id}")
                self.unsubscribe(subscription)

    async def wait_for_verification(
        self,
        user_id: str,
        fetch: Callable[[str], Optional[Profile]],
        timeout: float,
        is_cancelled: Optional[Callable[[], Awaitable[bool]]] = None,
        recheck_interval: float = RECHECK_INTERVAL,
    ) -> Optional[Profile]:
        """
        Wait until the user's profile is verified or `timeout` seconds pass.

        Subscribes before reading the current state so an approval landing in
        between is not missed. The store is re-read every `recheck_interval`
        seconds, so an approval written by another worker process is still
        seen. Returns the latest known profile, or None when the wait was
        cancelled or the profile does not exist.
        """
        subscription = self.subscribe(user_id)
        loop = asyncio.get_running_loop()
        try:
            profile = await run_in_threadpool(fetch, user_id)
            if profile is None or profile.is_verified:
                return profile

            deadline = loop.time() + timeout
            next_recheck = loop.time() + recheck_interval
            while True:
                now = loop.time()
                remaining = deadline - now
                if remaining <= 0:
                    return profile
                tick = min(remaining, CANCEL_CHECK_INTERVAL, max(next_recheck - now, 0))
                try:
                    profile = await asyncio.wait_for(subscription.queue.get(), timeout=tick)
                except asyncio.TimeoutError:
                    if is_cancelled is not None and await is_cancelled():
                        logger.debug(f"Verification wait for user {user_id} cancelled by client")
                        return None
                    if loop.time() < next_recheck:
                        continue
                    next_recheck = loop.time() + recheck_interval
                    latest = await run_in_threadpool(fetch, user_id)
                    if latest is None:
                        return None
                    profile = latest
                    if profile.is_verified:
                        return profile
                    continue
                if profile.is_verified:
                    return profile
        finally:
            self.unsubscribe(subscription)
