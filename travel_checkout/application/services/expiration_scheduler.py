"""Shared tick source for the checkout timers."""
import itertools
import logging
from collections import OrderedDict
from datetime import datetime
from typing import Any, Callable, List, Optional

from travel_checkout.utils.clock import Clock, utcnow


logger = logging.getLogger(__name__)

TickCallback = Callable[[datetime], Any]


class ExpirationScheduler:
    """
    Single tick distributed to every subscribed timer.
    
    All callbacks of one tick receive the same ``now`` and run in
    subscription order. After ``shutdown()`` no callback runs again.
    """
    
    def __init__(self, clock: Optional[Clock] = None):
        self._clock = clock or utcnow
        self._subscribers: "OrderedDict[int, TickCallback]" = OrderedDict()
        self._tokens = itertools.count(1)
        self._closed = False
        self._ticks = 0
    
    @property
    def closed(self) -> bool:
        return self._closed
    
    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)
    
    @property
    def tick_count(self) -> int:
        return self._ticks
    
    def subscribe(self, callback: TickCallback) -> int:
        """
        Register a callback for every tick.
        
        Args:
            callback: Called with the tick's ``now``; a non-None return
                value is collected into the tick's results
        
        Returns:
            Token to pass to ``unsubscribe``
        
        Raises:
            RuntimeError: If the scheduler has been shut down
        """
        if self._closed:
            raise RuntimeError("Cannot subscribe to a scheduler that has been shut down")
        token = next(self._tokens)
        self._subscribers[token] = callback
        return token
    
    def unsubscribe(self, token: int) -> bool:
        return self._subscribers.pop(token, None) is not None
    
    def tick(self, now: Optional[datetime] = None) -> List[Any]:
        """
        Run one evaluation round.
        
        Args:
            now: Snapshot of the current time; taken from the clock once
                if omitted
        
        Returns:
            Non-None callback results in subscription order
        """
        if self._closed:
            return []
        now = now or self._clock()
        self._ticks += 1
        results = []
        for token, callback in list(self._subscribers.items()):
            # A callback may tear the session down mid-round.
            if self._closed:
                break
            if token not in self._subscribers:
                continue
            result = callback(now)
            if result is not None:
                results.append(result)
        return results
    
    def shutdown(self) -> None:
        """Release every subscription; later ticks are no-ops."""
        if self._closed:
            return
        released = len(self._subscribers)
        self._subscribers.clear()
        self._closed = True
        logger.debug(f"Expiration scheduler shut down ({released} subscription(s) released)")
