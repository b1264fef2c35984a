"""
SafeCart - Cart Update Notifications
=====================================
In-process publish/subscribe of cart changes, keyed by owner.

Subscribers only ever hear about their own owner's cart. A failing
subscriber is logged and skipped; it never fails the mutation that
triggered the notification.
"""

import logging
from collections import defaultdict
from typing import Callable, Dict, List

logger = logging.getLogger("safecart.notifications")

CART_UPDATED = "CART_UPDATED"

CartListener = Callable[[dict], None]


class CartUpdates:

    def __init__(self):
        self._listeners: Dict[str, List[CartListener]] = defaultdict(list)

    def subscribe(self, owner: str, listener: CartListener) -> Callable[[], None]:
        """Register `listener` for `owner`'s cart. Returns the unsubscribe callable."""
        self._listeners[owner].append(listener)

        def unsubscribe():
            listeners = self._listeners.get(owner)
            if listeners and listener in listeners:
                listeners.remove(listener)
                if not listeners:
                    del self._listeners[owner]

        return unsubscribe

    def publish(self, owner: str, cart: dict) -> int:
        """
        Notify `owner`'s listeners of the new cart view.
        Returns how many listeners were notified successfully.
        """
        delivered = 0
        for listener in list(self._listeners.get(owner, ())):
            try:
                listener(cart)
                delivered += 1
            except Exception as e:
                logger.error("%s listener failed for %s: %s", CART_UPDATED, owner, e)
        return delivered

    def subscriber_count(self, owner: str) -> int:
        return len(self._listeners.get(owner, ()))
