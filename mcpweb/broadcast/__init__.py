from .broadcast_hub import BroadcastHub, Subscription

__all__ = [
    "BroadcastHub",
    "Subscription",
]
