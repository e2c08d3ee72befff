from votely.realtime.broadcaster import RealtimeBroadcaster
from votely.realtime.registry import Observer, SubscriptionRegistry, election_room

__all__ = ["Observer", "RealtimeBroadcaster", "SubscriptionRegistry", "election_room"]
