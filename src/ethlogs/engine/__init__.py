"""Historical queries and live subscriptions over decoded logs.

This package provides:
- `query_events` / `run_query`: one bounded eth_getLogs request, decoded
- `subscribe` / `run_subscription`: live decoded deliveries with a terminal state
"""

from ethlogs.engine.query import QueryResult, decode_all, query_events, run_query
from ethlogs.engine.subscription import (
    DecodeFailure,
    Delivery,
    EventDelivery,
    LogSubscription,
    SubscriptionState,
    Terminated,
    run_subscription,
    subscribe,
)

__all__ = [
    "QueryResult",
    "decode_all",
    "query_events",
    "run_query",
    "DecodeFailure",
    "Delivery",
    "EventDelivery",
    "LogSubscription",
    "SubscriptionState",
    "Terminated",
    "run_subscription",
    "subscribe",
]
