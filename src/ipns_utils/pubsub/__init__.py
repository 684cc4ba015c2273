"""Conversions between IPNS keys, PubSub topics and DHT rendezvous keys."""

from .topic import (
    IPNS_PREFIX,
    RENDEZVOUS_PREFIX,
    TOPIC_PREFIX,
    dht_rendezvous_key,
    dht_rendezvous_key_from_identifier,
    key_to_topic,
    topic_to_key,
)

__all__ = [
    "TOPIC_PREFIX",
    "IPNS_PREFIX",
    "RENDEZVOUS_PREFIX",
    "key_to_topic",
    "topic_to_key",
    "dht_rendezvous_key",
    "dht_rendezvous_key_from_identifier",
]
