"""
Hold-to-earn energy analytics engine.

Turns the append-only log of on-chain energy harvests into per-user and
system-wide statistics and serves them through a TTL result cache.

Subpackages:
    config:  environment-driven settings
    data:    chain indexer client, Clarity value codec, pending-units quote
    metrics: timestamp normalizer, user/system aggregators, rate history
    models:  result dataclasses
    utils:   result stores, HTTP retry
    live:    client-side live estimation loop
"""

__version__ = "1.0.0"
