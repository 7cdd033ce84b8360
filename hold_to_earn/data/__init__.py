"""
Chain-indexer collaborators.

- hiro_client: HTTP transport with retry
- clarity_codec: serialized Clarity value decoding/encoding
- log_fetcher: harvest log source
- pending_quote: read-only pending-units quote
"""
