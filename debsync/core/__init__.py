"""Sync pipeline core: executor, resolver, freshness gate, fetcher, publisher."""
