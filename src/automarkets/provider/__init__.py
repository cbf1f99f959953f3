"""Token Data Provider: protocol, throttle and Solana Tracker client."""

from automarkets.provider.base import TokenDataProvider
from automarkets.provider.rate_limit import TokenBucket
from automarkets.provider.solana_tracker import SolanaTrackerClient

__all__ = ["SolanaTrackerClient", "TokenBucket", "TokenDataProvider"]
