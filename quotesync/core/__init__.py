"""quotesync core - the QuoteSync facade and its mixins.

    from quotesync.core import QuoteSync
"""

from quotesync.core.quotesync_class import QuoteSync

__all__ = ["QuoteSync"]
