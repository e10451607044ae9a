from .feed import FeedItem, FeedItemKind, build_feed

__all__ = ['FeedItem', 'FeedItemKind', 'build_feed']
