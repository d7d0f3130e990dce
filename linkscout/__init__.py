"""linkscout: crawl seed URLs from stdin and report every reference found."""

__version__ = "0.1.0"
