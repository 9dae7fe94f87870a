"""Job market insight pipeline: scrape listings, synthesize insights, index them."""

__version__ = "0.1.0"
