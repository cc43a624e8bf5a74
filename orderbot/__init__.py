"""Daily Shopify orders report bot."""

__version__ = "1.0.0"
