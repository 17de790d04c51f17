"""
CLI Commands for Puzzle Craft.

Usage:
    flask campaigns repair                               # Fix shops with several active campaigns
    flask campaigns repair --shop store.myshopify.com
    flask campaigns sync --shop store.myshopify.com      # Republish storefront metafields
"""
from .campaigns import init_app as init_campaign_commands


def init_app(app):
    """Register all CLI commands with the Flask app."""
    init_campaign_commands(app)
