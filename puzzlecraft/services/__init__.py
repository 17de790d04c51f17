"""
Business logic services for Puzzle Craft.

Import services from their modules directly, e.g.
    from puzzlecraft.services.campaign_store import CampaignStore
"""
