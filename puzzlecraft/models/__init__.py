"""
Database models for Puzzle Craft.
Campaigns, tiered discount codes, play sessions and installed shops.
"""
from .shop import Shop
from .campaign import Campaign, PUZZLE_PIECE_OPTIONS, TIMER_OPTIONS, WIDGET_POSITIONS
from .discount_code import DiscountCode
from .game_data import GameData

__all__ = [
    'Shop',
    'Campaign',
    'PUZZLE_PIECE_OPTIONS',
    'TIMER_OPTIONS',
    'WIDGET_POSITIONS',
    'DiscountCode',
    'GameData',
]
