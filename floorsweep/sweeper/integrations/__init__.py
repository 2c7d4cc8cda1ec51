"""
External integrations for the sweeper agent.

- Listing gateway: exchange listing feed (aiohttp)
"""

from .listing_gateway import ListingGateway

__all__ = ['ListingGateway']
