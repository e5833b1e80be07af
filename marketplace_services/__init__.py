"""
Transactional services layer of the marketplace.

``MarketplaceWorkflow`` owns one transaction per operation and composes
the flush-only kernel services underneath it.
"""

from marketplace_services.workflow import MarketplaceWorkflow

__all__ = ["MarketplaceWorkflow"]
