"""
Crawl models package.
"""
from app.features.crawl.models.frontier_entry import FrontierEntry

__all__ = ["FrontierEntry"]
