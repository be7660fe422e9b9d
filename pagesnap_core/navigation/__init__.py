"""
Navigation: the scraping loop and schema-declared pagination strategies.
"""

from .engine import ScrapingEngine
from .pagination import PaginationHandler, next_page_url

__all__ = [
    'ScrapingEngine',
    'PaginationHandler',
    'next_page_url',
]
