"""Persistence and journaling."""

from .db import Database, MAX_PAGE_SIZE
from .journal import OpportunityJournal
from .models import OpportunityRecord, Page

__all__ = [
    'Database',
    'MAX_PAGE_SIZE',
    'OpportunityJournal',
    'OpportunityRecord',
    'Page',
]
