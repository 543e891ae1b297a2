"""Realtime notification of evaluated opportunities."""

from .broadcast import OpportunityBroadcaster, OPPORTUNITY_EVENT

__all__ = ['OpportunityBroadcaster', 'OPPORTUNITY_EVENT']
