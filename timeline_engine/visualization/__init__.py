"""
Visualization Contracts

Render-ready, immutable views consumed by calendar, Gantt, river and
kanban renderers alike.
"""

from .timeline import ActivityView, DraftView, TimeAxis, TimelineView, compute_view_id

__all__ = ['ActivityView', 'DraftView', 'TimeAxis', 'TimelineView', 'compute_view_id']
