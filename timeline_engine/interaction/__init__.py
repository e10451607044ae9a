"""
Interaction Layer

Hover intent modelling and highlight derivation.
The rendering layer owns pointer events; this layer owns only the derivation.
"""

from .hover import (
    HoverTarget, HoverState, HighlightFlag, HighlightMap, HighlightResolver,
    NEUTRAL, HIGHLIGHTED, DIMMED, NO_HIGHLIGHT, resolve,
)

__all__ = [
    'HoverTarget', 'HoverState', 'HighlightFlag', 'HighlightMap', 'HighlightResolver',
    'NEUTRAL', 'HIGHLIGHTED', 'DIMMED', 'NO_HIGHLIGHT', 'resolve',
]
