"""
Activity Timeline Layout Engine

Turns an already-fetched, in-memory snapshot of work activities and the
draft stories grouping them into render-ready coordinates, buckets, lanes
and highlight flags. Renderers (calendar grids, Gantt bars, river and
kanban views) consume the output; they hold no layout logic of their own.

LAYER STRUCTURE:
================

1. CONTRACTS (contracts/)
   - Immutable Activity, DraftStory, Snapshot records and Error data
   - MUST NOT: depend on any other layer

2. LAYOUT (layout/)
   - TimeScale: instants -> coordinate, domain covers every draft endpoint
   - Bucketing: relative, period and calendar-grid partitions
   - Lanes: greedy interval colouring of draft spans
   - MUST NOT: know about hover or rendering

3. ASSOCIATION (association/)
   - Bidirectional activity <-> draft index, repaired by union
   - MUST NOT: raise for unknown ids

4. INTERACTION (interaction/)
   - Single-valued hover state, lazily derived highlight flags
   - Cost bounded by the hovered item's direct associations

5. PRESENTATION / VISUALIZATION (presentation/, visualization/)
   - Interleaved feed and render-ready view records

6. ENGINE (engine.py)
   - Memoised per-snapshot preparation, per-interaction rendering

CONSTRAINTS ENFORCED:
=====================
- Immutability-first: every derived structure is frozen
- Deterministic: identical snapshot, hover and viewport give identical views
- Explicit errors: exclusions, repairs and clamps are reported as data
- No I/O inside the core; the CLI and mapper sit at the edge
"""

from .config import EngineConfig, ScaleConfig, BucketConfig, LaneConfig
from .contracts import (
    Activity, ActivitySource, DateRange, DominantRole, DraftStory,
    Error, ErrorCode, Snapshot,
)
from .layout import TimeScale, build_time_scale, bucket_relative, build_calendar_grid, pack
from .association import AssociationIndex
from .interaction import HoverState, HighlightMap, HighlightResolver, resolve
from .mapper import MappingReport, SnapshotMapper, SnapshotMappingError, TimelineEngineError
from .engine import PreparedLayout, TimelineEngine
from .visualization import TimelineView

__version__ = "0.1.0"

__all__ = [
    'EngineConfig', 'ScaleConfig', 'BucketConfig', 'LaneConfig',
    'Activity', 'ActivitySource', 'DateRange', 'DominantRole', 'DraftStory',
    'Error', 'ErrorCode', 'Snapshot',
    'TimeScale', 'build_time_scale', 'bucket_relative', 'build_calendar_grid', 'pack',
    'AssociationIndex',
    'HoverState', 'HighlightMap', 'HighlightResolver', 'resolve',
    'MappingReport', 'SnapshotMapper', 'SnapshotMappingError', 'TimelineEngineError',
    'PreparedLayout', 'TimelineEngine',
    'TimelineView',
]
