"""
Association Layer

Activity <-> draft story relation, repaired and indexed once per snapshot.
"""

from .index import (
    AssociationIndex, AssociationReport, group_by_source, source_counts,
)

__all__ = [
    'AssociationIndex', 'AssociationReport', 'group_by_source', 'source_counts',
]
