"""
Layout Module - panel placement and grid reconciliation.

Provides:
- Full-building classified panel grid with selection/obstruction editing
- Independently placed, resizable panel arrays
- Reconciliation of arrays into one building-aligned grid for export
"""

from .grid import CanonicalGrid
from .grid_builder import PanelGridBuilder, PanelLayout
from .array_manager import ArrayManager, PanelArray
from .reconciler import GridReconciler, ReconciliationMetadata, ReconciliationResult

__all__ = [
    'CanonicalGrid',
    'PanelGridBuilder',
    'PanelLayout',
    'ArrayManager',
    'PanelArray',
    'GridReconciler',
    'ReconciliationMetadata',
    'ReconciliationResult',
]
