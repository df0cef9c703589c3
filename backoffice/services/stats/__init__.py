from .service import StatsService, RefreshAllResult, MonthlyRefreshResult
from .snapshot_builder import SnapshotBuilder

__all__ = [
    'StatsService',
    'RefreshAllResult',
    'MonthlyRefreshResult',
    'SnapshotBuilder'
]
