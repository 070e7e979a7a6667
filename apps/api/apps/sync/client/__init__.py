"""
Device-side sync: sqlite3 local mirror and the push/pull cycle driver.
"""
from .engine import MirrorSyncEngine, SyncCycleResult
from .store import LocalMirror, MirrorError

__all__ = ['LocalMirror', 'MirrorError', 'MirrorSyncEngine', 'SyncCycleResult']
