"""
pagesnap_logs - debug artifacts for pagesnap runs

Usage:
    from pagesnap_logs import DebugDumper

    dumper = DebugDumper("./debug", html=True)
    await dumper.dump(page, snapshot, state, tag="snapshot")
"""

from .debug_dump import DebugDumper, DumpInfo, sanitize_name

__all__ = [
    'DebugDumper',
    'DumpInfo',
    'sanitize_name',
]

__version__ = '0.1.0'
