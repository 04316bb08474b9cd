"""
demoheat Pipeline - Replay processing orchestration.

This module handles the complete replay processing pipeline:
- File precondition check
- Replay identity validation (ReplayIdentityValidator)
- Per-player heatmap aggregation (PlayerEventAggregator)
- Result serialization
"""

from demoheat.pipeline.orchestrator import (
    ReplayOrchestrator,
    ReplayRejectedError,
    ReplayResult,
    process_replay,
)

__all__ = ["ReplayOrchestrator", "ReplayRejectedError", "ReplayResult", "process_replay"]
