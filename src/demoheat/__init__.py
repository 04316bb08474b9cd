"""
demoheat - CS2 replay validation and kill/death heatmaps

Checks that an uploaded replay belongs to the match it claims to be from,
then turns its kill/death events into per-player radar coordinates.

Usage:
    from demoheat import ReplayHandle, ReplayIdentityValidator, PlayerEventAggregator

    replay = ReplayHandle("match.dem")
    result = ReplayIdentityValidator().validate(replay, "de_mirage", steam_ids, nicknames)
    if result.is_valid:
        players = PlayerEventAggregator().aggregate(replay.death_events(), result.detected_map_name)
"""

__version__ = "0.1.0"
__author__ = "demoheat Contributors"


_LAZY_IMPORTS = {
    "MapCalibration": "demoheat.map_data",
    "MapCalibrationRegistry": "demoheat.map_data",
    "CoordinateTransformer": "demoheat.visualization.radar",
    "TransformMode": "demoheat.visualization.radar",
    "PlayerEventAggregator": "demoheat.visualization.heatmaps",
    "PlayerHeatmapData": "demoheat.visualization.heatmaps",
    "ReplayIdentityValidator": "demoheat.validation",
    "ValidationResult": "demoheat.validation",
    "ReplayHandle": "demoheat.parser",
    "process_replay": "demoheat.pipeline.orchestrator",
}


def __getattr__(name):
    """Lazy import so `import demoheat` stays cheap (demoparser2, pandas)."""
    module_name = _LAZY_IMPORTS.get(name)
    if module_name is None:
        raise AttributeError(f"module 'demoheat' has no attribute '{name}'")
    import importlib

    return getattr(importlib.import_module(module_name), name)


__all__ = [
    "__version__",
    *_LAZY_IMPORTS,
]
