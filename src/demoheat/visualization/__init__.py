"""
demoheat Visualization - Radar-space heatmap data.

This module contains:
- radar: world-to-radar coordinate transformation
- heatmaps: per-player kill and death point aggregation
"""

__all__: list[str] = []
