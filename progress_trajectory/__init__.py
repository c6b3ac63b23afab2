"""
Progress Trajectory Package.

Turns monthly contract progress snapshots into per-contract trajectories
through (% time elapsed, % work completed) space: derived percentages,
parent/child roll-up, linear slope and deadline prediction, and dense
monotonic curves for drawing.

Subpackages:
    - core: Configuration and logging bootstrap
    - models: Pydantic schemas and enums
    - services: Pipeline stages and orchestration
"""

__version__ = "1.0.0"
