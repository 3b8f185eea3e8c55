"""Fast-forward decision and execution pipeline.

Modules:
    errors: Error kinds raised and reported by the pipeline
    models: Commit references, ancestry results and outcomes
    resolver: Map branch names to commits, fetching missing objects
    ancestry: Decide the fast-forward relationship and divergence
    authorization: Fresh push-permission check, failing closed
    strategy: Pick the reference update (fast forward or merge commit)
    executor: Apply the single compare-and-swap reference update
    report: Render outcomes and publish them to the runner sinks
    engine: Drive one invocation from resolution to reporting
"""

from __future__ import annotations

__all__: list[str] = []
