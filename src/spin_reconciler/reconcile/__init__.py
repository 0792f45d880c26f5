"""Outcome reconciliation: coordinator, freshness gate and fallback."""

from spin_reconciler.reconcile.coordinator import ReconciliationCoordinator
from spin_reconciler.reconcile.fallback import FallbackHeuristicEngine
from spin_reconciler.reconcile.freshness import FreshnessEvaluator

__all__ = ["ReconciliationCoordinator", "FallbackHeuristicEngine", "FreshnessEvaluator"]
