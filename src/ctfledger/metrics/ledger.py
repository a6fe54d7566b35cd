from __future__ import annotations

from typing import Optional
import os
from prometheus_client import Counter, Gauge, Histogram, REGISTRY

_conditions_prepared: Optional[Counter] = None
_conditions_resolved: Optional[Counter] = None
_splits_total: Optional[Counter] = None
_merges_total: Optional[Counter] = None
_redemptions_total: Optional[Counter] = None
_collateral_paid_total: Optional[Counter] = None
_collateral_in_custody: Optional[Gauge] = None
_operations_rejected: Optional[Counter] = None
_operation_latency: Optional[Histogram] = None


class _NoOp:
    def labels(self, *args, **kwargs):
        return self
    def inc(self, *args, **kwargs):
        return None
    def set(self, *args, **kwargs):
        return None
    def observe(self, *args, **kwargs):
        return None


def _existing(name: str):
    try:
        coll = getattr(REGISTRY, "_names_to_collectors", {}).get(name)
        if coll is not None:
            return coll
        for coll in list(getattr(REGISTRY, "_collector_to_names", {}).keys()):  # type: ignore[attr-defined]
            if getattr(coll, "_name", None) == name:
                return coll
    except Exception:
        pass
    return _NoOp()


def _safe_counter(name: str, doc: str, labelnames):
    if os.getenv("DISABLE_PROMETHEUS", "0") == "1":
        return _NoOp()
    try:
        return Counter(name, doc, labelnames)
    except ValueError:
        # Already registered (module reloaded in tests); reuse the collector
        return _existing(name)


def _safe_gauge_labels(name: str, doc: str, labelnames):
    if os.getenv("DISABLE_PROMETHEUS", "0") == "1":
        return _NoOp()
    try:
        return Gauge(name, doc, labelnames)
    except ValueError:
        return _existing(name)


def _safe_histogram(name: str, doc: str, labelnames=None, buckets=None):
    if os.getenv("DISABLE_PROMETHEUS", "0") == "1":
        return _NoOp()
    try:
        kwargs = {}
        if buckets is not None:
            kwargs["buckets"] = buckets
        return Histogram(name, doc, labelnames or (), **kwargs)
    except ValueError:
        return _existing(name)


def get_conditions_prepared_total():
    global _conditions_prepared
    if _conditions_prepared is None:
        _conditions_prepared = _safe_counter("ctf_conditions_prepared_total", "Conditions prepared", ["outcome_slots"])
    return _conditions_prepared


def get_conditions_resolved_total():
    global _conditions_resolved
    if _conditions_resolved is None:
        _conditions_resolved = _safe_counter("ctf_conditions_resolved_total", "Conditions resolved", ["outcome_slots"])
    return _conditions_resolved


def get_splits_total():
    global _splits_total
    if _splits_total is None:
        _splits_total = _safe_counter("ctf_splits_total", "Position splits", ["collateral", "source"])
    return _splits_total


def get_merges_total():
    global _merges_total
    if _merges_total is None:
        _merges_total = _safe_counter("ctf_merges_total", "Position merges", ["collateral", "target"])
    return _merges_total


def get_redemptions_total():
    global _redemptions_total
    if _redemptions_total is None:
        _redemptions_total = _safe_counter("ctf_redemptions_total", "Position redemptions", ["collateral"])
    return _redemptions_total


def get_collateral_paid_total():
    """Counter: collateral units released to redeemers, labeled by collateral."""
    global _collateral_paid_total
    if _collateral_paid_total is None:
        _collateral_paid_total = _safe_counter("ctf_collateral_paid_total", "Collateral paid out on redemption", ["collateral"])
    return _collateral_paid_total


def get_collateral_in_custody():
    """Gauge: collateral held by the ledger's custody account, labeled by collateral."""
    global _collateral_in_custody
    if _collateral_in_custody is None:
        _collateral_in_custody = _safe_gauge_labels("ctf_collateral_in_custody", "Collateral locked in the ledger", ["collateral"])
    return _collateral_in_custody


def get_operations_rejected_total():
    global _operations_rejected
    if _operations_rejected is None:
        _operations_rejected = _safe_counter("ctf_operations_rejected_total", "Ledger operations rejected", ["operation", "reason"])
    return _operations_rejected


def get_operation_latency_seconds():
    """Histogram: ctf_operation_latency_seconds{operation}"""
    global _operation_latency
    if _operation_latency is None:
        _operation_latency = _safe_histogram(
            "ctf_operation_latency_seconds",
            "Wall time of a ledger operation",
            ["operation"],
            buckets=(0.0001, 0.0005, 0.001, 0.005, 0.01, 0.05, 0.1),
        )
    return _operation_latency


def set_custody(collateral: str, amount: int) -> None:
    try:
        get_collateral_in_custody().labels(collateral=collateral).set(float(amount))  # type: ignore[attr-defined]
    except Exception:
        # Metrics are optional in constrained environments
        pass
