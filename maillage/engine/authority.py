"""Iterative authority propagation over the internal link graph."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence

from .config import AuthorityPolicy
from .graph import AuthorityGraph, GraphSnapshot
from .ports import Clock, utcnow
from .types import AuthorityScore, PropagationState

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PropagationResult:
    """Outcome of one propagation pass."""

    scores: Dict[str, AuthorityScore]
    iterations: int
    converged: bool
    delta: float

    @property
    def state(self) -> PropagationState:
        return PropagationState.CONVERGED if self.converged else PropagationState.MAX_ITERATIONS_REACHED


def outbound_index(snapshot: GraphSnapshot) -> List[List[int]]:
    """Return, per node position, the positions it links to (self-links dropped)."""

    position = {node: index for index, node in enumerate(snapshot.nodes)}
    outbound: List[List[int]] = []
    for node in snapshot.nodes:
        targets = snapshot.edges.get(node, frozenset())
        outbound.append(sorted(position[target] for target in targets if target != node and target in position))
    return outbound


def propagation_step(outbound: Sequence[Sequence[int]], scores: Sequence[float], damping: float) -> List[float]:
    """Run one iteration; dangling nodes spread their mass over every node."""

    count = len(scores)
    if count == 0:
        return []
    updated = [(1.0 - damping) / count] * count
    dangling_mass = 0.0
    for index, targets in enumerate(outbound):
        if not targets:
            dangling_mass += scores[index]
            continue
        share = damping * scores[index] / len(targets)
        for target in targets:
            updated[target] += share
    if dangling_mass:
        spread = damping * dangling_mass / count
        updated = [value + spread for value in updated]
    return updated


class AuthorityPropagator:
    """PageRank-style propagation with an explicit Idle/Computing/terminal state."""

    def __init__(self, graph: AuthorityGraph, policy: AuthorityPolicy, clock: Clock = utcnow) -> None:
        self.graph = graph
        self.policy = policy
        self.clock = clock
        self._compute_lock = threading.Lock()
        self._state = PropagationState.IDLE
        self.last_result: Optional[PropagationResult] = None

    @property
    def state(self) -> PropagationState:
        return self._state

    def run(self) -> PropagationResult:
        """Compute and commit scores; only one pass runs at a time."""

        with self._compute_lock:
            self._state = PropagationState.COMPUTING
            try:
                result = self._compute(self.graph.snapshot())
            except Exception:
                self._state = PropagationState.IDLE
                raise
            self.graph.commit_scores(result.scores)
            self._state = result.state
            self.last_result = result

        if result.converged:
            logger.info("Authority converged after %d iterations over %d nodes", result.iterations, len(result.scores))
        else:
            logger.warning(
                "Authority did not converge within %d iterations (delta=%.6f); keeping best-effort scores",
                result.iterations,
                result.delta,
            )
        return result

    def _compute(self, snapshot: GraphSnapshot) -> PropagationResult:
        count = len(snapshot.nodes)
        if count == 0:
            return PropagationResult(scores={}, iterations=0, converged=True, delta=0.0)

        outbound = outbound_index(snapshot)
        damping = self.policy.damping_factor
        scores = [1.0 / count] * count
        converged = False
        delta = 0.0
        iterations = 0

        for iterations in range(1, self.policy.max_iterations + 1):
            updated = propagation_step(outbound, scores, damping)
            delta = sum(abs(new - old) for new, old in zip(updated, scores))
            scores = updated
            if delta < self.policy.convergence_threshold:
                converged = True
                break

        total = sum(scores)
        computed_at = self.clock()
        normalized = {
            node: AuthorityScore(
                item_id=node,
                score=scores[index] / total,
                computed_at=computed_at,
                iterations=iterations,
                converged=converged,
            )
            for index, node in enumerate(snapshot.nodes)
        }
        return PropagationResult(scores=normalized, iterations=iterations, converged=converged, delta=delta)


class RecomputeScheduler:
    """Collapse bursts of graph mutations into a single delayed recompute."""

    def __init__(
        self,
        propagator: AuthorityPropagator,
        delay: float,
        *,
        on_result: Optional[Callable[[PropagationResult], None]] = None,
        timer_factory: Callable[[float, Callable[[], None]], threading.Timer] = threading.Timer,
    ) -> None:
        self.propagator = propagator
        self.delay = delay
        self.on_result = on_result
        self._timer_factory = timer_factory
        self._lock = threading.Lock()
        self._timer: Optional[threading.Timer] = None
        self._dirty = False
        self.runs = 0

    @property
    def pending(self) -> bool:
        return self._dirty

    def mark_dirty(self) -> None:
        with self._lock:
            self._dirty = True
            if self._timer is not None:
                return
            timer = self._timer_factory(self.delay, self._fire)
            timer.daemon = True
            self._timer = timer
        timer.start()

    def flush(self) -> Optional[PropagationResult]:
        """Run any pending recompute immediately."""

        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            if not self._dirty:
                return None
        return self._run_pending()

    def cancel(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

    def _fire(self) -> None:
        with self._lock:
            self._timer = None
        self._run_pending()

    def _run_pending(self) -> Optional[PropagationResult]:
        with self._lock:
            if not self._dirty:
                return None
            self._dirty = False
        result = self.propagator.run()
        self.runs += 1
        if self.on_result is not None:
            self.on_result(result)
        return result


def authority_report(graph: AuthorityGraph) -> List[Dict[str, object]]:
    """Return ranked per-node authority rows with link counts."""

    snapshot = graph.snapshot()
    scores = graph.scores()
    count = len(snapshot.nodes) or 1
    inbound = graph.inbound_counts()
    rows: List[Dict[str, object]] = []
    for node in snapshot.nodes:
        score = scores[node].score if node in scores else 0.0
        rows.append(
            {
                "item_id": node,
                "score": score,
                "normalized_score": round(score * count * 100, 2),
                "inbound_links": inbound.get(node, 0),
                "outbound_links": len([target for target in snapshot.edges.get(node, ()) if target != node]),
            }
        )
    rows.sort(key=lambda row: (-float(row["score"]), str(row["item_id"])))
    for rank, row in enumerate(rows, start=1):
        row["rank"] = rank
    return rows
