"""
ClusterManager - turns item sets into published map clusters.

One update runs the whole pipeline:

    items + pixel spacing + viewport -> epsilon
    items -> quantization (points + reverse index)       [caller context]
    points, epsilon -> engine -> index resolution
        -> aggregation                                   [worker pool]
    new clusters -> published list                       [caller context]

The published list is replaced wholesale, only from the event loop that called
``update``, so readers never see a partially built list and no lock is needed.

Overlapping updates are not serialized. If an earlier call finishes its worker
phase after a later one, the earlier (stale) result is published last. Set
``discard_stale=True`` in the config to drop such results instead.

Usage:
    ```python
    manager = ClusterManager(ClusterManagerConfig.load("default"))
    manager.subscribe(lambda clusters: render(clusters))

    result = await manager.update(items, viewport, pixel_spacing=30)
    if result.status is UpdateStatus.PUBLISHED:
        print(result.num_clusters, result.engine_duration_s)
    ```
"""

from __future__ import annotations

import asyncio
import functools
import json
import logging
import math
import time
from concurrent.futures import Executor, ThreadPoolExecutor
from dataclasses import asdict, dataclass
from enum import Enum
from typing import (
    Any,
    Callable,
    Dict,
    Generic,
    List,
    Optional,
    Sequence,
    Tuple,
    TypeVar,
)

from ..spatial.aggregation import Cluster, build_clusters
from ..spatial.engines import ClusterEngineError, make_engine
from ..spatial.epsilon import ViewportLike, degrees_from_pixels
from ..spatial.quantization import QuantizedPoints, quantize
from ..spatial.resolution import resolve_groups
from .config import ClusterManagerConfig


logger = logging.getLogger(__name__)

T = TypeVar("T")

# Every point is its own core point, so isolated items become singletons
MIN_POINTS = 1

ClustersCallback = Callable[[Tuple[Cluster, ...]], Any]


class UpdateStatus(Enum):
    """Outcome of a single update call."""
    PUBLISHED = "published"
    EMPTY = "empty"
    NO_EPSILON = "no_epsilon"
    ENGINE_FAILED = "engine_failed"
    STALE = "stale"
    INVALID_ITEMS = "invalid_items"


@dataclass
class UpdateResult:
    """
    Telemetry for one update call.

    Attributes:
        status: What happened to the published list
        token: Sequence number issued when the call started
        epsilon: Radius in degrees (None when it could not be derived)
        num_items: Items in the snapshot
        num_groups: Groups returned by the engine
        num_clusters: Clusters built after index resolution
        dropped_items: Engine points lost to quantization misses
        update_duration_s: Wall time from call to publish
        engine_duration_s: Time spent inside the engine
        engine: Engine name
        error: Engine error message, if any
    """
    status: UpdateStatus
    token: int
    epsilon: Optional[float] = None
    num_items: int = 0
    num_groups: int = 0
    num_clusters: int = 0
    dropped_items: int = 0
    update_duration_s: Optional[float] = None
    engine_duration_s: Optional[float] = None
    engine: Optional[str] = None
    error: Optional[str] = None

    @property
    def published(self) -> bool:
        return self.status in (UpdateStatus.PUBLISHED, UpdateStatus.EMPTY)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        data = asdict(self)
        data["status"] = self.status.value
        return data

    def to_json(self) -> str:
        """Convert to JSON string for logging."""
        return json.dumps(self.to_dict())


@dataclass
class ClusteringPass(Generic[T]):
    """Output of the offloaded phase."""
    clusters: List[Cluster[T]]
    num_groups: int
    dropped: int
    engine_duration_s: float


def _engine_name(engine: Callable) -> str:
    return getattr(engine, "name", None) or type(engine).__name__


def run_clustering_pass(
    items: Sequence[T],
    snapshot: QuantizedPoints,
    epsilon: float,
    engine: Callable,
    metric: str = "euclidean",
    min_points: int = MIN_POINTS,
) -> ClusteringPass[T]:
    """
    Engine call, index resolution and aggregation.

    Only reads its arguments, so it is safe to run on a worker thread while
    the caller keeps handling other work.

    Raises:
        ClusterEngineError: If the engine fails
    """
    started = time.perf_counter()
    try:
        groups = engine(snapshot.points, epsilon, min_points, metric)
    except ClusterEngineError:
        raise
    except Exception as e:
        raise ClusterEngineError(_engine_name(engine), str(e)) from e
    engine_duration = time.perf_counter() - started

    resolved = resolve_groups(groups, snapshot)
    clusters = build_clusters(items, resolved.groups)
    return ClusteringPass(
        clusters=clusters,
        num_groups=len(groups),
        dropped=resolved.dropped,
        engine_duration_s=engine_duration,
    )


class ClusterManager(Generic[T]):
    """
    Owns the published cluster list and runs updates off the caller's path.

    Items and the viewport are only borrowed for the duration of one call;
    nothing is remembered between updates except the published list.
    """

    def __init__(
        self,
        config: Optional[ClusterManagerConfig] = None,
        *,
        engine: Optional[Callable] = None,
        executor: Optional[Executor] = None,
    ):
        """
        Args:
            config: Pipeline configuration (uses defaults if None)
            engine: Cluster engine override; built from config if None
            executor: Worker pool for the offloaded phase. A pool passed in is
                never shut down by the manager.
        """
        self.config = (config or ClusterManagerConfig()).validate()
        self.engine: Callable = engine or make_engine(
            self.config.engine, self.config.algorithm, self.config.n_jobs
        )

        self._executor = executor
        self._owns_executor = executor is None

        self._clusters: Tuple[Cluster[T], ...] = ()
        self._callbacks: List[ClustersCallback] = []
        self._issued_token = 0
        self._published_token = 0

        self._stats = {
            "updates": 0,
            "published": 0,
            "noops": 0,
            "engine_failures": 0,
            "dropped_items": 0,
            "stale_discarded": 0,
            "invalid_inputs": 0,
        }

    # -----------------------------
    # Published state
    # -----------------------------

    @property
    def clusters(self) -> Tuple[Cluster[T], ...]:
        """The currently published clusters."""
        return self._clusters

    def subscribe(self, callback: ClustersCallback) -> Callable[[], None]:
        """
        Register a callback invoked with the new clusters after every publish.

        Callbacks may be plain functions or coroutine functions.

        Returns:
            A function that removes the callback again
        """
        self._callbacks.append(callback)

        def unsubscribe() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return unsubscribe

    def get_stats(self) -> Dict[str, Any]:
        """Get update statistics."""
        return dict(self._stats)

    # -----------------------------
    # Updates
    # -----------------------------

    async def update(
        self,
        items: Sequence[T],
        viewport: ViewportLike,
        pixel_spacing: Optional[float] = None,
    ) -> UpdateResult:
        """
        Recluster ``items`` for the current viewport.

        An empty item set always publishes an empty list. When the viewport
        cannot resolve a radius the published list is left untouched.

        Args:
            items: Objects exposing ``lat`` and ``lng``
            viewport: Screen-to-geographic conversion for the current map state
            pixel_spacing: Screen distance between annotations
                (defaults to the configured spacing)

        Returns:
            UpdateResult describing the outcome. Engine failures, unusable
            viewports and items without numeric coordinates are reported
            through its status, never raised.
        """
        token = self._next_token()
        started = time.perf_counter()
        snapshot = tuple(items)

        if not snapshot:
            return await self._publish_empty(token, started)

        spacing = self.config.pixel_spacing if pixel_spacing is None else pixel_spacing
        try:
            epsilon = degrees_from_pixels(spacing, viewport)
        except TypeError as e:
            logger.warning(f"Update {token}: {e}, keeping clusters")
            self._stats["invalid_inputs"] += 1
            return self._noop(token, len(snapshot))
        if epsilon is None:
            logger.debug(f"Update {token}: viewport could not resolve epsilon, keeping clusters")
            return self._noop(token, len(snapshot))

        return await self._cluster_and_publish(snapshot, epsilon, token, started)

    async def update_with_epsilon(self, items: Sequence[T], epsilon: float) -> UpdateResult:
        """
        Recluster ``items`` with an explicit radius in degrees.

        A negative or non-finite radius is treated like an unresolved
        viewport: nothing is published.
        """
        token = self._next_token()
        started = time.perf_counter()
        snapshot = tuple(items)

        if not snapshot:
            return await self._publish_empty(token, started)

        if epsilon is None or not math.isfinite(epsilon) or epsilon < 0:
            logger.debug(f"Update {token}: invalid epsilon {epsilon}, keeping clusters")
            return self._noop(token, len(snapshot))

        return await self._cluster_and_publish(snapshot, float(epsilon), token, started)

    async def _cluster_and_publish(
        self,
        items: Tuple[T, ...],
        epsilon: float,
        token: int,
        started: float,
    ) -> UpdateResult:
        engine_name = _engine_name(self.engine)
        try:
            quantized = quantize(items, self.config.precision)
        except (AttributeError, TypeError, ValueError) as e:
            logger.warning(f"Update {token}: items without usable coordinates: {e}")
            self._stats["invalid_inputs"] += 1
            return UpdateResult(
                status=UpdateStatus.INVALID_ITEMS,
                token=token,
                epsilon=epsilon,
                num_items=len(items),
                update_duration_s=time.perf_counter() - started,
                engine=engine_name,
                error=str(e),
            )

        loop = asyncio.get_running_loop()
        work = functools.partial(
            run_clustering_pass,
            items,
            quantized,
            epsilon,
            self.engine,
            self.config.metric,
        )
        try:
            output = await loop.run_in_executor(self._get_executor(), work)
        except ClusterEngineError as e:
            logger.error(f"Update {token}: {e}")
            self._stats["engine_failures"] += 1
            return UpdateResult(
                status=UpdateStatus.ENGINE_FAILED,
                token=token,
                epsilon=epsilon,
                num_items=len(items),
                update_duration_s=time.perf_counter() - started,
                engine=engine_name,
                error=str(e),
            )

        if output.dropped:
            logger.warning(
                f"Update {token}: {output.dropped} clustered point(s) had no matching "
                f"quantization key and were dropped"
            )
            self._stats["dropped_items"] += output.dropped

        result = UpdateResult(
            status=UpdateStatus.PUBLISHED,
            token=token,
            epsilon=epsilon,
            num_items=len(items),
            num_groups=output.num_groups,
            num_clusters=len(output.clusters),
            dropped_items=output.dropped,
            engine_duration_s=output.engine_duration_s,
            engine=engine_name,
        )

        if self.config.discard_stale and token < self._published_token:
            logger.debug(
                f"Update {token}: discarded, token {self._published_token} already published"
            )
            self._stats["stale_discarded"] += 1
            result.status = UpdateStatus.STALE
            result.update_duration_s = time.perf_counter() - started
            return result

        await self._publish(tuple(output.clusters), token)
        result.update_duration_s = time.perf_counter() - started

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(f"Update telemetry: {result.to_json()}")
        return result

    async def _publish_empty(self, token: int, started: float) -> UpdateResult:
        await self._publish((), token)
        return UpdateResult(
            status=UpdateStatus.EMPTY,
            token=token,
            update_duration_s=time.perf_counter() - started,
        )

    def _noop(self, token: int, num_items: int) -> UpdateResult:
        self._stats["noops"] += 1
        return UpdateResult(status=UpdateStatus.NO_EPSILON, token=token, num_items=num_items)

    async def _publish(self, clusters: Tuple[Cluster[T], ...], token: int) -> None:
        self._clusters = clusters
        self._published_token = max(self._published_token, token)
        self._stats["published"] += 1
        await self._notify_callbacks(clusters)

    async def _notify_callbacks(self, clusters: Tuple[Cluster[T], ...]) -> None:
        """Notify all registered callbacks of a new cluster list."""
        for callback in list(self._callbacks):
            try:
                if asyncio.iscoroutinefunction(callback):
                    await callback(clusters)
                else:
                    callback(clusters)
            except Exception as e:
                logger.error(f"Callback error: {e}")

    def _next_token(self) -> int:
        self._issued_token += 1
        self._stats["updates"] += 1
        return self._issued_token

    # -----------------------------
    # Worker pool
    # -----------------------------

    def _get_executor(self) -> Executor:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=self.config.max_workers,
                thread_name_prefix="clusterables",
            )
        return self._executor

    def close(self) -> None:
        """Shut down the worker pool if the manager created it."""
        if self._owns_executor and self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    async def __aenter__(self) -> "ClusterManager[T]":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.close()
