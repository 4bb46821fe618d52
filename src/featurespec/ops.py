"""
Collection drivers for the extraction engine.

The engine only talks to records through a CollectionOps driver offering
map, reduce and cross. Drivers decide how (and whether) work is split up;
the engine itself starts no threads.

Available drivers:
    - ListOps: sequential, in-memory
    - ShardedOps: contiguous shards folded separately, merged in a chosen order
    - JoblibOps: shards folded and mapped in parallel with joblib
"""

import functools
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable, Sequence
from typing import Any, Literal, TypeVar

import pandas as pd
from joblib import Parallel, delayed

from featurespec.utils.logging import get_logger

log = get_logger(__name__)

T = TypeVar("T")
U = TypeVar("U")
B = TypeVar("B")
S = TypeVar("S")

MergeOrder = Literal["forward", "reverse"]


class CollectionOps(ABC):
    """
    Abstract map/reduce/cross capability over a collection of records.

    ``reduce`` callers guarantee that ``merge`` is associative and
    commutative, so drivers may fold in any grouping and order.
    """

    def to_list(self, records: Iterable[T] | pd.DataFrame) -> list[T]:
        """
        Turn the input into a list that can be iterated more than once.

        DataFrames are turned into one dict per row.
        """
        if isinstance(records, pd.DataFrame):
            return records.to_dict(orient="records")
        if isinstance(records, list):
            return records
        return list(records)

    def indexed(self, records: Sequence[T]) -> list[tuple[int, T]]:
        """Pair every record with its position in the collection."""
        return list(enumerate(records))

    @abstractmethod
    def map(self, records: Sequence[T], fn: Callable[[T], U]) -> list[U]:
        """Apply fn to every record, keeping collection order."""
        ...

    @abstractmethod
    def reduce(
        self,
        records: Sequence[T],
        identity: B,
        merge: Callable[[B, B], B],
        prepare: Callable[[T], B] | None = None,
    ) -> B:
        """
        Fold all records with an associative, commutative merge.

        Args:
            records: Records to fold.
            identity: Neutral element of ``merge``.
            merge: Combines two aggregates.
            prepare: Lifts one record into an aggregate as it is folded.
                Without it the records already are aggregates.

        Returns:
            The merged aggregate, ``identity`` for no records.
        """
        ...

    def cross(self, records: Sequence[T], value: S) -> list[tuple[T, S]]:
        """Pair every record with a single broadcast value."""
        return self.map(records, lambda record: (record, value))

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


class ListOps(CollectionOps):
    """Sequential in-memory driver."""

    def map(self, records: Sequence[T], fn: Callable[[T], U]) -> list[U]:
        return [fn(record) for record in records]

    def reduce(
        self,
        records: Sequence[T],
        identity: B,
        merge: Callable[[B, B], B],
        prepare: Callable[[T], B] | None = None,
    ) -> B:
        return _fold(records, identity, merge, prepare)


def split_shards(records: Sequence[T], n_shards: int) -> list[Sequence[T]]:
    """
    Split records into at most ``n_shards`` contiguous, non-empty shards.

    Args:
        records: Records to split.
        n_shards: Number of shards requested.

    Returns:
        List of shards; fewer than requested when there are fewer records.
    """
    if n_shards < 1:
        msg = f"n_shards must be at least 1, got {n_shards}"
        raise ValueError(msg)
    size, remainder = divmod(len(records), n_shards)
    shards = []
    start = 0
    for i in range(n_shards):
        end = start + size + (1 if i < remainder else 0)
        if end > start:
            shards.append(records[start:end])
        start = end
    return shards


def _fold(
    shard: Sequence[Any],
    identity: B,
    merge: Callable[[B, B], B],
    prepare: Callable[[Any], B] | None = None,
) -> B:
    # Records are lifted one at a time so no per-record aggregates are kept.
    if prepare is None:
        return functools.reduce(merge, shard, identity)
    acc = identity
    for record in shard:
        acc = merge(acc, prepare(record))
    return acc


def _apply(shard: Sequence[T], fn: Callable[[T], U]) -> list[U]:
    return [fn(record) for record in shard]


class ShardedOps(CollectionOps):
    """
    Driver that folds contiguous shards separately and then merges them.

    Shards are processed sequentially. The merge order of shard results is
    configurable so callers can check that fitting does not depend on it.
    """

    def __init__(self, n_shards: int = 4, merge_order: MergeOrder = "forward") -> None:
        if n_shards < 1:
            msg = f"n_shards must be at least 1, got {n_shards}"
            raise ValueError(msg)
        if merge_order not in ("forward", "reverse"):
            msg = f"merge_order must be 'forward' or 'reverse', got {merge_order!r}"
            raise ValueError(msg)
        self.n_shards = n_shards
        self.merge_order = merge_order

    def map(self, records: Sequence[T], fn: Callable[[T], U]) -> list[U]:
        out: list[U] = []
        for shard in split_shards(records, self.n_shards):
            out.extend(_apply(shard, fn))
        return out

    def _merge_partials(self, partials: list[B], identity: B, merge: Callable[[B, B], B]) -> B:
        if self.merge_order == "reverse":
            partials = partials[::-1]
        log.debug("Merging shard aggregates", shards=len(partials), order=self.merge_order)
        return functools.reduce(merge, partials, identity)

    def reduce(
        self,
        records: Sequence[T],
        identity: B,
        merge: Callable[[B, B], B],
        prepare: Callable[[T], B] | None = None,
    ) -> B:
        partials = [
            _fold(shard, identity, merge, prepare)
            for shard in split_shards(records, self.n_shards)
        ]
        return self._merge_partials(partials, identity, merge)

    def __repr__(self) -> str:
        return f"ShardedOps(n_shards={self.n_shards}, merge_order={self.merge_order!r})"


class JoblibOps(ShardedOps):
    """
    Driver that processes shards in parallel with joblib.

    Defaults to the threading backend so extraction functions need not be
    picklable; pass ``prefer="processes"`` for CPU-bound extraction with
    picklable functions.
    """

    def __init__(
        self,
        n_jobs: int = -1,
        n_shards: int = 8,
        merge_order: MergeOrder = "forward",
        prefer: Literal["threads", "processes"] = "threads",
    ) -> None:
        super().__init__(n_shards=n_shards, merge_order=merge_order)
        self.n_jobs = n_jobs
        self.prefer = prefer

    def _parallel(self) -> Parallel:
        return Parallel(n_jobs=self.n_jobs, prefer=self.prefer)

    def map(self, records: Sequence[T], fn: Callable[[T], U]) -> list[U]:
        shards = split_shards(records, self.n_shards)
        results = self._parallel()(delayed(_apply)(shard, fn) for shard in shards)
        return [item for shard_result in results for item in shard_result]

    def reduce(
        self,
        records: Sequence[T],
        identity: B,
        merge: Callable[[B, B], B],
        prepare: Callable[[T], B] | None = None,
    ) -> B:
        shards = split_shards(records, self.n_shards)
        partials = self._parallel()(
            delayed(_fold)(shard, identity, merge, prepare) for shard in shards
        )
        return self._merge_partials(list(partials), identity, merge)

    def __repr__(self) -> str:
        return (
            f"JoblibOps(n_jobs={self.n_jobs}, n_shards={self.n_shards}, "
            f"merge_order={self.merge_order!r}, prefer={self.prefer!r})"
        )


def default_ops() -> CollectionOps:
    """Driver used when none is given."""
    return ListOps()


def as_ops(ops: Any) -> CollectionOps:
    """Return ``ops`` or the default driver when it is None."""
    if ops is None:
        return default_ops()
    if not isinstance(ops, CollectionOps):
        msg = f"Expected a CollectionOps driver, got {type(ops).__name__}"
        raise TypeError(msg)
    return ops
