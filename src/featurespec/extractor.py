"""
Two-pass feature extraction.

Pass 1 (fit) folds every record into one aggregator per field and
finalizes them into fitted state. Pass 2 (transform) writes each record's
columns using that fitted state. Settings documents capture the fitted
state so pass 2 can be repeated on unseen records without pass 1.
"""

import functools
from collections import Counter
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Generic, Literal, TypeVar

import numpy as np
import pandas as pd

from featurespec.builders import ROW_BUILDERS, FeatureWriter, RowBuilder
from featurespec.codec import (
    FeatureSettings,
    FeatureSettingsEntry,
    SettingsCodec,
    parse_settings,
)
from featurespec.errors import (
    DuplicateFieldName,
    IncompatibleSettings,
    MissingRequiredValue,
    RecordError,
)
from featurespec.ops import CollectionOps, as_ops
from featurespec.transformers.base import Transformer
from featurespec.utils.logging import get_logger, log_context

if TYPE_CHECKING:
    from featurespec.spec import FeatureField, FeatureSpec

log = get_logger(__name__)

T = TypeVar("T")

ValueKind = Literal["list", "numpy", "sparse", "pandas"]
RowKind = Literal["list", "numpy", "sparse"]


@dataclass(frozen=True)
class FieldState:
    """
    Fitted state of one field and its place in the output row.

    Attributes:
        field: The spec field.
        state: Fitted state returned by the transformer's present().
        names: Output feature names of this field.
        offset: Index of the field's first column in the output row.
    """

    field: "FeatureField[Any]"
    state: Any
    names: tuple[str, ...]
    offset: int

    @property
    def name(self) -> str:
        return self.field.name

    @property
    def transformer(self) -> Transformer[Any, Any, Any]:
        return self.field.transformer

    @property
    def width(self) -> int:
        return len(self.names)


@dataclass(frozen=True)
class FeatureResult(Generic[T]):
    """
    Outcome of transforming one record.

    Attributes:
        record: The input record.
        value: The output row, or None when the record had errors.
        errors: Per-record errors (missing required values, out-of-domain values).
    """

    record: T
    value: Any
    errors: tuple[RecordError, ...] = field(default_factory=tuple)

    @property
    def ok(self) -> bool:
        """Whether the record produced a row."""
        return not self.errors


def _layout(spec: "FeatureSpec[Any]", states: Sequence[Any]) -> tuple[FieldState, ...]:
    """
    Place every field's columns in the output row.

    Raises:
        DuplicateFieldName: If two fields emit the same feature name.
    """
    layout = []
    seen: set[str] = set()
    offset = 0
    for spec_field, state in zip(spec.fields, states):
        transformer = spec_field.transformer
        names = tuple(transformer.feature_names(state))
        if len(names) != transformer.feature_width(state):
            msg = (
                f"Transformer {transformer!r} reports width "
                f"{transformer.feature_width(state)} but {len(names)} names"
            )
            raise ValueError(msg)
        for name in names:
            if name in seen:
                raise DuplicateFieldName(name)
            seen.add(name)
        layout.append(FieldState(spec_field, state, names, offset))
        offset += len(names)
    return tuple(layout)


def _prepare_row(
    fields: Sequence["FeatureField[Any]"], item: tuple[int, Any]
) -> tuple[Any, ...]:
    position, record = item
    return tuple(spec_field.prepare(position, record) for spec_field in fields)


def _merge_rows(
    transformers: Sequence[Transformer[Any, Any, Any]],
    left: tuple[Any, ...],
    right: tuple[Any, ...],
) -> tuple[Any, ...]:
    return tuple(t.merge(a, b) for t, a, b in zip(transformers, left, right))


def _build_row(
    builder_cls: type[RowBuilder],
    width: int,
    item: tuple[Any, tuple[FieldState, ...]],
) -> FeatureResult[Any]:
    record, layout = item
    builder = builder_cls(width)
    errors: list[RecordError] = []
    for fs in layout:
        value = fs.field.value_of(record)
        if value is None and fs.field.required:
            errors.append(MissingRequiredValue(fs.name, record))
            continue
        writer = FeatureWriter(builder, fs.name, fs.offset, fs.width)
        try:
            fs.transformer.build_features(value, fs.state, writer)
        except RecordError as e:
            errors.append(e)
    if errors:
        return FeatureResult(record, None, tuple(errors))
    return FeatureResult(record, builder.result())


class FeatureExtractor(Generic[T]):
    """
    A feature spec bound to records and fitted state.

    Create one with FeatureSpec.extract() or
    FeatureSpec.extract_with_settings(). Transformed rows are computed on
    first access and cached; the extractor never changes afterwards.
    """

    def __init__(
        self,
        spec: "FeatureSpec[T]",
        records: Sequence[T],
        layout: tuple[FieldState, ...],
        ops: CollectionOps,
    ) -> None:
        self._spec = spec
        self._records = records
        self._layout = layout
        self._ops = ops
        self._width = sum(fs.width for fs in layout)
        self._results: dict[str, list[FeatureResult[T]]] = {}

    @classmethod
    def fit(
        cls,
        spec: "FeatureSpec[T]",
        records: Iterable[T] | pd.DataFrame,
        ops: CollectionOps | None = None,
    ) -> "FeatureExtractor[T]":
        """
        Run pass 1 over the records and build an extractor.

        Args:
            spec: Feature spec to fit.
            records: Records to fit on.
            ops: Collection driver.

        Returns:
            Fitted extractor.

        Raises:
            InsufficientData: If a transformer cannot be fitted.
            DuplicateFieldName: If fitted fields emit colliding names.
        """
        ops = as_ops(ops)
        rows = ops.to_list(records)
        log.info("Fitting feature spec", fields=len(spec), records=len(rows), ops=repr(ops))

        transformers = [spec_field.transformer for spec_field in spec.fields]
        identity = tuple(t.identity for t in transformers)
        aggregates = ops.reduce(
            ops.indexed(rows),
            identity,
            functools.partial(_merge_rows, transformers),
            prepare=functools.partial(_prepare_row, spec.fields),
        )

        states = []
        for transformer, aggregate in zip(transformers, aggregates):
            with log_context(field=transformer.name, cls=transformer.identifier):
                state = transformer.present(aggregate)
                log.debug("Fitted field")
            states.append(state)

        layout = _layout(spec, states)
        extractor = cls(spec, rows, layout, ops)
        log.info("Fitted feature spec", fields=len(spec), width=extractor.width)
        return extractor

    @classmethod
    def from_settings(
        cls,
        spec: "FeatureSpec[T]",
        records: Iterable[T] | pd.DataFrame,
        settings: str | bytes | FeatureSettings,
        ops: CollectionOps | None = None,
    ) -> "FeatureExtractor[T]":
        """
        Build an extractor from a settings document, skipping pass 1.

        Args:
            spec: Feature spec the settings were produced by.
            records: Records to transform.
            settings: Encoded or decoded settings document.
            ops: Collection driver.

        Returns:
            Extractor using the decoded fitted state.

        Raises:
            IncompatibleSettings: If length, names or transformer identifiers
                differ from the spec, or a payload cannot be decoded.
        """
        ops = as_ops(ops)
        parsed = parse_settings(settings)

        if len(parsed) != len(spec):
            msg = (
                f"Settings have {len(parsed)} fields but the feature spec has "
                f"{len(spec)}: {parsed.names} vs {spec.names}"
            )
            raise IncompatibleSettings(msg)

        states = []
        for i, (spec_field, entry) in enumerate(zip(spec.fields, parsed.features)):
            transformer = spec_field.transformer
            if entry.name != spec_field.name:
                msg = f"Field {i}: settings name {entry.name!r} != spec name {spec_field.name!r}"
                raise IncompatibleSettings(msg)
            if entry.cls != transformer.identifier:
                msg = (
                    f"Field {entry.name!r}: settings transformer {entry.cls!r} "
                    f"!= spec transformer {transformer.identifier!r}"
                )
                raise IncompatibleSettings(msg)
            if entry.params != transformer.params:
                log.warning(
                    "Transformer parameters differ from settings",
                    field=entry.name,
                    settings=entry.params,
                    spec=transformer.params,
                )
            states.append(transformer.decode_aggregator(entry.aggregator))

        rows = ops.to_list(records)
        layout = _layout(spec, states)
        log.info(
            "Loaded feature settings",
            fields=len(spec),
            records=len(rows),
            width=sum(fs.width for fs in layout),
        )
        return cls(spec, rows, layout, ops)

    @property
    def spec(self) -> "FeatureSpec[T]":
        return self._spec

    @property
    def width(self) -> int:
        """Total number of output columns."""
        return self._width

    def fitted_state(self) -> list[FieldState]:
        """Fitted state and column placement of every field, in spec order."""
        return list(self._layout)

    def feature_names(self) -> list[str]:
        """All output feature names, in column order."""
        return [name for fs in self._layout for name in fs.names]

    def settings(self) -> FeatureSettings:
        """Fitted state as a settings document."""
        return FeatureSettings(
            features=[
                FeatureSettingsEntry(
                    name=fs.name,
                    cls=fs.transformer.identifier,
                    params=fs.transformer.params,
                    aggregator=fs.transformer.encode_aggregator(fs.state),
                )
                for fs in self._layout
            ]
        )

    def feature_settings(self) -> str:
        """Fitted state as encoded settings text."""
        return SettingsCodec.encode(self.settings())

    def _transform(self, builder: str) -> list[FeatureResult[T]]:
        if builder not in self._results:
            row_fn = functools.partial(_build_row, ROW_BUILDERS[builder], self._width)
            results = self._ops.map(self._ops.cross(self._records, self._layout), row_fn)
            self._log_rejections(results)
            self._results[builder] = results
        return self._results[builder]

    def _log_rejections(self, results: Sequence[FeatureResult[T]]) -> None:
        counts = Counter(
            (type(e).__name__, e.field) for r in results for e in r.errors
        )
        if not counts:
            return
        rejected = sum(1 for r in results if not r.ok)
        log.warning(
            "Rejected records during transform",
            rejected=rejected,
            total=len(results),
            errors={f"{kind}:{name}": n for (kind, name), n in sorted(counts.items())},
        )

    def feature_results(self, kind: RowKind = "list") -> list[FeatureResult[T]]:
        """
        Per-record outcomes, including records that produced no row.

        Args:
            kind: Row representation: "list", "numpy" or "sparse".

        Returns:
            One FeatureResult per record in driver order.
        """
        if kind == "sparse":
            return list(self._transform("sparse"))
        if kind == "numpy":
            return list(self._transform("dense"))
        if kind == "list":
            return [
                FeatureResult(r.record, None if r.value is None else r.value.tolist(), r.errors)
                for r in self._transform("dense")
            ]
        msg = f"Unknown row kind {kind!r}. Available: list, numpy, sparse"
        raise ValueError(msg)

    def feature_values(self, kind: ValueKind = "list") -> Any:
        """
        Output rows for every record without errors, in driver order.

        Args:
            kind: "list" (list of float lists), "numpy" (2-D array),
                "sparse" (list of {offset: value} dicts) or
                "pandas" (DataFrame with feature names as columns).

        Returns:
            Rows in the requested representation.
        """
        if kind == "sparse":
            return [r.value for r in self._transform("sparse") if r.ok]
        if kind not in ("list", "numpy", "pandas"):
            msg = f"Unknown value kind {kind!r}. Available: list, numpy, sparse, pandas"
            raise ValueError(msg)

        rows = [r.value for r in self._transform("dense") if r.ok]
        if kind == "list":
            return [row.tolist() for row in rows]
        matrix = np.stack(rows) if rows else np.empty((0, self._width), dtype=np.float64)
        if kind == "numpy":
            return matrix
        return pd.DataFrame(matrix, columns=self.feature_names())

    def __repr__(self) -> str:
        return (
            f"FeatureExtractor(fields={len(self._spec)}, records={len(self._records)}, "
            f"width={self._width})"
        )
