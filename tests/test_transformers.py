"""Tests for the transformer contract and built-in transformers."""

import functools
import math

import numpy as np
import pytest

from featurespec.builders import DenseRowBuilder, FeatureWriter
from featurespec.errors import (
    IncompatibleSettings,
    InsufficientData,
    OutOfDomain,
    UnknownTransformer,
)
from featurespec.transformers import (
    Binarizer,
    Identity,
    MaxAbsScaler,
    MeanStd,
    MinMax,
    MinMaxScaler,
    NHotEncoder,
    OneHotEncoder,
    StandardScaler,
    Transformer,
    VectorIdentity,
    create_transformer,
    get_transformer_class,
    register_transformer,
)


def fit(transformer: Transformer, values: list) -> object:
    """Fold values through the transformer's monoid, in order."""
    aggregate = functools.reduce(
        transformer.merge,
        (transformer.prepare_at(i, v) for i, v in enumerate(values)),
        transformer.identity,
    )
    return transformer.present(aggregate)


def row(transformer: Transformer, value: object, state: object) -> list[float]:
    """Build one record's slice."""
    width = transformer.feature_width(state)
    builder = DenseRowBuilder(width)
    transformer.build_features(value, state, FeatureWriter(builder, transformer.name, 0, width))
    return builder.result().tolist()


# --- Monoid laws ---


MONOID_CASES = [
    (Identity("x"), [1.0, 2.0, 3.0]),
    (MinMaxScaler("x"), [3.0, -1.0, 7.5]),
    (MaxAbsScaler("x"), [-4.0, 2.0, 3.0]),
    (StandardScaler("x"), [0.1, 0.2, 0.3]),
    (OneHotEncoder("c"), ["b", "a", "c"]),
    (NHotEncoder("t"), [["b", "a"], ["c"], ["a"]]),
    (VectorIdentity("v"), [[1.0, 2.0], [3.0, 4.0]]),
]


class TestMonoidLaws:
    """Every built-in transformer's aggregator is a commutative monoid."""

    @pytest.mark.parametrize(("transformer", "values"), MONOID_CASES)
    def test_identity_is_neutral(self, transformer: Transformer, values: list) -> None:
        """merge(prepare(a), identity) == prepare(a) on both sides."""
        b = transformer.prepare_at(0, values[0])
        assert transformer.merge(b, transformer.identity) == b
        assert transformer.merge(transformer.identity, b) == b

    @pytest.mark.parametrize(("transformer", "values"), MONOID_CASES)
    def test_merge_is_commutative(self, transformer: Transformer, values: list) -> None:
        """Merging in either order presents the same fitted state."""
        a = transformer.prepare_at(0, values[0])
        b = transformer.prepare_at(1, values[1])
        assert transformer.present(transformer.merge(a, b)) == transformer.present(
            transformer.merge(b, a)
        )

    @pytest.mark.parametrize(("transformer", "values"), MONOID_CASES)
    def test_merge_is_associative(self, transformer: Transformer, values: list) -> None:
        """Grouping does not change the fitted state."""
        prepared = [transformer.prepare_at(i, v) for i, v in enumerate(values[:3])]
        prepared += [transformer.identity] * (3 - len(prepared))
        a, b, c = prepared
        left = transformer.merge(transformer.merge(a, b), c)
        right = transformer.merge(a, transformer.merge(b, c))
        assert transformer.present(left) == transformer.present(right)

    @pytest.mark.parametrize(("transformer", "values"), MONOID_CASES)
    def test_aggregator_round_trip(self, transformer: Transformer, values: list) -> None:
        """Fitted state survives encode/decode unchanged."""
        state = fit(transformer, values)
        encoded = transformer.encode_aggregator(state)
        assert isinstance(encoded, str)
        assert transformer.decode_aggregator(encoded) == state


# --- Single-column transformers ---


class TestIdentity:
    """Tests for Identity and Binarizer."""

    def test_passes_values_through(self) -> None:
        """Values are emitted unchanged."""
        t = Identity("x")
        state = fit(t, [1.0, 2.0])
        assert t.feature_names(state) == ["x"]
        assert row(t, 2.5, state) == [2.5]

    def test_missing_value_is_zero(self) -> None:
        """None produces a zero column."""
        t = Identity("x")
        assert row(t, None, None) == [0.0]

    def test_non_numeric_out_of_domain(self) -> None:
        """Strings are rejected as out of domain."""
        t = Identity("x")
        with pytest.raises(OutOfDomain, match="expected a number"):
            row(t, "abc", None)

    @pytest.mark.parametrize("value", [math.nan, math.inf, -math.inf])
    def test_non_finite_out_of_domain(self, value: float) -> None:
        """NaN and infinities are rejected instead of written."""
        with pytest.raises(OutOfDomain, match="finite"):
            row(Identity("x"), value, None)

    def test_empty_fit_allowed(self) -> None:
        """Identity needs no data to fit."""
        assert fit(Identity("x"), []) is None

    def test_binarizer_threshold(self) -> None:
        """Values strictly above the threshold become 1.0."""
        t = Binarizer("b", threshold=0.5)
        assert row(t, 0.7, None) == [1.0]
        assert row(t, 0.5, None) == [0.0]
        assert t.params == {"threshold": 0.5}

    def test_stateless_rejects_payload(self) -> None:
        """A stateless transformer only accepts an empty aggregator."""
        with pytest.raises(IncompatibleSettings):
            Identity("x").decode_aggregator("min:1.0")


class TestMinMaxScaler:
    """Tests for MinMaxScaler."""

    def test_fit_and_scale(self) -> None:
        """Observed range maps to [0, 1]."""
        t = MinMaxScaler("x")
        state = fit(t, [0.0, 5.0, 10.0])
        assert state == MinMax(0.0, 10.0)
        assert [row(t, v, state) for v in (0.0, 5.0, 10.0)] == [[0.0], [0.5], [1.0]]

    def test_out_of_range_extrapolates(self) -> None:
        """Values beyond the fitted range are not clipped."""
        t = MinMaxScaler("x")
        state = fit(t, [0.0, 10.0])
        assert row(t, 15.0, state) == [1.5]

    def test_custom_output_range(self) -> None:
        """Output range follows min/max parameters."""
        t = MinMaxScaler("x", min=-1.0, max=1.0)
        state = fit(t, [0.0, 10.0])
        assert row(t, 5.0, state) == [0.0]
        assert row(t, 10.0, state) == [1.0]

    def test_constant_column(self) -> None:
        """Zero range maps to the output minimum."""
        t = MinMaxScaler("x")
        state = fit(t, [3.0, 3.0])
        assert row(t, 3.0, state) == [0.0]

    def test_nan_never_enters_the_range(self) -> None:
        """NaN is out of domain, so merge order cannot leak it into the state."""
        t = MinMaxScaler("x")
        with pytest.raises(OutOfDomain):
            t.prepare(math.nan)
        a, b = t.prepare(1.0), t.prepare(3.0)
        assert t.merge(a, b) == t.merge(b, a) == MinMax(1.0, 3.0)

    def test_empty_fit_insufficient(self) -> None:
        """No values cannot define a range."""
        with pytest.raises(InsufficientData, match="'x'"):
            fit(MinMaxScaler("x"), [])

    def test_invalid_params(self) -> None:
        """min must be below max."""
        with pytest.raises(ValueError, match="min must be below max"):
            MinMaxScaler("x", min=1.0, max=1.0)

    def test_encoding_keeps_precision(self) -> None:
        """Floats round-trip exactly."""
        t = MinMaxScaler("x")
        state = MinMax(0.1 + 0.2, 1 / 3)
        assert t.decode_aggregator(t.encode_aggregator(state)) == state

    def test_decode_rejects_garbage(self) -> None:
        """Malformed payloads are incompatible settings."""
        t = MinMaxScaler("x")
        with pytest.raises(IncompatibleSettings):
            t.decode_aggregator("min:abc,max:1.0")
        with pytest.raises(IncompatibleSettings, match="missing"):
            t.decode_aggregator("min:1.0")


class TestMaxAbsScaler:
    """Tests for MaxAbsScaler."""

    def test_scale_by_max_abs(self) -> None:
        """Values are divided by the largest magnitude."""
        t = MaxAbsScaler("x")
        state = fit(t, [-4.0, 2.0])
        assert state == 4.0
        assert row(t, 2.0, state) == [0.5]
        assert row(t, -4.0, state) == [-1.0]

    def test_all_zero(self) -> None:
        """All-zero columns stay zero."""
        t = MaxAbsScaler("x")
        state = fit(t, [0.0, 0.0])
        assert row(t, 0.0, state) == [0.0]


class TestStandardScaler:
    """Tests for StandardScaler."""

    def test_mean_and_std(self) -> None:
        """Population mean and standard deviation are fitted."""
        t = StandardScaler("x")
        state = fit(t, [1.0, 2.0, 3.0, 4.0])
        assert state.mean == 2.5
        assert state.std == pytest.approx(math.sqrt(1.25))
        assert row(t, 2.5, state) == [0.0]
        assert row(t, 4.0, state)[0] == pytest.approx(1.5 / math.sqrt(1.25))

    def test_without_mean_or_std(self) -> None:
        """Centering and scaling can be switched off."""
        state = MeanStd(mean=2.0, std=4.0)
        assert row(StandardScaler("x", with_mean=False), 8.0, state) == [2.0]
        assert row(StandardScaler("x", with_std=False), 8.0, state) == [6.0]

    def test_sum_is_order_independent(self) -> None:
        """Exact partial sums give identical state for any fold order."""
        t = StandardScaler("x")
        values = [0.1, 1e16, 0.3, -1e16, 0.7, 1e-3] * 5
        forward = fit(t, values)
        backward = fit(t, list(reversed(values)))
        assert forward == backward

    def test_empty_fit_insufficient(self) -> None:
        """No values cannot define a mean."""
        with pytest.raises(InsufficientData):
            fit(StandardScaler("x"), [])


class TestVectorIdentity:
    """Tests for VectorIdentity."""

    def test_length_from_data(self) -> None:
        """Width is the observed vector length."""
        t = VectorIdentity("v")
        state = fit(t, [[1.0, 2.0, 3.0], [4.0, 5.0, 6.0]])
        assert t.feature_names(state) == ["v_0", "v_1", "v_2"]
        assert row(t, [4.0, 5.0, 6.0], state) == [4.0, 5.0, 6.0]

    def test_expected_length(self) -> None:
        """An explicit length fits without data."""
        t = VectorIdentity("v", expected_length=2)
        assert fit(t, []) == 2

    def test_wrong_length_out_of_domain(self) -> None:
        """Vectors of another length are rejected."""
        t = VectorIdentity("v")
        state = fit(t, [[1.0, 2.0, 3.0]])
        with pytest.raises(OutOfDomain, match="expected length 3"):
            row(t, [1.0, 2.0], state)

    def test_scalar_out_of_domain(self) -> None:
        """A scalar where a vector is expected is rejected for that record only."""
        t = VectorIdentity("v")
        state = fit(t, [[1.0, 2.0], [3.0, 4.0]])
        with pytest.raises(OutOfDomain, match="expected a sequence"):
            row(t, 5.0, state)

    def test_empty_fit_insufficient(self) -> None:
        """Without data or expected length the width is unknown."""
        with pytest.raises(InsufficientData):
            fit(VectorIdentity("v"), [])


class TestEncoders:
    """Tests for OneHotEncoder and NHotEncoder."""

    def test_one_hot_first_seen_order(self) -> None:
        """Vocabulary follows first occurrence."""
        t = OneHotEncoder("c")
        state = fit(t, ["b", "a", "c", "a"])
        assert state == ("b", "a", "c")
        assert t.feature_names(state) == ["c_b", "c_a", "c_c"]
        assert row(t, "a", state) == [0.0, 1.0, 0.0]

    def test_one_hot_first_seen_across_merge_order(self) -> None:
        """Merging later records first does not reorder the vocabulary."""
        t = OneHotEncoder("c")
        early = t.prepare_at(0, "z")
        late = t.prepare_at(5, "a")
        assert t.present(t.merge(late, early)) == ("z", "a")

    def test_one_hot_unseen_strict(self) -> None:
        """Unseen labels are out of domain in strict mode."""
        t = OneHotEncoder("c")
        state = fit(t, ["a", "b"])
        with pytest.raises(OutOfDomain, match="unseen labels"):
            row(t, "d", state)

    def test_one_hot_unseen_lenient(self) -> None:
        """Unseen labels give an all-zero slice when not strict."""
        t = OneHotEncoder("c", strict=False)
        state = fit(t, ["a", "b"])
        assert row(t, "d", state) == [0.0, 0.0]

    def test_one_hot_missing_is_zero(self) -> None:
        """None gives an all-zero slice."""
        t = OneHotEncoder("c")
        state = fit(t, ["a", "b"])
        assert row(t, None, state) == [0.0, 0.0]

    def test_one_hot_empty_vocabulary(self) -> None:
        """No data yields width zero."""
        t = OneHotEncoder("c")
        state = fit(t, [])
        assert t.feature_width(state) == 0

    def test_labels_with_separators_round_trip(self) -> None:
        """Labels containing commas, quotes and empty strings survive encoding."""
        t = OneHotEncoder("c")
        state = ("a,b", "", 'q"uote', "ü")
        assert t.decode_aggregator(t.encode_aggregator(state)) == state

    def test_n_hot(self) -> None:
        """Several labels can be set per record."""
        t = NHotEncoder("t")
        state = fit(t, [["a", "b"], ["b", "c"]])
        assert state == ("a", "b", "c")
        assert row(t, ["b", "c"], state) == [0.0, 1.0, 1.0]

    def test_n_hot_unseen(self) -> None:
        """Any unseen label is out of domain in strict mode."""
        t = NHotEncoder("t")
        state = fit(t, [["a"]])
        with pytest.raises(OutOfDomain):
            row(t, ["a", "x"], state)

    def test_label_hook_is_abstract(self) -> None:
        """Vocabulary encoders must say how values map to labels."""
        from featurespec.transformers.encoders import _VocabularyEncoder

        class NoLabels(_VocabularyEncoder):
            identifier = "test_no_labels"

        with pytest.raises(TypeError):
            NoLabels("c")

    def test_decode_rejects_non_list(self) -> None:
        """Vocabulary payload must be a JSON list of strings."""
        with pytest.raises(IncompatibleSettings):
            OneHotEncoder("c").decode_aggregator('{"a": 1}')
        with pytest.raises(IncompatibleSettings):
            OneHotEncoder("c").decode_aggregator("not json")


# --- Registry ---


@register_transformer
class Doubler(Identity):
    """Test transformer registered under its own identifier."""

    identifier = "test_doubler"

    def build_features(self, value, state, writer) -> None:
        writer.add(2 * float(value))


class TestRegistry:
    """Tests for the process-wide transformer registry."""

    def test_lookup(self) -> None:
        """Registered identifiers resolve to their class."""
        assert get_transformer_class("min_max") is MinMaxScaler
        assert get_transformer_class("test_doubler") is Doubler

    def test_re_register_same_class(self) -> None:
        """Registering the same class again is a no-op."""
        assert register_transformer(Doubler) is Doubler

    def test_identifier_conflict(self) -> None:
        """A different class cannot take an existing identifier."""

        class Impostor(Identity):
            identifier = "min_max"

        with pytest.raises(ValueError, match="already registered"):
            register_transformer(Impostor)

    def test_empty_identifier(self) -> None:
        """Transformers without identifier cannot be registered."""

        class Anonymous(Identity):
            identifier = ""

        with pytest.raises(ValueError, match="non-empty identifier"):
            register_transformer(Anonymous)

    def test_unknown_identifier(self) -> None:
        """Unknown identifiers are incompatible settings."""
        with pytest.raises(UnknownTransformer, match="no_such"):
            get_transformer_class("no_such")
        assert issubclass(UnknownTransformer, IncompatibleSettings)

    def test_create_from_params(self) -> None:
        """Settings parameters rebuild an equal transformer."""
        t = MinMaxScaler("x", min=-1.0, max=2.0)
        rebuilt = create_transformer(t.identifier, t.name, t.params)
        assert rebuilt == t

    def test_create_with_bad_params(self) -> None:
        """Unknown parameters are reported as ValueError."""
        with pytest.raises(ValueError, match="Invalid parameters"):
            create_transformer("identity", "x", {"bogus": 1})


def test_row_builder_dtype() -> None:
    """Dense rows are float64 arrays."""
    t = Identity("x")
    builder = DenseRowBuilder(1)
    t.build_features(1, None, FeatureWriter(builder, "x", 0, 1))
    assert builder.result().dtype == np.float64
