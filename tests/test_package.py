"""Basic package tests to verify installation."""


def test_package_imports() -> None:
    """Verify the main package can be imported."""
    import featurespec

    assert featurespec.__version__


def test_public_api_exports() -> None:
    """Verify the top-level exports are available."""
    from featurespec import (
        CollectionOps,
        FeatureExtractor,
        FeatureSettings,
        FeatureSpec,
        IncompatibleSettings,
        MinMaxScaler,
        OneHotEncoder,
        SettingsCodec,
        Transformer,
    )

    assert FeatureSpec is not None
    assert FeatureExtractor is not None
    assert FeatureSettings is not None
    assert SettingsCodec is not None
    assert CollectionOps is not None
    assert Transformer is not None
    assert MinMaxScaler is not None
    assert OneHotEncoder is not None
    assert issubclass(IncompatibleSettings, Exception)


def test_config_module_imports() -> None:
    """Verify config module structure is correct."""
    from featurespec.config import EngineConfig, LoggingConfig, OpsConfig, load_config

    assert EngineConfig is not None
    assert LoggingConfig is not None
    assert OpsConfig is not None
    assert load_config is not None


def test_builtin_transformers_registered() -> None:
    """Importing the package registers every built-in transformer."""
    from featurespec.transformers import list_transformers

    assert set(list_transformers()) >= {
        "binarizer",
        "identity",
        "max_abs",
        "min_max",
        "n_hot",
        "one_hot",
        "standard",
        "vector_identity",
    }
