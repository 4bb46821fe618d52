"""
Settings persistence (save/load).

Settings documents are plain UTF-8 JSON files so they can be diffed,
reviewed and copied between training and serving environments.
"""

from pathlib import Path

from featurespec.codec import FeatureSettings, SettingsCodec
from featurespec.utils.logging import get_logger

log = get_logger(__name__)


def save_settings(path: Path, settings: str | FeatureSettings) -> Path:
    """
    Write a settings document to disk.

    Args:
        path: Output file path. Parent directories are created.
        settings: Encoded settings text or a decoded document.

    Returns:
        The written path.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    if isinstance(settings, FeatureSettings):
        settings = SettingsCodec.encode(settings)

    path.write_text(settings, encoding="utf-8")
    log.info("Saved feature settings", path=str(path), bytes=len(settings))
    return path


def load_settings(path: Path) -> str:
    """
    Read a settings document from disk.

    The text is validated before it is returned, so a corrupt file fails
    here rather than at extraction time.

    Args:
        path: Settings file path.

    Returns:
        Settings text, ready for FeatureSpec.extract_with_settings().

    Raises:
        FileNotFoundError: If the file does not exist.
        IncompatibleSettings: If the file is not a valid settings document.
    """
    path = Path(path)
    if not path.exists():
        msg = f"Settings file not found: {path}"
        raise FileNotFoundError(msg)

    text = path.read_text(encoding="utf-8")
    settings = SettingsCodec.decode(text)
    log.info("Loaded feature settings", path=str(path), fields=len(settings))
    return text
