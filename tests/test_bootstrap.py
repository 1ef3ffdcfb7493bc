from pathlib import Path

import pytest

import shiurbank.config as config_module
from shiurbank.bootstrap import BootstrapError, Bootstrapper
from shiurbank.config import AppConfig


def test_bootstrapper_creates_directories(tmp_path: Path) -> None:
    config = AppConfig(
        storage_root=tmp_path / "storage",
        audio_root=tmp_path / "storage" / "audio",
    )

    Bootstrapper(config).initialize()

    assert config.storage_root.is_dir()
    assert config.audio_root.is_dir()


def test_bootstrapper_raises_when_storage_directory_unwritable(
    tmp_path: Path, monkeypatch
) -> None:
    storage_root = tmp_path / "storage"
    audio_root = tmp_path / "audio"

    config = AppConfig(
        storage_root=storage_root,
        audio_root=audio_root,
    )

    original_ensure = config_module._ensure_writable_directory

    def fake_ensure(path: Path) -> bool:
        if path.resolve() == storage_root.resolve():
            return False
        return original_ensure(path)

    monkeypatch.setattr(config_module, "_ensure_writable_directory", fake_ensure)

    bootstrapper = Bootstrapper(config)

    with pytest.raises(BootstrapError) as excinfo:
        bootstrapper.initialize()

    assert "storage" in str(excinfo.value).lower()
