import json

from appbox.adapters.storage_local import StorageLocal
from appbox.domain.resources import ResourceDescriptor, ResourceRegistry
from appbox.domain.settings import HostingMode, LauncherSettings


def test_settings_round_trip(tmp_path):
    storage = StorageLocal(root_dir=str(tmp_path))
    settings = LauncherSettings(
        hosting_mode=HostingMode.SFTP,
        app_name="Demo",
        manifest_location="/srv/demo/MANIFEST.MF",
        sftp_hostname="files.example",
        sftp_username="demo",
        resources=ResourceRegistry(
            resources=(ResourceDescriptor("/srv/demo/demo.pyz", "App-Version", ("demo.pyz",)),)
        ),
    )

    storage.save_settings(settings)

    assert storage.load_settings() == settings
    with (tmp_path / "launcher_settings.json").open("r", encoding="utf-8") as fh:
        persisted = json.load(fh)
    assert persisted["hosting_mode"] == "SFTP Hosting"


def test_missing_file_yields_defaults(tmp_path):
    storage = StorageLocal(root_dir=str(tmp_path))

    assert storage.load_settings() == LauncherSettings()
    assert not (tmp_path / "launcher_settings.json").exists()


def test_unreadable_file_yields_defaults(tmp_path, caplog):
    (tmp_path / "launcher_settings.json").write_text("{not json", encoding="utf-8")
    storage = StorageLocal(root_dir=str(tmp_path))

    assert storage.load_settings() == LauncherSettings()
    assert "using defaults" in caplog.text
