import yaml

from uni.runtime.config_store import ConfigStore


def test_previous_is_none_without_snapshot(instance, write_server_config):
    write_server_config()
    store = ConfigStore(instance)

    assert store.previous is None


def test_save_writes_yaml_snapshot(instance, write_server_config, tmp_path):
    write_server_config(workers=2, preload_app=True)
    store = ConfigStore(instance)

    store.save()

    payload = yaml.safe_load(instance.snapshot_file.read_text())
    assert payload == {
        "working_directory": str(tmp_path),
        "preload_app": True,
        "worker_processes": 2,
        "listen": "127.0.0.1:3000",
    }


def test_snapshot_survives_config_changes(instance, write_server_config):
    write_server_config(preload_app=True)
    ConfigStore(instance).save()

    write_server_config(preload_app=False)
    store = ConfigStore(instance)

    assert store.current.preload_app is False
    assert store.previous is not None
    assert store.previous.preload_app is True
    assert store.active_preload() is True


def test_active_preload_falls_back_to_current(instance, write_server_config):
    write_server_config(preload_app=True)

    assert ConfigStore(instance).active_preload() is True


def test_invalid_snapshot_is_ignored_with_warning(instance, write_server_config):
    write_server_config(preload_app=False)
    instance.make_run_dir()
    instance.snapshot_file.write_text("preload_app: maybe\n")
    warnings = []

    store = ConfigStore(instance, on_warning=warnings.append)

    assert store.previous is None
    assert store.active_preload() is False
    assert len(warnings) == 1
    assert "snapshot" in warnings[0]
