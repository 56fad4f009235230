import yaml

from iman.core.config import Config


def test_missing_config_is_created_with_defaults(tmp_path):
    path = tmp_path / "nested" / "config.yaml"
    config = Config(config_path=str(path))
    assert path.exists()
    assert config.data["retention"]["days"] == 90
    assert config.data["zakat"]["nisab_gold_grams"] == 85
    assert yaml.safe_load(path.read_text())["api"]["port"] == 8765


def test_user_values_are_merged_over_defaults(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump({"plugins": {"prayer": {"lat": 55.75, "lon": 37.62}}}))
    config = Config(config_path=str(path))
    prayer = config.get_plugin_config("prayer")
    assert prayer["lat"] == 55.75
    assert prayer["backend"] == "aladhan"
    assert config.get_plugin_config("missing") == {}


def test_env_vars_are_substituted(tmp_path, monkeypatch):
    monkeypatch.setenv("IMAN_SYNC_URL", "https://sync.example.test")
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump({"plugins": {"sync": {"base_url": "${IMAN_SYNC_URL}"}}}))
    config = Config(config_path=str(path))
    assert config.get_plugin_config("sync")["base_url"] == "https://sync.example.test"


def test_dotenv_file_in_config_dir_is_loaded(tmp_path, monkeypatch):
    monkeypatch.delenv("IMAN_TEST_ID", raising=False)
    (tmp_path / ".env").write_text("IMAN_TEST_ID='12345'\n")
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump({"plugins": {"sync": {"external_id": "$IMAN_TEST_ID"}}}))
    config = Config(config_path=str(path))
    assert config.get_plugin_config("sync")["external_id"] == "12345"
    monkeypatch.delenv("IMAN_TEST_ID", raising=False)


def test_broken_reload_keeps_previous_config(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump({"retention": {"days": 30}}))
    config = Config(config_path=str(path))
    seen = []
    config.register_change_callback(seen.append)
    path.write_text("- just\n- a list\n")
    config.reload()
    assert config.data["retention"]["days"] == 30
    assert len(seen) == 1


def test_save_plugin_config_writes_file(tmp_path):
    path = tmp_path / "config.yaml"
    config = Config(config_path=str(path))
    config.save_plugin_config("sync", {"enable": True, "base_url": "http://localhost"})
    assert yaml.safe_load(path.read_text())["plugins"]["sync"]["enable"] is True
