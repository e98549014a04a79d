"""
Tests for configuration loading and the command line entry point
"""

import textwrap
import threading

import pytest

from beamdrop import main as main_module
from beamdrop.config import ConfigError, ConfigManager, load_config
from beamdrop.metrics import StatsManager
from beamdrop.models import Config, DEFAULT_CHUNK_SIZE, DEFAULT_PORT


class TestConfig:
    """Test YAML configuration"""

    def test_missing_file_gives_defaults(self, tmp_path):
        config = load_config(str(tmp_path / "absent.yaml"))
        assert config == Config()
        assert config.server.port == DEFAULT_PORT
        assert config.transfer.chunkSize == DEFAULT_CHUNK_SIZE

    def test_values_are_parsed(self, tmp_path):
        config_path = tmp_path / "beamdrop.yaml"
        config_path.write_text(textwrap.dedent(
            """
            server:
              addr: "127.0.0.1"
              port: 9000
              keepAliveTimeout: 5
            logging:
              json: true
              level: "DEBUG"
            transfer:
              chunkSize: 1024
            ui:
              noQr: true
            """
        ), encoding="utf-8")

        config = load_config(str(config_path))
        assert config.server.addr == "127.0.0.1"
        assert config.server.port == 9000
        assert config.server.keepAliveTimeout == 5
        assert config.logging.json is True
        assert config.logging.level == "DEBUG"
        assert config.transfer.chunkSize == 1024
        assert config.ui.noQr is True

    def test_non_positive_chunk_size_falls_back(self, tmp_path):
        config_path = tmp_path / "beamdrop.yaml"
        config_path.write_text("transfer:\n  chunkSize: 0\n", encoding="utf-8")
        assert load_config(str(config_path)).transfer.chunkSize == DEFAULT_CHUNK_SIZE

    def test_env_var_selects_file(self, tmp_path, monkeypatch):
        config_path = tmp_path / "from-env.yaml"
        config_path.write_text("server:\n  port: 8123\n", encoding="utf-8")
        monkeypatch.setenv("BEAMDROP_CONFIG", str(config_path))

        manager = ConfigManager()
        assert manager.config_path == config_path.resolve()
        assert manager.get_config().server.port == 8123

    def test_invalid_yaml(self, tmp_path):
        config_path = tmp_path / "broken.yaml"
        config_path.write_text("server: [unclosed\n", encoding="utf-8")
        with pytest.raises(ConfigError):
            load_config(str(config_path))

    def test_invalid_values(self, tmp_path):
        config_path = tmp_path / "bad.yaml"
        config_path.write_text("server:\n  port: not-a-number\n", encoding="utf-8")
        with pytest.raises(ConfigError):
            load_config(str(config_path))

        config_path.write_text("- just\n- a list\n", encoding="utf-8")
        with pytest.raises(ConfigError):
            load_config(str(config_path))


def test_stats_manager_is_thread_safe():
    stats = StatsManager()

    def hammer():
        for _ in range(1000):
            stats.increment_requests()
            stats.increment_downloads()

    threads = [threading.Thread(target=hammer) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    snapshot = stats.snapshot()
    assert snapshot["requests"] == 8000
    assert snapshot["downloads"] == 8000
    assert snapshot["uploads"] == 0

    stats.reset()
    assert stats.snapshot()["requests"] == 0


class TestMain:
    """Test the command line entry point"""

    @pytest.fixture(autouse=True)
    def no_server(self, monkeypatch):
        self.runs = []
        self.qr_urls = []
        monkeypatch.setattr(main_module.uvicorn, "run", lambda app, **kw: self.runs.append((app, kw)))
        monkeypatch.setattr(main_module, "show_qr_code", self.qr_urls.append)
        monkeypatch.setattr(main_module, "setup_logging", lambda log_config: None)
        monkeypatch.setattr(main_module, "get_local_ip", lambda: "192.168.1.20")

    def test_starts_server_with_shared_dir(self, tmp_path):
        main_module.main(["--dir", str(tmp_path), "--config", str(tmp_path / "none.yaml")])

        assert len(self.runs) == 1
        app, kwargs = self.runs[0]
        assert app.state.shared_root == tmp_path.resolve()
        assert kwargs["port"] == DEFAULT_PORT
        assert kwargs["host"] == "0.0.0.0"
        assert self.qr_urls == [f"http://192.168.1.20:{DEFAULT_PORT}"]

    def test_no_qr_and_port_flags(self, tmp_path):
        main_module.main([
            "--dir", str(tmp_path),
            "--config", str(tmp_path / "none.yaml"),
            "--no-qr",
            "--port", "8080",
        ])

        assert self.qr_urls == []
        assert self.runs[0][1]["port"] == 8080

    def test_missing_directory_exits(self, tmp_path):
        with pytest.raises(SystemExit) as exc_info:
            main_module.main(["--dir", str(tmp_path / "gone"), "--config", str(tmp_path / "none.yaml")])
        assert exc_info.value.code == 1
        assert self.runs == []

    def test_extra_arguments_print_help(self, tmp_path, capsys):
        main_module.main(["unexpected"])
        assert "usage: beamdrop" in capsys.readouterr().out
        assert self.runs == []

    def test_share_url_uses_explicit_host(self):
        assert main_module.share_url("10.0.0.7", 7777) == "http://10.0.0.7:7777"
        assert main_module.share_url("0.0.0.0", 7777) == "http://192.168.1.20:7777"
