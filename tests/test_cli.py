from pizero_relay import cli
from pizero_relay.config import load_config


def _write_config(tmp_path, body: str):
    path = tmp_path / "pizero-relay.cfg"
    path.write_text(body, encoding="utf-8")
    return path


def test_banner_frames_title():
    banner = cli.format_banner("Relays")

    assert banner == "##########\n# Relays #\n##########\n"


def test_default_banner_uses_app_title():
    lines = cli.format_banner().splitlines()

    assert lines[1] == "# Pi Zero Relay Controller #"
    assert lines[0] == lines[2] == "#" * len(lines[1])


def test_settings_lists_topic_and_broker(tmp_path):
    path = _write_config(
        tmp_path,
        "[mqtt]\nbroker_host = 10.0.0.5:1884\ntopic = house/relays\n",
    )

    settings = cli.format_settings(load_config(path))

    assert settings == "TOPIC: house/relays\nBROKER: 10.0.0.5:1884\n"


def test_show_config_masks_password(tmp_path, capsys):
    path = _write_config(
        tmp_path,
        "[mqtt]\nusername = relay\npassword = hunter2\n",
    )

    exit_code = cli.main(["--config", str(path), "show-config"])

    output = capsys.readouterr().out
    assert exit_code == 0
    assert "[mqtt]" in output
    assert "username = relay" in output
    assert "password = ********" in output
    assert "hunter2" not in output


def test_invalid_config_reports_error(tmp_path, capsys):
    path = _write_config(tmp_path, "[mqtt]\nqos = 7\n")

    exit_code = cli.main(["--config", str(path), "show-config"])

    assert exit_code == 1
    assert "Invalid configuration" in capsys.readouterr().err


def test_mistyped_config_value_reports_error(tmp_path, capsys):
    path = _write_config(tmp_path, "[mqtt]\nbroker_port = abc\n")

    exit_code = cli.main(["-c", str(path), "show-config"])

    error = capsys.readouterr().err
    assert exit_code == 1
    assert "Invalid configuration" in error
    assert "mqtt.broker_port must be an integer" in error


def test_start_prints_banner_and_runs_app(tmp_path, capsys, monkeypatch):
    path = _write_config(tmp_path, "[mqtt]\nbroker_host = broker.local\n")
    started = {}

    def fake_start(config):
        started["config"] = config
        return 0

    monkeypatch.setattr(cli.RelayControllerApp, "start", staticmethod(fake_start))

    exit_code = cli.main(["-c", str(path), "start"])

    output = capsys.readouterr().out
    assert exit_code == 0
    assert started["config"].mqtt.broker_host == "broker.local"
    assert "# Pi Zero Relay Controller #" in output
    assert "TOPIC: relays" in output
    assert "BROKER: broker.local:1883" in output
