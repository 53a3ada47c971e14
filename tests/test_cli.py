from __future__ import annotations

import pytest
from click.testing import CliRunner

from conftest import FakePort
from lora_e5 import LoRaE5
from lora_e5.cli import cli


@pytest.fixture
def fake_device(monkeypatch: pytest.MonkeyPatch):
    def install(replies) -> FakePort:
        port = FakePort(replies)
        opened: list[str] = []

        def open_path(path: str, capacity: int = 256) -> LoRaE5:
            opened.append(path)
            return LoRaE5(port, capacity)

        monkeypatch.setattr(LoRaE5, "open_path", staticmethod(open_path))
        port.opened = opened
        return port

    return install


def test_get_dev_eui(fake_device) -> None:
    port = fake_device({"AT+ID=DevEui": b"+ID: DevEui, 2C:F7:F1:20:32:30:A5:E4\r\n"})

    result = CliRunner().invoke(cli, ["-p", "/dev/ttyUSB0", "get-dev-eui"])

    assert result.exit_code == 0, result.output
    assert result.output == "2CF7F1203230A5E4\n"
    assert port.opened == ["/dev/ttyUSB0"]
    assert port.closed


def test_port_from_environment(fake_device) -> None:
    port = fake_device({"AT+ID=AppEui": b"+ID: AppEui, 60:81:F9:A4:98:85:6D:CC\r\n"})

    result = CliRunner().invoke(cli, ["get-app-eui"], env={"PORT": "/dev/ttyACM3"})

    assert result.exit_code == 0, result.output
    assert result.output == "6081F9A498856DCC\n"
    assert port.opened == ["/dev/ttyACM3"]


def test_at_command_timeout_in_milliseconds(fake_device) -> None:
    fake_device({"AT+VER": b"+VER: 4.0.11\r\n"})

    result = CliRunner().invoke(cli, ["-p", "/dev/ttyUSB0", "at", "AT+VER", "100"])

    assert result.exit_code == 0, result.output
    assert result.output == "+VER: 4.0.11\n"


def test_send_confirmed_machine_readable(fake_device) -> None:
    port = fake_device({
        "AT+PORT=5": b"+PORT: 5\r\n",
        'AT+CMSGHEX="0102"': b"+CMSGHEX: Start\r\n+CMSGHEX: RXWIN1, RSSI -79, SNR 7.0\r\n+CMSGHEX: Done\r\n",
    })

    result = CliRunner().invoke(cli, ["-p", "/dev/ttyUSB0", "-m", "send", "0102", "5", "--confirmed"])

    assert result.exit_code == 0, result.output
    assert result.output == "RSSI;-79 dBm\nSNR;7.0 dB\n"
    assert port.commands == ["AT+PORT=5", 'AT+CMSGHEX="0102"']


def test_send_nack_is_reported(fake_device) -> None:
    fake_device({
        "AT+PORT=1": b"+PORT: 1\r\n",
        'AT+CMSG="6869"': b"+CMSG: Start\r\n+CMSG: Wait ACK\r\n+CMSG: Done\r\n",
    })

    result = CliRunner().invoke(cli, ["-p", "/dev/ttyUSB0", "send-ascii", "hi", "--confirmed"])

    assert result.exit_code == 1
    assert "Error: ACK was not received" in result.output


def test_send_rejects_invalid_hex(fake_device) -> None:
    port = fake_device({})

    result = CliRunner().invoke(cli, ["-p", "/dev/ttyUSB0", "send", "xyz"])

    assert result.exit_code == 1
    assert "Invalid hexadecimal data" in result.output
    assert port.commands == []


def test_datarate(fake_device) -> None:
    fake_device({"AT+DR=DR1": b"+DR: DR1\r\n+DR: US915 DR1 SF9 BW125K\r\n"})

    result = CliRunner().invoke(cli, ["-p", "/dev/ttyUSB0", "datarate", "1"])

    assert result.exit_code == 0, result.output
    assert result.output == "DR1 set\n"


def test_datarate_rejects_out_of_range(fake_device) -> None:
    fake_device({})

    result = CliRunner().invoke(cli, ["-p", "/dev/ttyUSB0", "datarate", "7"])

    assert result.exit_code == 1
    assert "Invalid data rate string" in result.output


def test_join_failed_exits_with_error(fake_device) -> None:
    fake_device({"AT+JOIN=FORCE": b"+JOIN: Start\r\n+JOIN: Join failed\r\n+JOIN: Done\r\n"})

    result = CliRunner().invoke(cli, ["-p", "/dev/ttyUSB0", "join", "--force"])

    assert result.exit_code == 1
    assert result.output == "Join failed\n"


def test_join_already_joined(fake_device) -> None:
    fake_device({"AT+JOIN": b"+JOIN: Joined already\r\n"})

    result = CliRunner().invoke(cli, ["-p", "/dev/ttyUSB0", "join"])

    assert result.exit_code == 0, result.output
    assert result.output == "Already joined\n"


def test_configure_rejects_short_key(fake_device) -> None:
    port = fake_device({})

    result = CliRunner().invoke(
        cli, ["-p", "/dev/ttyUSB0", "configure", "6081F9A775278564", "6081F9A498856DCC", "72F36B99"]
    )

    assert result.exit_code == 1
    assert "unexpected length 4" in result.output
    assert port.commands == []


def test_device_table(fake_device) -> None:
    fake_device({"AT": b"+AT: OK\r\n", "AT+VER": b"+VER: 4.0.11\r\n"})

    result = CliRunner().invoke(cli, ["-p", "/dev/ttyUSB0", "device"])

    assert result.exit_code == 0, result.output
    assert "Firmware version" in result.output
    assert "4.0.11" in result.output


def test_verbose_traces_traffic(fake_device) -> None:
    fake_device({"AT+VER": b"+VER: 4.0.11\r\n"})

    result = CliRunner().invoke(cli, ["-p", "/dev/ttyUSB0", "-v", "at", "AT+VER"])

    assert result.exit_code == 0, result.output
    assert "< AT+VER" in result.output
    assert "> +VER: 4.0.11" in result.output
