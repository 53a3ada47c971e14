from __future__ import annotations

import pytest

from lora_e5 import DataRate, Downlink, InvalidDataRate, JoinResponse, Mode, Region


def test_mode_wire_strings() -> None:
    assert str(Mode.TEST) == "TEST"
    assert str(Mode.OTAA) == "LWOTAA"
    assert str(Mode.ABP) == "LWABP"
    assert Mode.parse("otaa") is Mode.OTAA


def test_region_wire_strings() -> None:
    assert str(Region.EU868) == "EU868"
    assert str(Region.US915) == "US915"
    assert Region.parse("us915") is Region.US915


@pytest.mark.parametrize("text, expected", [(str(n), DataRate(n)) for n in range(5)])
def test_data_rate_parses_single_digits(text: str, expected: DataRate) -> None:
    assert DataRate.parse(text) is expected
    assert str(expected) == f"DR{text}"


@pytest.mark.parametrize("text", ["5", "-1", "01", "DR1", "", " 1", "1.0", "٣"])
def test_data_rate_rejects_anything_else(text: str) -> None:
    with pytest.raises(InvalidDataRate):
        DataRate.parse(text)


def test_data_rate_echo_patterns_are_distinct() -> None:
    echoes = [dr.echo for dr in DataRate]
    assert len(set(echoes)) == len(echoes)
    assert DataRate.DR3.echo == "SF7 BW125K"


@pytest.mark.parametrize(
    "response, expected",
    [
        ("+JOIN: Start\r\n+JOIN: Joined already\r\n", JoinResponse.ALREADY_JOINED),
        ("+JOIN: Start\r\n+JOIN: Network joined\r\n+JOIN: Done\r\n", JoinResponse.JOIN_COMPLETE),
        ("+JOIN: Start\r\n+JOIN: Join failed\r\n+JOIN: Done\r\n", JoinResponse.JOIN_FAILED),
        ("+JOIN: Network joined\r\n+JOIN: Joined already\r\n", JoinResponse.ALREADY_JOINED),
    ],
)
def test_join_classification_order(response: str, expected: JoinResponse) -> None:
    assert JoinResponse.classify(response) is expected


def test_downlink_fields() -> None:
    downlink = Downlink(rssi=-79, snr=7.0)
    assert downlink.rssi == -79
    assert downlink.snr == 7.0
