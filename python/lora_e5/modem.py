#
# Python library for the Seeed LoRa-E5 LoRaWAN modem
#
# Copyright (c) 2022 Jan Janak <jan@janakj.org>
#
# Redistribution and use in source and binary forms, with or without
# modification, are permitted provided that the following conditions are met:
#
#   1. Redistributions of source code must retain the above copyright notice,
#   this list of conditions and the following disclaimer.
#
#   2. Redistributions in binary form must reproduce the above copyright notice,
#   this list of conditions and the following disclaimer in the documentation
#   and/or other materials provided with the distribution.
#
#   3. Neither the name of the copyright holder nor the names of its
#   contributors may be used to endorse or promote products derived from this
#   software without specific prior written permission.
#
# THIS SOFTWARE IS PROVIDED BY THE COPYRIGHT HOLDERS AND CONTRIBUTORS "AS IS"
# AND ANY EXPRESS OR IMPLIED WARRANTIES, INCLUDING, BUT NOT LIMITED TO, THE
# IMPLIED WARRANTIES OF MERCHANTABILITY AND FITNESS FOR A PARTICULAR PURPOSE ARE
# DISCLAIMED. IN NO EVENT SHALL THE COPYRIGHT HOLDER OR CONTRIBUTORS BE LIABLE
# FOR ANY DIRECT, INDIRECT, INCIDENTAL, SPECIAL, EXEMPLARY, OR CONSEQUENTIAL
# DAMAGES (INCLUDING, BUT NOT LIMITED TO, PROCUREMENT OF SUBSTITUTE GOODS OR
# SERVICES; LOSS OF USE, DATA, OR PROFITS; OR BUSINESS INTERRUPTION) HOWEVER
# CAUSED AND ON ANY THEORY OF LIABILITY, WHETHER IN CONTRACT, STRICT LIABILITY,
# OR TORT (INCLUDING NEGLIGENCE OR OTHERWISE) ARISING IN ANY WAY OUT OF THE USE
# OF THIS SOFTWARE, EVEN IF ADVISED OF THE POSSIBILITY OF SUCH DAMAGE.

from __future__ import annotations
import re
import serial # type: ignore
from contextlib import contextmanager
from time import monotonic
from typing import Callable, Optional, Sequence, Tuple, Type, TypeVar
from pymitter import EventEmitter # type: ignore
from serial.tools import list_ports # type: ignore

from .credentials import AppEui, AppKey, Credentials, DevEui, Identifier
from .errors import (
    IncorrectWrite, ModemBusy, Nack, PartialResponse, PortNotFound,
    ResponseOverflow, RssiParseError, SerialError, SignalParseError,
    SnrParseError, UnexpectedResponse, Utf8Error)
from .types import DataRate, Downlink, JoinResponse, Mode, Region


SILICON_LABS_VID = 0x10C4
CP210X_UART_BRIDGE_PID = 0xEA60

BAUD_RATE = 9600
PORT_TIMEOUT = 0.01
DEFAULT_CAPACITY = 256

DEFAULT_TIMEOUT = 5.0
PING_TIMEOUT = 0.05
JOIN_TIMEOUT = 20.0
SEND_TIMEOUT = 3.0

JOIN_DONE = '+JOIN: Done\r\n'
ALREADY_JOINED = '+JOIN: Joined already\r\n'

# Receive window markers printed by the modem when a downlink arrives
RX_WINDOWS = ('RXWIN1', 'RXWIN2')

IdentifierT = TypeVar('IdentifierT', bound=Identifier)


def parse_rssi_snr(response: str, offset: int) -> Tuple[int, float]:
    '''Extract the RSSI and SNR of a downlink from the modem's response.

    The offset must point to a receive window marker in the response, i.e.,
    to the beginning of the text "RXWIN1, RSSI -79, SNR 7.0\r\n". The RSSI is
    returned as an integer in dBm, the SNR as a float in dB.
    '''
    remaining = response[offset:]
    end = remaining.find('\r\n')
    if end < 0:
        raise SignalParseError(response)

    signal = remaining[len(RX_WINDOWS[0]):end]
    if not signal.startswith(', RSSI '):
        raise SignalParseError(response)
    signal = signal[len(', RSSI '):]

    sep = signal.find(', ')
    if sep < 0:
        raise SignalParseError(response)
    rssi, snr = signal[:sep], signal[sep:]
    if not snr.startswith(', SNR '):
        raise SignalParseError(response)
    snr = snr[len(', SNR '):]

    try:
        rssi_value = int(rssi)
    except ValueError as error:
        raise RssiParseError(rssi) from error

    try:
        snr_value = float(snr)
    except ValueError as error:
        raise SnrParseError(snr) from error

    return rssi_value, snr_value


class LoRaE5(EventEmitter):
    '''A session with one Seeed LoRa-E5 modem attached to a serial port.

    The session owns the serial port and a receive buffer of fixed capacity
    that is reused by every operation. All methods block until the modem has
    responded or until the operation's timeout expires. The object must not be
    used from more than one thread at a time; see lora_e5.runtime for a
    serialized asynchronous interface.

    The session emits the event "tx" with each command written to the modem
    and the event "rx" with each complete response received from the modem.
    '''
    def __init__(self, port, capacity: int = DEFAULT_CAPACITY):
        super().__init__()
        if capacity <= 0:
            raise ValueError('Buffer capacity must be positive')
        self.port = port
        self.buf = bytearray(capacity)
        self.hide_value = False

    @classmethod
    def open_path(cls, path: str, capacity: int = DEFAULT_CAPACITY) -> LoRaE5:
        try:
            port = serial.Serial(path, BAUD_RATE, timeout=PORT_TIMEOUT)
        except (serial.SerialException, OSError) as error:
            raise SerialError(f'Could not open serial port {path}: {error}') from error
        return cls(port, capacity)

    @classmethod
    def open_usb(cls, vid: int = SILICON_LABS_VID, pid: int = CP210X_UART_BRIDGE_PID,
                 capacity: int = DEFAULT_CAPACITY) -> LoRaE5:
        for info in list_ports.comports():
            if info.vid == vid and info.pid == pid:
                return cls.open_path(info.device, capacity)
        raise PortNotFound(vid, pid)

    def __str__(self):
        return str(getattr(self.port, 'port', None) or self.port)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def close(self):
        try:
            self.port.close()
        except OSError as error:
            raise SerialError(f'Could not close serial port: {error}') from error

    @property  # type: ignore
    @contextmanager
    def secret(self):
        try:
            self.hide_value = True
            yield
        finally:
            self.hide_value = False

    @property
    def capacity(self) -> int:
        return len(self.buf)

    def _write(self, data: bytes):
        try:
            n = self.port.write(data)
        except OSError as error:
            raise SerialError(f'Serial port write failed: {error}') from error
        if n != len(data):
            raise IncorrectWrite(n, len(data))

    def write_command(self, cmd: str):
        '''Send an AT command to the modem.

        The command and the terminating line feed are written separately. A
        short write of either is reported as IncorrectWrite.
        '''
        if self.hide_value:
            self.emit('tx', re.sub(r'^(.*?)=.+$', r'\1=<redacted>', cmd))
        else:
            self.emit('tx', cmd)

        self._write(cmd.encode('utf-8'))
        self._write(b'\n')

    def _decode(self, n: int) -> Optional[str]:
        # Returns None while the buffer ends with an incomplete UTF-8 sequence
        # that the next read may complete.
        try:
            return self.buf[:n].decode('utf-8')
        except UnicodeDecodeError as error:
            if error.reason == 'unexpected end of data':
                return None
            raise Utf8Error(f'Invalid UTF-8 in modem output: {error}') from error

    def _read_until(self, match: Callable[[str], bool], timeout: float) -> int:
        cursor = 0
        deadline = monotonic() + timeout

        while True:
            try:
                data = self.port.read(len(self.buf) - cursor)
            except OSError as error:
                raise SerialError(f'Serial port read failed: {error}') from error

            if data:
                self.buf[cursor:cursor + len(data)] = data
                cursor += len(data)

                text = self._decode(cursor)
                if text is not None and match(text):
                    if self.hide_value:
                        self.emit('rx', re.sub(r'^(\+\w+: )[^\r\n]+', r'\1<redacted>', text, flags=re.M))
                    else:
                        self.emit('rx', text)
                    return cursor

                if cursor == len(self.buf):
                    data = bytes(self.buf)
                    raise ResponseOverflow(data.decode('utf-8', errors='replace'), data)

            if monotonic() >= deadline:
                data = bytes(self.buf[:cursor])
                raise PartialResponse(data.decode('utf-8', errors='replace'), data)

    def read_until_pattern(self, patterns: Sequence[str], timeout: float) -> int:
        '''Read into the buffer until the response ends with one of patterns.

        Returns the number of bytes in the buffer that form the response. If
        none of the patterns has been seen by the time the timeout expires,
        PartialResponse is raised with everything received so far.
        '''
        terminators = tuple(patterns)
        return self._read_until(lambda text: text.endswith(terminators), timeout)

    def read_until_break(self, timeout: float) -> int:
        return self.read_until_pattern(('\n',), timeout)

    def response(self, n: int) -> str:
        rv = self._decode(n)
        if rv is None:
            raise Utf8Error('Modem output ends with an incomplete UTF-8 sequence')
        return rv

    def framed_response(self, n: int, prelude: str) -> str:
        '''Strip the expected prelude from the response and return the rest.

        If the response does not begin with the prelude, the entire response is
        reported in an UnexpectedResponse error.
        '''
        response = self.response(n)
        if not response.startswith(prelude):
            raise UnexpectedResponse(response)
        return response[len(prelude):]

    def check_framed_response(self, n: int, prelude: str, expected: str):
        payload = self.framed_response(n, prelude)
        if payload.rstrip('\r\n') != expected:
            raise UnexpectedResponse(self.response(n))

    def at(self, cmd: str, timeout: float = DEFAULT_TIMEOUT) -> str:
        '''Send a raw AT command and return the first line of the response.'''
        self.write_command(cmd)
        n = self.read_until_break(timeout)
        return self.response(n)

    def is_ok(self) -> bool:
        self.write_command('AT')
        n = self.read_until_break(PING_TIMEOUT)
        try:
            self.check_framed_response(n, '+AT: ', 'OK')
        except UnexpectedResponse:
            return False
        return True

    def get_version(self) -> str:
        self.write_command('AT+VER')
        n = self.read_until_break(DEFAULT_TIMEOUT)
        return self.framed_response(n, '+VER: ').rstrip()

    def set_channel(self, ch: int, enable: bool):
        self.write_command(f'AT+CH={ch},{"on" if enable else "off"}')
        n = self.read_until_break(DEFAULT_TIMEOUT)
        self.check_framed_response(n, '+CH: CH', f'{ch} {"on" if enable else "off"}')

    def subband2_only(self):
        '''Restrict the US915 channel plan to sub-band 2 (channels 8-15).

        Channels 0-7 and 16-71 are disabled one by one. The first channel that
        cannot be disabled aborts the sequence.
        '''
        for ch in range(0, 8):
            self.set_channel(ch, False)
        for ch in range(16, 72):
            self.set_channel(ch, False)

    def set_region(self, region: Region):
        self.write_command(f'AT+DR={region}')
        n = self.read_until_break(DEFAULT_TIMEOUT)
        self.check_framed_response(n, '+DR: ', str(region))

    def set_mode(self, mode: Mode):
        self.write_command(f'AT+MODE={mode}')
        n = self.read_until_break(DEFAULT_TIMEOUT)
        self.check_framed_response(n, '+MODE: ', str(mode))

    def set_data_rate(self, dr: DataRate):
        '''Configure the uplink data rate.

        The modem answers with two lines, the first echoes the data rate and the
        second describes the corresponding spreading factor and bandwidth:

          +DR: DR3
          +DR: US915 DR3  SF7  BW125K

        Both lines must match the requested data rate. A rejected data rate
        produces a single line, e.g., "+DR: ERROR(-1)".
        '''
        first = f'+DR: {dr}\r\n'

        def complete(text: str) -> bool:
            if not text.endswith('\n'):
                return False
            return not text.startswith(first) or text.count('\n') >= 2

        self.write_command(f'AT+DR={dr}')
        n = self._read_until(complete, DEFAULT_TIMEOUT)
        response = self.response(n)
        lines = response.splitlines()
        if len(lines) != 2 or lines[0] != f'+DR: {dr}' or not lines[1].startswith('+DR: '):
            raise UnexpectedResponse(response)
        if dr.echo not in ' '.join(lines[1].split()):
            raise UnexpectedResponse(response)

    def set_port(self, port: int):
        self.write_command(f'AT+PORT={port}')
        n = self.read_until_break(DEFAULT_TIMEOUT)
        self.check_framed_response(n, '+PORT: ', str(port))

    def _get_identifier(self, cls: Type[IdentifierT], cmd: str, prelude: str) -> IdentifierT:
        self.write_command(cmd)
        n = self.read_until_break(DEFAULT_TIMEOUT)
        return cls.parse(self.framed_response(n, prelude).rstrip())

    def _set_identifier(self, value: Identifier, cmd: str, prelude: str):
        # The modem echoes the configured value back. The echo must decode to
        # the same bytes, otherwise the modem did not store what we sent.
        self.write_command(f'{cmd}, {value}')
        n = self.read_until_break(DEFAULT_TIMEOUT)
        echo = type(value).parse(self.framed_response(n, prelude).rstrip())
        if echo != value:
            raise UnexpectedResponse(self.response(n))

    def get_dev_eui(self) -> DevEui:
        return self._get_identifier(DevEui, 'AT+ID=DevEui', '+ID: DevEui, ')

    def get_app_eui(self) -> AppEui:
        return self._get_identifier(AppEui, 'AT+ID=AppEui', '+ID: AppEui, ')

    def set_dev_eui(self, dev_eui: DevEui):
        self._set_identifier(dev_eui, 'AT+ID=DevEui', '+ID: DevEui, ')

    def set_app_eui(self, app_eui: AppEui):
        self._set_identifier(app_eui, 'AT+ID=AppEui', '+ID: AppEui, ')

    def set_app_key(self, app_key: AppKey):
        with self.secret:
            self._set_identifier(app_key, 'AT+KEY=APPKEY', '+KEY: APPKEY ')

    def set_credentials(self, credentials: Credentials):
        self.set_dev_eui(credentials.dev_eui)
        self.set_app_eui(credentials.app_eui)
        self.set_app_key(credentials.app_key)

    def configure(self, credentials: Credentials):
        '''Prepare the modem for an OTAA Join on sub-band 2 of US915.'''
        self.set_mode(Mode.OTAA)
        self.set_region(Region.US915)
        self.set_credentials(credentials)
        self.subband2_only()

    def join(self) -> JoinResponse:
        '''Perform an OTAA Join unless the modem already has a session.'''
        self.write_command('AT+JOIN')
        n = self.read_until_pattern((JOIN_DONE, ALREADY_JOINED), JOIN_TIMEOUT)
        return JoinResponse.classify(self.response(n))

    def force_join(self) -> JoinResponse:
        '''Perform an OTAA Join, discarding any existing session.'''
        self.write_command('AT+JOIN=FORCE')
        n = self.read_until_pattern((JOIN_DONE,), JOIN_TIMEOUT)
        if 'Network joined' in self.response(n):
            return JoinResponse.JOIN_COMPLETE
        return JoinResponse.JOIN_FAILED

    def _uplink(self, cmd: str, payload: bytes, port: int, confirmed: bool) -> Optional[Downlink]:
        self.set_port(port)

        done = f'+{cmd}: Done\r\n'
        busy = f'+{cmd}: LoRaWAN modem is busy\r\n'
        self.write_command(f'AT+{cmd}="{payload.hex()}"')
        n = self.read_until_pattern((done, busy), SEND_TIMEOUT)
        response = self.response(n)

        if response.endswith(busy):
            raise ModemBusy(response)

        for marker in RX_WINDOWS:
            offset = response.find(marker)
            if offset >= 0:
                return Downlink(*parse_rssi_snr(response, offset))

        # A confirmed uplink is acknowledged in a downlink, so the absence of a
        # receive window means the network did not acknowledge it.
        if confirmed:
            raise Nack()
        return None

    def send(self, data: bytes, port: int = 1, confirmed: bool = False) -> Optional[Downlink]:
        return self._uplink('CMSGHEX' if confirmed else 'MSGHEX', bytes(data), port, confirmed)

    def send_text(self, text: str, port: int = 1, confirmed: bool = False) -> Optional[Downlink]:
        return self._uplink('CMSG' if confirmed else 'MSG', text.encode('utf-8'), port, confirmed)
