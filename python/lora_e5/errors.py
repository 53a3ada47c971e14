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


class LoRaE5Error(Exception):
    pass


class SerialError(LoRaE5Error):
    '''The serial port failed to open, read, or write.'''


class IncorrectWrite(LoRaE5Error):
    def __init__(self, written: int, expected: int):
        super().__init__(f'Wrote incorrect amount of bytes: {written} instead of {expected}')
        self.written = written
        self.expected = expected


class PortNotFound(LoRaE5Error):
    def __init__(self, vid: int, pid: int):
        super().__init__(f'Unable to find serial port with vid={vid:04X} and pid={pid:04X}')
        self.vid = vid
        self.pid = pid


class Utf8Error(LoRaE5Error):
    '''The modem produced output that is not valid UTF-8.'''


class PartialResponse(LoRaE5Error):
    '''No terminator was received before the read timed out.

    The text accumulated so far is kept in `response` and the raw bytes in
    `data` so that the caller can see how far the modem got.
    '''
    def __init__(self, response: str, data: bytes):
        super().__init__(f'Partial response after timeout: "{response}"')
        self.response = response
        self.data = data


class ResponseOverflow(LoRaE5Error):
    '''The response did not fit into the receive buffer.'''
    def __init__(self, response: str, data: bytes):
        super().__init__(f'Response exceeds buffer capacity of {len(data)} bytes: "{response}"')
        self.response = response
        self.data = data


class UnexpectedResponse(LoRaE5Error):
    def __init__(self, response: str):
        super().__init__(f'Unexpected AT response: {response!r}')
        self.response = response


class Nack(LoRaE5Error):
    def __init__(self):
        super().__init__('ACK was not received')


class ModemBusy(LoRaE5Error):
    def __init__(self, response: str):
        super().__init__('Modem is busy')
        self.response = response


class ParseError(LoRaE5Error):
    pass


class HexError(ParseError):
    pass


class WrongSize(ParseError):
    def __init__(self, length: int, expected: int):
        super().__init__(f'Decoded value has unexpected length {length} (expected {expected})')
        self.length = length
        self.expected = expected


class SignalParseError(ParseError):
    def __init__(self, response: str):
        super().__init__(f'Failed to parse RSSI/SNR from: {response!r}')
        self.response = response


class RssiParseError(ParseError):
    def __init__(self, text: str):
        super().__init__(f'Failed to parse RSSI from: {text!r}')
        self.text = text


class SnrParseError(ParseError):
    def __init__(self, text: str):
        super().__init__(f'Failed to parse SNR from: {text!r}')
        self.text = text


class InvalidDataRate(ParseError):
    def __init__(self, text: str):
        super().__init__(f'Invalid data rate string: {text!r}')
        self.text = text


class ProcessError(LoRaE5Error):
    '''Base class for errors raised by the request/response runtime.'''


class RequestSendError(ProcessError):
    def __init__(self, message: str = 'Request channel closed'):
        super().__init__(message)


class ResponseReceiveError(ProcessError):
    def __init__(self, message: str = 'Runtime terminated before sending a response'):
        super().__init__(message)


class ResponseSendError(ProcessError):
    def __init__(self, message: str = 'Response receiver is gone'):
        super().__init__(message)
