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

from .credentials import AppEui, AppKey, Credentials, DevEui
from .errors import (
    LoRaE5Error, SerialError, IncorrectWrite, PortNotFound, Utf8Error,
    PartialResponse, ResponseOverflow, UnexpectedResponse, Nack, ModemBusy,
    ParseError, HexError, WrongSize, SignalParseError, RssiParseError,
    SnrParseError, InvalidDataRate, ProcessError, RequestSendError,
    ResponseReceiveError, ResponseSendError)
from .modem import CP210X_UART_BRIDGE_PID, SILICON_LABS_VID, LoRaE5, parse_rssi_snr
from .runtime import Client, Runtime, Setup
from .types import DataRate, Downlink, JoinResponse, Mode, Region

__version__ = '0.1.1'
