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
import binascii
from typing import NamedTuple

from .errors import HexError, WrongSize


class Identifier:
    '''A fixed-length LoRaWAN identifier or key.

    Values are parsed from hexadecimal strings. The separator ":" used by the
    modem when it prints EUIs is accepted and ignored. The canonical string
    form is upper-case hexadecimal without separators.
    '''
    SIZE: int = 0

    __slots__ = ('_value',)

    def __init__(self, value: bytes):
        value = bytes(value)
        if len(value) != self.SIZE:
            raise WrongSize(len(value), self.SIZE)
        self._value = value

    @classmethod
    def parse(cls, text: str):
        try:
            value = binascii.unhexlify(text.replace(':', ''))
        except ValueError as error:
            raise HexError(f'Invalid hexadecimal string {text!r}: {error}') from error
        return cls(value)

    def __bytes__(self):
        return self._value

    def __str__(self):
        return self._value.hex().upper()

    def __repr__(self):
        return f'{self.__class__.__name__}({str(self)!r})'

    def __eq__(self, other):
        if type(other) is not type(self):
            return NotImplemented
        return self._value == other._value

    def __hash__(self):
        return hash((self.__class__.__name__, self._value))


class DevEui(Identifier):
    SIZE = 8


class AppEui(Identifier):
    SIZE = 8


class AppKey(Identifier):
    SIZE = 16


class Credentials(NamedTuple):
    dev_eui: DevEui
    app_eui: AppEui
    app_key: AppKey
