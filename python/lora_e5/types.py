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
from enum import Enum, unique
from typing import NamedTuple

from .errors import InvalidDataRate


@unique
class Mode(Enum):
    TEST = 'TEST'
    OTAA = 'LWOTAA'
    ABP  = 'LWABP'

    def __str__(self):
        return self.value

    @classmethod
    def parse(cls, value: str) -> Mode:
        return cls[value.upper()]


@unique
class Region(Enum):
    EU868 = 'EU868'
    US915 = 'US915'

    def __str__(self):
        return self.value

    @classmethod
    def parse(cls, value: str) -> Region:
        return cls[value.upper()]


# Spreading factor and bandwidth reported by the modem in the second line of
# its reply to AT+DR=DRx. Only the US915 plan is used.
_DR_ECHO = {
    0: 'SF10 BW125K',
    1: 'SF9 BW125K',
    2: 'SF8 BW125K',
    3: 'SF7 BW125K',
    4: 'SF8 BW500K',
}


@unique
class DataRate(Enum):
    DR0 = 0
    DR1 = 1
    DR2 = 2
    DR3 = 3
    DR4 = 4

    def __str__(self):
        return self.name

    @property
    def echo(self) -> str:
        '''Return the text the modem prints once it has accepted the rate.'''
        return _DR_ECHO[self.value]

    @classmethod
    def parse(cls, value: str) -> DataRate:
        '''Parse a data rate from a single decimal digit "0" through "4".'''
        if len(value) != 1 or value not in '01234':
            raise InvalidDataRate(value)
        return cls(int(value))


class Downlink(NamedTuple):
    rssi: int
    snr: float


@unique
class JoinResponse(Enum):
    JOIN_COMPLETE  = 0
    JOIN_FAILED    = 1
    ALREADY_JOINED = 2

    def __str__(self):
        return self.name.replace('_', ' ').capitalize()

    @classmethod
    def classify(cls, response: str) -> JoinResponse:
        '''Determine the outcome of AT+JOIN from the complete response text.

        The checks are applied in order and the first match wins:
          1. "Joined already" -> ALREADY_JOINED
          2. "Network joined" -> JOIN_COMPLETE
          3. anything else    -> JOIN_FAILED
        '''
        if 'Joined already' in response:
            return cls.ALREADY_JOINED
        if 'Network joined' in response:
            return cls.JOIN_COMPLETE
        return cls.JOIN_FAILED
