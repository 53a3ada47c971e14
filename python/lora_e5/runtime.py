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
import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Optional

from .credentials import AppEui, Credentials, DevEui
from .errors import LoRaE5Error, RequestSendError, ResponseReceiveError, ResponseSendError
from .modem import LoRaE5
from .types import DataRate, Downlink, JoinResponse


logger = logging.getLogger(__name__)

DEFAULT_QUEUE_SIZE = 32


class Request:
    '''A device operation queued for the runtime.

    Each request carries its own reply future. The runtime completes the
    future with the result of execute(), or with the LoRaE5Error it raised.
    '''
    reply: asyncio.Future

    def execute(self, modem: LoRaE5) -> Any:
        raise NotImplementedError()

    def abandon(self):
        if not self.reply.done():
            self.reply.set_exception(ResponseReceiveError())


@dataclass
class At(Request):
    command: str
    timeout: float
    reply: asyncio.Future = field(repr=False)

    def execute(self, modem: LoRaE5) -> str:
        return modem.at(self.command, self.timeout)


@dataclass
class Join(Request):
    force: bool
    reply: asyncio.Future = field(repr=False)

    def execute(self, modem: LoRaE5) -> JoinResponse:
        return modem.force_join() if self.force else modem.join()


@dataclass
class Configure(Request):
    credentials: Credentials = field(repr=False)
    reply: asyncio.Future = field(repr=False)

    def execute(self, modem: LoRaE5) -> None:
        modem.configure(self.credentials)


@dataclass
class GetDevEui(Request):
    reply: asyncio.Future = field(repr=False)

    def execute(self, modem: LoRaE5) -> DevEui:
        return modem.get_dev_eui()


@dataclass
class GetAppEui(Request):
    reply: asyncio.Future = field(repr=False)

    def execute(self, modem: LoRaE5) -> AppEui:
        return modem.get_app_eui()


@dataclass
class SetDataRate(Request):
    dr: DataRate
    reply: asyncio.Future = field(repr=False)

    def execute(self, modem: LoRaE5) -> None:
        modem.set_data_rate(self.dr)


@dataclass
class SendData(Request):
    data: bytes
    port: int
    confirmed: bool
    reply: asyncio.Future = field(repr=False)

    def execute(self, modem: LoRaE5) -> Optional[Downlink]:
        return modem.send(self.data, self.port, self.confirmed)


@dataclass
class SendText(Request):
    text: str
    port: int
    confirmed: bool
    reply: asyncio.Future = field(repr=False)

    def execute(self, modem: LoRaE5) -> Optional[Downlink]:
        return modem.send_text(self.text, self.port, self.confirmed)


@dataclass
class Version(Request):
    reply: asyncio.Future = field(repr=False)

    def execute(self, modem: LoRaE5) -> str:
        return modem.get_version()


@dataclass
class Ping(Request):
    reply: asyncio.Future = field(repr=False)

    def execute(self, modem: LoRaE5) -> bool:
        return modem.is_ok()


@dataclass
class Shutdown(Request):
    def abandon(self):
        pass


# Placed into the intake queue when it is closed to wake up the runtime
_CLOSED = object()


class Channel:
    '''Bounded intake queue shared by all clients and the runtime.'''
    def __init__(self, capacity: int):
        self.queue: asyncio.Queue = asyncio.Queue(capacity)
        self.closed = False

    async def put(self, request: Request):
        if self.closed:
            raise RequestSendError()
        await self.queue.put(request)
        # The channel may have been closed while we waited for a free slot. The
        # runtime will never look at the request in that case.
        if self.closed:
            raise RequestSendError()

    def close(self):
        if self.closed:
            return
        self.closed = True

        while True:
            try:
                request = self.queue.get_nowait()
            except asyncio.QueueEmpty:
                break
            request.abandon()

        self.queue.put_nowait(_CLOSED)


class Client:
    '''Asynchronous handle used to submit operations to the runtime.

    Clients are cheap and any number of them may share one runtime. Each
    method queues a request and waits for the runtime to reply. Requests are
    serviced strictly in the order in which they were queued.
    '''
    def __init__(self, channel: Channel):
        self._channel = channel

    async def _call(self, cls, *args):
        reply = asyncio.get_running_loop().create_future()
        await self._channel.put(cls(*args, reply=reply))
        return await reply

    async def at_command(self, cmd: str, timeout: float) -> str:
        return await self._call(At, cmd, timeout)

    async def join(self, force: bool = False) -> JoinResponse:
        return await self._call(Join, force)

    async def configure(self, credentials: Credentials):
        await self._call(Configure, credentials)

    async def get_dev_eui(self) -> DevEui:
        return await self._call(GetDevEui)

    async def get_app_eui(self) -> AppEui:
        return await self._call(GetAppEui)

    async def data_rate(self, dr: DataRate):
        await self._call(SetDataRate, dr)

    async def send(self, data: bytes, port: int = 1, confirmed: bool = False) -> Optional[Downlink]:
        return await self._call(SendData, bytes(data), port, confirmed)

    async def send_text(self, text: str, port: int = 1, confirmed: bool = False) -> Optional[Downlink]:
        return await self._call(SendText, text, port, confirmed)

    async def version(self) -> str:
        return await self._call(Version)

    async def is_ok(self) -> bool:
        return await self._call(Ping)

    async def shutdown(self):
        '''Ask the runtime to stop.

        The runtime stops as soon as it dequeues the request. Requests queued
        after it are never executed and their callers receive
        ResponseReceiveError. Any further request fails with RequestSendError.
        '''
        await self._channel.put(Shutdown())

    def close(self):
        '''Close the intake channel without waiting for the runtime.'''
        self._channel.close()


class Setup:
    def __init__(self, capacity: int = DEFAULT_QUEUE_SIZE):
        if capacity <= 0:
            raise ValueError('Queue capacity must be positive')
        self._channel = Channel(capacity)
        self._runtime: Optional[Runtime] = None

    def get_client(self) -> Client:
        return Client(self._channel)

    def complete(self) -> Runtime:
        if self._runtime is not None:
            raise RuntimeError('The runtime has already been created')
        self._runtime = Runtime(self._channel)
        return self._runtime


def respond(reply: asyncio.Future, result: Any = None, error: Optional[BaseException] = None):
    if reply.done():
        raise ResponseSendError()
    if error is not None:
        reply.set_exception(error)
    else:
        reply.set_result(result)


class Runtime:
    '''The single owner of a LoRaE5 session.

    run() takes requests from the intake channel one at a time and executes
    each on a dedicated worker thread, waiting for it to finish before taking
    the next one. Thus, at most one operation is in progress on the serial
    port at any time.
    '''
    def __init__(self, channel: Channel):
        self._channel = channel

    async def run(self, modem: LoRaE5):
        loop = asyncio.get_running_loop()
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix='lora-e5')
        request = None

        try:
            while True:
                request = await self._channel.queue.get()
                if request is _CLOSED:
                    logger.debug('Request channel closed')
                    break
                if isinstance(request, Shutdown):
                    logger.debug('Shutdown requested')
                    break

                logger.debug('Executing %s', request)
                try:
                    try:
                        result = await loop.run_in_executor(executor, request.execute, modem)
                    except LoRaE5Error as error:
                        respond(request.reply, error=error)
                    else:
                        respond(request.reply, result)
                except ResponseSendError as error:
                    logger.error('Could not deliver response to %s: %s', request, error)
                request = None
        finally:
            self._channel.close()
            if isinstance(request, Request):
                request.abandon()

            try:
                await loop.run_in_executor(executor, modem.close)
            except LoRaE5Error as error:
                logger.error('Could not close modem %s: %s', modem, error)
            executor.shutdown(wait=False)
            logger.debug('Runtime terminated')
