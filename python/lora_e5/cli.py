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
import os
import sys
import asyncio
import binascii
import logging
import click
from contextlib import suppress
from typing import Awaitable, Callable, Optional, TypeVar
from tabulate import tabulate

from .credentials import AppEui, AppKey, Credentials, DevEui
from .errors import LoRaE5Error, ParseError, RequestSendError
from .modem import CP210X_UART_BRIDGE_PID, DEFAULT_CAPACITY, SILICON_LABS_VID, LoRaE5
from .runtime import Client, Setup
from .types import DataRate, Downlink, JoinResponse


machine_readable = False

T = TypeVar('T')


def render(data):
    if machine_readable:
        click.echo('\n'.join(map(lambda v: ';'.join(map(str, v)), data)))
    else:
        click.echo(tabulate(data, tablefmt="psql"))


def render_downlink(downlink: Optional[Downlink]):
    if downlink is None:
        if not machine_readable:
            click.echo('Uplink sent, no downlink received')
        return
    render([
        ['RSSI', f'{downlink.rssi} dBm'],
        ['SNR',  f'{downlink.snr} dB']])


def fail(message: str):
    click.echo(f'Error: {message}', err=True)
    sys.exit(1)


def parse_usb(value: str):
    try:
        vid, pid = value.split(':')
        return int(vid, 16), int(pid, 16)
    except ValueError:
        fail(f'Invalid USB identifier {value!r}, expected VID:PID in hexadecimal')


def run(open_modem: Callable[[], LoRaE5], operation: Callable[[Client], Awaitable[T]]) -> T:
    '''Start a runtime for the modem, perform one operation, and shut down.'''
    async def main():
        setup = Setup()
        client = setup.get_client()
        runtime = setup.complete()
        task = asyncio.create_task(runtime.run(open_modem()))
        try:
            return await operation(client)
        finally:
            # The runtime may have terminated on its own already
            with suppress(RequestSendError):
                await client.shutdown()
            await task

    try:
        return asyncio.run(main())
    except LoRaE5Error as error:
        fail(str(error))


@click.group()
@click.option('--port', '-p', help='Pathname to the serial port [default: $PORT or USB lookup]')
@click.option('--usb', '-u', default=f'{SILICON_LABS_VID:04X}:{CP210X_UART_BRIDGE_PID:04X}', show_default=True, help='USB VID:PID of the serial bridge to look for when no port is given.')
@click.option('--buffer-size', '-s', type=click.IntRange(min=16), default=DEFAULT_CAPACITY, show_default=True, help='Capacity of the receive buffer in bytes.')
@click.option('--verbose', '-v', default=False, is_flag=True, help='Show all AT communication.')
@click.option('--machine', '-m', default=False, is_flag=True, help='Produce machine-readable output.')
@click.pass_context
def cli(ctx, port, usb, buffer_size, verbose, machine):
    '''Command line interface to the Seeed LoRa-E5 LoRaWAN modem.

    Configure the modem's serial port with the command line option -p or via
    the environment variable PORT. Without either, the tool looks for a USB
    serial bridge with the identifiers given with -u (a Silicon Labs CP210x by
    default).

    The command line option -v shows all AT commands sent to the modem and all
    responses received from it on standard error.
    '''
    global machine_readable
    machine_readable = machine

    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%H:%M:%S")

    def open_modem() -> LoRaE5:
        path = port or os.environ.get('PORT', None)
        if path is not None:
            modem = LoRaE5.open_path(path, buffer_size)
        else:
            modem = LoRaE5.open_usb(*parse_usb(usb), capacity=buffer_size)

        if verbose:
            modem.on('tx', lambda cmd: click.echo(f'< {cmd}', err=True))
            modem.on('rx', lambda text: click.echo('\n'.join(f'> {line}' for line in text.splitlines()), err=True))
        return modem

    ctx.obj = open_modem


@cli.command()
@click.argument('cmd')
@click.argument('timeout', type=click.IntRange(min=0), default=250)
@click.pass_obj
def at(open_modem: Callable[[], LoRaE5], cmd: str, timeout: int):
    '''Send AT command CMD to the modem and print the response.

    TIMEOUT is given in milliseconds. Only the first line of the response is
    returned, so this command does not work well with commands that produce
    multi-line responses such as AT+JOIN.
    '''
    response = run(open_modem, lambda client: client.at_command(cmd, timeout / 1000))
    click.echo(response.rstrip('\r\n'))


@cli.command()
@click.option('--force', '-f', default=False, is_flag=True, help='Join even if the modem already has a session.')
@click.pass_obj
def join(open_modem: Callable[[], LoRaE5], force: bool):
    '''Perform a LoRaWAN OTAA Join.

    An active session is kept unless --force is given. The command may take up
    to twenty seconds to complete.
    '''
    response = run(open_modem, lambda client: client.join(force))
    click.echo(str(response))
    if response == JoinResponse.JOIN_FAILED:
        sys.exit(1)


@cli.command()
@click.argument('dev_eui')
@click.argument('app_eui')
@click.argument('app_key')
@click.pass_obj
def configure(open_modem: Callable[[], LoRaE5], dev_eui: str, app_eui: str, app_key: str):
    '''Configure OTAA credentials.

    Switches the modem to OTAA mode in the US915 region, writes the DevEUI,
    AppEUI, and AppKey (all hexadecimal), and restricts the modem to
    sub-band 2.
    '''
    try:
        credentials = Credentials(DevEui.parse(dev_eui), AppEui.parse(app_eui), AppKey.parse(app_key))
    except ParseError as error:
        fail(str(error))

    run(open_modem, lambda client: client.configure(credentials))
    if not machine_readable:
        click.echo('Credentials configured')


@cli.command('get-app-eui')
@click.pass_obj
def get_app_eui(open_modem: Callable[[], LoRaE5]):
    '''Read out the AppEUI.'''
    click.echo(str(run(open_modem, lambda client: client.get_app_eui())))


@cli.command('get-dev-eui')
@click.pass_obj
def get_dev_eui(open_modem: Callable[[], LoRaE5]):
    '''Read out the DevEUI.'''
    click.echo(str(run(open_modem, lambda client: client.get_dev_eui())))


@cli.command()
@click.argument('dr')
@click.pass_obj
def datarate(open_modem: Callable[[], LoRaE5], dr: str):
    '''Set the uplink data rate DR (0-4).'''
    try:
        value = DataRate.parse(dr)
    except ParseError as error:
        fail(str(error))

    run(open_modem, lambda client: client.data_rate(value))
    if not machine_readable:
        click.echo(f'{value} set')


@cli.command()
@click.argument('data')
@click.argument('port', type=click.IntRange(0, 255), default=1)
@click.option('--confirmed', '-c', default=False, is_flag=True, help='Require an acknowledgement from the network.')
@click.pass_obj
def send(open_modem: Callable[[], LoRaE5], data: str, port: int, confirmed: bool):
    '''Send hexadecimal DATA as an uplink on PORT.'''
    try:
        payload = binascii.unhexlify(data)
    except ValueError as error:
        fail(f'Invalid hexadecimal data: {error}')

    render_downlink(run(open_modem, lambda client: client.send(payload, port, confirmed)))


@cli.command('send-ascii')
@click.argument('text')
@click.argument('port', type=click.IntRange(0, 255), default=1)
@click.option('--confirmed', '-c', default=False, is_flag=True, help='Require an acknowledgement from the network.')
@click.pass_obj
def send_ascii(open_modem: Callable[[], LoRaE5], text: str, port: int, confirmed: bool):
    '''Send TEXT as an uplink on PORT.'''
    render_downlink(run(open_modem, lambda client: client.send_text(text, port, confirmed)))


@cli.command()
@click.pass_obj
def device(open_modem: Callable[[], LoRaE5]):
    '''Show basic modem information.'''
    async def query(client: Client):
        return await client.is_ok(), await client.version()

    alive, version = run(open_modem, query)
    render([
        ['AT interface',     'OK' if alive else 'Not responding'],
        ['Firmware version', version]])


if __name__ == '__main__':
    cli()
