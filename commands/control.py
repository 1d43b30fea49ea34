"""
Device commands: address validation, status and direct control.
"""

import sys

import click

from core.client import WledClient
from core.errors import InvalidAddress, MalformedPayload, ProbeError
from models.display import brightness_percent
from models.state import Catalog, DeviceState, parse_presets
from models.types import AddressKind
from models.utils import classify_address, clean_address, require_address


def _address_or_exit(address: str) -> str:
    try:
        return require_address(address)
    except InvalidAddress as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


@click.command()
@click.argument('address')
def validate_command(address: str):
    """Check whether ADDRESS is a usable device address.

    \b
    Examples:
      wled-dial validate 192.168.1.50
      wled-dial validate http://wled-kitchen.local/
    """
    kind = classify_address(address)
    if kind is AddressKind.INVALID:
        click.secho(f"✗ '{address}' is not a valid IP address or hostname", fg='red')
        sys.exit(1)

    label = 'IPv4 address' if kind is AddressKind.IPV4 else 'hostname'
    click.secho(f"✓ {clean_address(address)} ({label})", fg='green')


@click.command()
@click.argument('address')
def status_command(address: str):
    """Show the current state of the device at ADDRESS."""
    address = _address_or_exit(address)
    client = WledClient()

    try:
        data = client.fetch_device(address)
    except (ProbeError, MalformedPayload) as e:
        click.secho(f"✗ {address} unreachable: {e}", fg='red')
        sys.exit(1)

    catalog = Catalog()
    if isinstance(data.get('effects'), list):
        catalog.effects = data['effects']
    if isinstance(data.get('palettes'), list):
        catalog.palettes = data['palettes']
    try:
        catalog.presets = parse_presets(client.fetch_presets(address))
    except (ProbeError, MalformedPayload):
        pass

    info = data.get('info') if isinstance(data.get('info'), dict) else {}
    state = DeviceState.from_json(data['state']) if isinstance(data.get('state'), dict) else DeviceState()
    segment = state.primary_segment()

    def lookup(names, index):
        return names[index] if 0 <= index < len(names) else f"ID {index}"

    click.echo()
    click.secho(f"{info.get('name') or 'WLED'} ({address})", fg='cyan', bold=True)
    if info.get('ver'):
        click.echo(f"  Version:    {info['ver']}")
    power = click.style('ON', fg='green') if state.soft_on else click.style('OFF', fg='red')
    click.echo(f"  Power:      {power}")
    click.echo(f"  Brightness: {state.brightness}/255 ({brightness_percent(state.brightness)}%)")
    click.echo(f"  Effect:     {lookup(catalog.effects, segment.effect_id)}")
    click.echo(f"  Palette:    {lookup(catalog.palettes, segment.palette_id)}")
    preset = catalog.find_preset(state.preset_id)
    click.echo(f"  Preset:     {preset.name if preset else 'None'}")
    click.echo(f"  Presets:    {len(catalog.presets)} saved")
    if state.relay is not None:
        relays = ', '.join(f"{rid}={'on' if on else 'off'}" for rid, on in state.relay.relays)
        click.echo(f"  Relays:     {relays or 'none'}")
    click.echo()


@click.command()
@click.argument('address')
@click.argument('brightness', type=click.IntRange(0, 255))
def brightness_command(address: str, brightness: int):
    """Set brightness of the device (0-255).

    \b
    Examples:
      wled-dial brightness 192.168.1.50 200
      wled-dial brightness wled.local 0
    """
    address = _address_or_exit(address)
    if WledClient().send_state(address, {'on': True, 'bri': brightness}):
        click.echo(f"✓ {address} brightness set to {brightness}/255")
    else:
        click.echo(f"✗ Failed to set brightness on {address}")
        sys.exit(1)


@click.command()
@click.argument('address')
@click.option('--on/--off', default=True, help='Turn the device on or off')
def power_command(address: str, on: bool):
    """Turn the device ON or OFF.

    \b
    Examples:
      wled-dial power 192.168.1.50 --on
      wled-dial power 192.168.1.50 --off
    """
    address = _address_or_exit(address)
    status = "ON" if on else "OFF"
    if WledClient().send_state(address, {'on': on}):
        click.echo(f"✓ {address} turned {status}")
    else:
        click.echo(f"✗ Failed to turn {address} {status}")
        sys.exit(1)
