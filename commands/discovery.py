"""
Discovery command: sweep local subnets for WLED devices.
"""

import click

from core.config import SCAN_BATCH_SIZE, SCAN_TIMEOUT
from core.discovery import get_local_subnets, scan


@click.command()
@click.option('--batch-size', '-b', type=click.IntRange(1, 1024), default=SCAN_BATCH_SIZE,
              show_default=True, help='Maximum probes in flight at once')
@click.option('--timeout', '-t', type=click.FloatRange(0.1, 30.0), default=SCAN_TIMEOUT,
              show_default=True, help='Per-host timeout in seconds')
@click.option('--subnet', '-s', 'subnets', multiple=True,
              help='/24 prefix to sweep, e.g. 192.168.1 (repeatable; default: local interfaces)')
def scan_command(batch_size: int, timeout: float, subnets: tuple[str, ...]):
    """Find WLED devices on the local network.

    Probes wled.local, wled-light.local and every host of each local /24.

    \b
    Examples:
      wled-dial scan
      wled-dial scan -s 192.168.178 -t 1.0
    """
    prefixes = [s.rstrip('.') for s in subnets] if subnets else get_local_subnets()
    if not prefixes:
        click.secho("⚠ No active IPv4 interfaces found; only well-known hostnames will be probed",
                    fg='yellow')

    click.echo(f"Scanning {', '.join(p + '.0/24' for p in prefixes) or 'well-known hostnames'}...")
    devices = scan(batch_size=batch_size, timeout=timeout, subnets=prefixes)

    if not devices:
        click.secho("No devices found.", fg='yellow')
        return

    click.echo()
    click.secho(f"Found {len(devices)} device{'s' if len(devices) != 1 else ''}:", fg='cyan', bold=True)
    for i, device in enumerate(devices, 1):
        click.echo(f"  {click.style(str(i), fg='green', bold=True)}. {device['name']} ({device['ip']})")
    click.echo()
