#!/usr/bin/env python3
"""
WLED Dial Control CLI
Control WLED devices from a rotary dial: brightness, effects, presets, palettes and relays.
"""

import click

from commands.control import brightness_command, power_command, status_command, validate_command
from commands.discovery import scan_command
from commands.run import run_command
from commands.setup import ColouredGroup, help_command


@click.group(
    cls=ColouredGroup,
    context_settings={
        'help_option_names': ['-h', '--help'],
        'max_content_width': 120
    }
)
@click.version_option(version='0.1.0', prog_name='WLED Dial Control')
def cli():
    """WLED Dial Control - Drive WLED devices from rotary dial controls.

Sessions poll each device every 3 seconds, translate dial rotation, press and
tap into device commands, and render a status glyph for the dial display.

Use 'help' for a quick reference of all commands.
Use 'COMMAND -h' or 'COMMAND --help' for detailed help on a specific command."""
    pass


# Register help
cli.add_command(help_command)

# Register device commands
cli.add_command(scan_command, name='scan')
cli.add_command(validate_command, name='validate')
cli.add_command(status_command, name='status')

# Register control commands
cli.add_command(brightness_command, name='brightness')
cli.add_command(power_command, name='power')

# Register host bridge
cli.add_command(run_command, name='run')


if __name__ == '__main__':
    cli()
