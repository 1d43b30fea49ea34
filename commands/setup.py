"""
Help command and the coloured Click group for the WLED dial CLI.
"""

from dataclasses import dataclass

import click


@dataclass(frozen=True)
class CommandSection:
    """Represents a section in the help command."""
    name: str
    commands: list[tuple[str, str]]


class ColouredGroup(click.Group):
    """Custom Group class that adds colour to help output."""

    def format_usage(self, ctx, formatter):
        """Format the usage line with colour."""
        formatter.write_paragraph()
        formatter.write_text(
            click.style('Usage: ', fg='cyan', bold=True) +
            click.style(f'{ctx.command_path} [OPTIONS] COMMAND [ARGS]...', fg='white')
        )

    def format_commands(self, ctx, formatter):
        """Format commands with colour."""
        commands = []
        for subcommand in self.list_commands(ctx):
            cmd = self.get_command(ctx, subcommand)
            if cmd is None or cmd.hidden:
                continue
            commands.append((subcommand, cmd.get_short_help_str(limit=200)))

        if commands:
            formatter.write_paragraph()
            formatter.write_text(click.style('Commands:', fg='yellow', bold=True))
            max_len = max(max(len(name) for name, _ in commands), 12)
            with formatter.indentation():
                for subcommand, help_text in commands:
                    formatter.write_text(
                        click.style(subcommand.ljust(max_len), fg='green') + '  ' +
                        click.style(help_text, fg='white', dim=True)
                    )


COMMAND_SECTIONS = [
    CommandSection(
        name="DEVICES",
        commands=[
            ("scan", "Sweep local subnets for WLED devices"),
            ("scan --subnet 10.0.0", "Sweep a specific /24 prefix"),
            ("validate <address>", "Check an IP address or hostname"),
            ("status <address>", "Show power, brightness, effect and presets"),
        ]
    ),
    CommandSection(
        name="CONTROL",
        commands=[
            ("brightness <address> <0-255>", "Set brightness"),
            ("power <address> [--on/--off]", "Turn the device on/off"),
        ]
    ),
    CommandSection(
        name="HOST BRIDGE",
        commands=[
            ("run", "Drive dial sessions from JSON-lines host events on stdin"),
            ("run -v", "Same, with debug logging on stderr"),
        ]
    ),
]


@click.command(name='help')
def help_command():
    """Display help and common commands."""
    click.secho("\nWLED Dial Control - Quick Reference\n", fg='cyan', bold=True)

    for section in COMMAND_SECTIONS:
        click.secho(section.name, fg='yellow', bold=True)
        for cmd, desc in section.commands:
            click.echo("  ", nl=False)
            click.secho(cmd, fg='green', nl=False)
            click.echo(" " * (34 - len(cmd)) + "  " + desc)
        click.echo()

    click.secho("For detailed help on any command:", fg='cyan')
    click.echo(f"  wled-dial {click.style('<command> -h', fg='white', bold=True)}")
    click.echo()
