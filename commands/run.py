"""
Host bridge command: drive dial sessions from JSON-lines events.

Each stdin line is one host message, e.g.
  {"event": "appear", "context": "dial-1", "payload": {"settings": {"ipAddress": "192.168.1.50"}}}
  {"event": "rotate", "context": "dial-1", "payload": {"ticks": -2}}
Outbound setSettings / setDisplay messages are written to stdout.
"""

import json
import logging
import sys
from pathlib import Path

import click

from core.host import ConsoleHost
from core.registry import SessionRegistry

logger = logging.getLogger(__name__)


def process_stream(registry: SessionRegistry, stream) -> int:
    """Feed every JSON line of stream to the registry.

    Returns:
        Number of messages dispatched
    """
    handled = 0
    for line_no, line in enumerate(stream, 1):
        line = line.strip()
        if not line:
            continue
        try:
            message = json.loads(line)
        except ValueError as e:
            logger.warning("Line %d is not valid JSON: %s", line_no, e)
            continue
        if registry.handle_message(message):
            handled += 1
    return handled


@click.command()
@click.option('--verbose', '-v', is_flag=True, help='Debug logging on stderr')
@click.option('--config', 'config_path', type=click.Path(dir_okay=False, path_type=Path),
              help='Settings store file (default: ~/.wled_dial/settings.json)')
@click.option('--no-persist', is_flag=True, help='Keep settings in memory only')
def run_command(verbose: bool, config_path: Path | None, no_persist: bool):
    """Run dial sessions driven by host events on stdin.

    Reads one JSON message per line until EOF, then tears every session down.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
        stream=sys.stderr,
    )

    host = ConsoleHost(sys.stdout, store_path=config_path, persist=not no_persist)
    registry = SessionRegistry(host)
    try:
        handled = process_stream(registry, sys.stdin)
    except KeyboardInterrupt:
        click.echo("\nStopped.", err=True)
        return
    finally:
        registry.close()
    logger.info("Processed %d host message(s)", handled)
