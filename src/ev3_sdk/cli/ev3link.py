"""
ev3link - EV3 Brick Command-Line Interface
==========================================

This module implements the command-line interface for talking to a
LEGO Mindstorms EV3 brick. Every command opens one session over the
configured transport, runs one or a few brick verbs and closes it.

Transports
----------
- **usb**: The brick's USB HID interface (needs the ``usb`` extra)
- **bt**: A Bluetooth RFCOMM binding such as /dev/rfcomm0 (alias ``serial``)
- **wifi**: The brick's TCP command channel, unlocked with its serial number

Defaults come from EV3_* environment variables (see ``ev3_sdk.config``);
the global options below override them.

Usage Examples
--------------
List serial ports that may be a Bluetooth binding:
    $ ev3link ports

Read the battery over Bluetooth:
    $ ev3link --io-type bt --port /dev/rfcomm0 battery

Run motors A and D at half power, then stop them:
    $ ev3link motor power AD 50
    $ ev3link motor start AD
    $ ev3link motor stop AD --brake

Copy a program to the brick:
    $ ev3link upload tones.rbf ../prjs/tones/tones.rbf

Exit Codes
----------
0 - Success
1 - Connection, communication or brick error
2 - Invalid arguments or local file error
3 - Internal error
"""

import dataclasses
import logging
import os
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

import click

from ev3_sdk import __version__
from ev3_sdk.brick import Brick
from ev3_sdk.bytecode import three_tone_program
from ev3_sdk.cli.errors import ExitCode, handle_cli_exception
from ev3_sdk.comms.serial import find_ev3_port, format_port_list, list_serial_ports
from ev3_sdk.comms.wifi import DEFAULT_DISCOVERY_TIMEOUT, discover as discover_brick
from ev3_sdk.config import DISCOVER_ADDRESS, ConnectionConfig, IoType
from ev3_sdk.device import BrakeMode, Motor
from ev3_sdk.errors import EV3Error
from ev3_sdk.protocol.transfer import DEFAULT_MAX_CHUNK_LENGTH

logger = logging.getLogger(__name__)

# Default directory for user projects on the brick
DEFAULT_LIST_PATH = "/home/root/lms2012/prjs/"

IO_TYPE_CHOICES = ["usb", "bt", "serial", "wifi"]


# =============================================================================
# CLI Context and Utilities
# =============================================================================

class Context:
    """
    Shared context for CLI commands.

    Holds the connection settings after environment and command-line
    options have been merged, and the verbosity.
    """

    def __init__(self) -> None:
        self.config: ConnectionConfig = ConnectionConfig()
        self.verbose: bool = False

    def setup_logging(self) -> None:
        """Configure logging based on verbosity."""
        level = logging.DEBUG if self.verbose else logging.INFO
        logging.basicConfig(
            level=level,
            format="%(levelname)s: %(message)s" if self.verbose else "%(message)s",
        )

    @contextmanager
    def session(self) -> Iterator[Brick]:
        """
        Open a brick session for one command.

        SDK errors raised while connecting or inside the ``with`` block
        are reported and turned into the matching exit code.
        """
        try:
            brick = Brick.connect(self.config)
        except (EV3Error, ValueError) as e:
            handle_cli_exception(e, self.verbose)

        try:
            yield brick
        except (EV3Error, ValueError) as e:
            click.echo()
            handle_cli_exception(e, self.verbose)
        finally:
            brick.close()


pass_context = click.make_pass_decorator(Context, ensure=True)


def progress_bar(current: int, total: int) -> None:
    """Simple text progress bar for file transfers."""
    if total == 0:
        return
    percent = current * 100 // total
    filled = percent // 2
    bar = "=" * filled + "-" * (50 - filled)
    click.echo(f"\r[{bar}] {percent:3d}% ({current}/{total} bytes)", nl=False)
    if current >= total:
        click.echo()  # Newline at end


def parse_motors(value: str) -> Motor:
    """Turn port letters into a Motor mask, as a click parameter error."""
    try:
        return Motor.parse(value)
    except ValueError as e:
        raise click.BadParameter(str(e)) from None


def sensor_port(port: int) -> int:
    """Brick labels sensor ports 1..4; the protocol numbers them 0..3."""
    return port - 1


# =============================================================================
# Main CLI Group
# =============================================================================

@click.group()
@click.option(
    "--io-type", "-i",
    type=click.Choice(IO_TYPE_CHOICES, case_sensitive=False),
    help="Transport to the brick (default: usb, or EV3_IO_TYPE)",
)
@click.option(
    "--port", "-p",
    help="Serial/Bluetooth device, e.g. /dev/rfcomm0 (default: auto-detect)",
)
@click.option(
    "--baud", "-b",
    type=int,
    help="Serial baud rate (default: 115200)",
)
@click.option(
    "--address", "-a",
    help="Brick IP address for Wi-Fi, or 'discover' to wait for its beacon",
)
@click.option(
    "--wifi-port",
    type=int,
    help="TCP port of the Wi-Fi command channel (default: 5555)",
)
@click.option(
    "--serial-number", "-s",
    help="Brick serial number used to unlock Wi-Fi",
)
@click.option(
    "--timeout", "-t",
    type=float,
    help="Read timeout in seconds (default: 5)",
)
@click.option(
    "--verbose", "-v",
    is_flag=True,
    help="Enable verbose output with frame hex dumps",
)
@click.version_option(version=__version__, prog_name="ev3link")
@pass_context
def main(
    ctx: Context,
    io_type: Optional[str],
    port: Optional[str],
    baud: Optional[int],
    address: Optional[str],
    wifi_port: Optional[int],
    serial_number: Optional[str],
    timeout: Optional[float],
    verbose: bool,
) -> None:
    """
    ev3link - Talk to a LEGO Mindstorms EV3 brick.

    Reads the battery, plays sounds, drives motors, reads sensors and
    moves files over USB, Bluetooth or Wi-Fi.
    """
    ctx.verbose = verbose
    ctx.setup_logging()

    try:
        config = ConnectionConfig.from_env()
        config = config.with_overrides(
            io_type=IoType.parse(io_type) if io_type else None,
            serial_port=port,
            baud_rate=baud,
            wifi_port=wifi_port,
            serial_number=serial_number,
            timeout=timeout,
        )
    except ValueError as e:
        handle_cli_exception(e, verbose)

    if address is not None:
        config = dataclasses.replace(
            config, wifi_address=None if address == DISCOVER_ADDRESS else address
        )

    # Auto-detect the Bluetooth binding unless a device was named
    explicit_port = port is not None or "EV3_SERIAL_PORT" in os.environ
    if config.io_type is IoType.BLUETOOTH and not explicit_port:
        detected = find_ev3_port()
        if detected:
            config = dataclasses.replace(config, serial_port=detected)

    ctx.config = config
    logger.debug("Connection settings: %s", config)


# =============================================================================
# Discovery Commands
# =============================================================================

@main.command()
def ports() -> None:
    """
    List available serial ports.

    A paired brick shows up as a Bluetooth serial binding, for example
    /dev/rfcomm0 on Linux or a COM port on Windows.
    """
    port_list = list_serial_ports()
    click.echo("Available serial ports:")
    click.echo(format_port_list(port_list))

    detected = find_ev3_port()
    if detected:
        click.echo(f"\nLikely EV3 port: {detected}")


@main.command()
@click.option(
    "--wait", "-w",
    type=float,
    default=DEFAULT_DISCOVERY_TIMEOUT,
    show_default=True,
    help="Seconds to listen for a beacon",
)
@pass_context
def discover(ctx: Context, wait: float) -> None:
    """
    Wait for a Wi-Fi brick to announce itself.

    Prints the address, serial number and name from the first beacon
    received on UDP port 3015.
    """
    click.echo("Listening for EV3 beacons...")
    try:
        beacon = discover_brick(timeout=wait)
    except EV3Error as e:
        handle_cli_exception(e, ctx.verbose)

    click.echo(f"Name:          {beacon.name or '(unnamed)'}")
    click.echo(f"Address:       {beacon.address}:{beacon.port}")
    click.echo(f"Serial number: {beacon.serial_number}")


# =============================================================================
# Brick Status and Sound
# =============================================================================

@main.command()
@pass_context
def battery(ctx: Context) -> None:
    """Show battery voltage and level."""
    with ctx.session() as brick:
        voltage = brick.battery_voltage()
        level = brick.battery_level()

    click.echo(f"Voltage: {voltage:.2f} V")
    click.echo(f"Level:   {level}%")


@main.command()
@click.argument("volume", type=click.IntRange(0, 100))
@click.argument("frequency", type=click.IntRange(250, 10000))
@click.argument("duration", type=click.IntRange(1, 32767))
@pass_context
def tone(ctx: Context, volume: int, frequency: int, duration: int) -> None:
    """
    Play a tone.

    VOLUME is 0-100, FREQUENCY is in Hz and DURATION in milliseconds.

    Example:
        ev3link tone 20 440 500
    """
    with ctx.session() as brick:
        brick.play_tone(volume, frequency, duration)


@main.command()
@pass_context
def tones(ctx: Context) -> None:
    """Play three rising tones."""
    with ctx.session() as brick:
        brick.play_three_tones()


@main.command()
@click.option("--volume", type=click.IntRange(0, 100), default=10, show_default=True)
@click.option("--duration", type=click.IntRange(1, 32767), default=100, show_default=True)
@pass_context
def beep(ctx: Context, volume: int, duration: int) -> None:
    """Play a short 1000 Hz beep."""
    with ctx.session() as brick:
        brick.beep(volume=volume, duration=duration)


# =============================================================================
# Motor Commands
# =============================================================================

@main.group()
def motor() -> None:
    """
    Drive the motors on output ports A-D.

    PORTS is one or more port letters, e.g. A or BC.
    """


@motor.command("start")
@click.argument("ports")
@click.option("--power", type=click.IntRange(-100, 100), help="Set power before starting")
@pass_context
def motor_start(ctx: Context, ports: str, power: Optional[int]) -> None:
    """Start the motors on PORTS."""
    nos = parse_motors(ports)
    with ctx.session() as brick:
        if power is not None:
            brick.output_power(0, nos, power)
        brick.output_start(0, nos)


@motor.command("stop")
@click.argument("ports", required=False)
@click.option("--brake", is_flag=True, help="Brake instead of coasting")
@pass_context
def motor_stop(ctx: Context, ports: Optional[str], brake: bool) -> None:
    """Stop the motors on PORTS (all motors, braking, if omitted)."""
    nos = parse_motors(ports) if ports else None
    with ctx.session() as brick:
        if nos is None:
            brick.output_stop_all()
        else:
            brick.output_stop(0, nos, BrakeMode.BRAKE if brake else BrakeMode.COAST)


@motor.command("power")
@click.argument("ports")
@click.argument("power", type=click.IntRange(-100, 100))
@pass_context
def motor_power(ctx: Context, ports: str, power: int) -> None:
    """Set the power of the motors on PORTS to POWER (-100..100)."""
    nos = parse_motors(ports)
    with ctx.session() as brick:
        brick.output_power(0, nos, power)


@motor.command("step")
@click.argument("ports")
@click.argument("speed", type=click.IntRange(-100, 100))
@click.argument("ramp_up", type=click.IntRange(min=0))
@click.argument("constant", type=click.IntRange(min=0))
@click.argument("ramp_down", type=click.IntRange(min=0))
@click.option("--coast", is_flag=True, help="Coast at the end instead of braking")
@pass_context
def motor_step(
    ctx: Context,
    ports: str,
    speed: int,
    ramp_up: int,
    constant: int,
    ramp_down: int,
    coast: bool,
) -> None:
    """
    Turn the motors on PORTS through a speed profile.

    RAMP_UP, CONSTANT and RAMP_DOWN are in degrees.

    Example:
        ev3link motor step A 50 90 360 90
    """
    nos = parse_motors(ports)
    brake = BrakeMode.COAST if coast else BrakeMode.BRAKE
    with ctx.session() as brick:
        brick.output_step_speed(0, nos, speed, ramp_up, constant, ramp_down, brake)


@motor.command("count")
@click.argument("port")
@pass_context
def motor_count(ctx: Context, port: str) -> None:
    """Show the tacho count of the motor on PORT."""
    nos = parse_motors(port)
    with ctx.session() as brick:
        count = brick.output_get_count(0, nos)
    click.echo(f"{nos.name}: {count} degrees")


@motor.command("reset")
@click.argument("ports")
@pass_context
def motor_reset(ctx: Context, ports: str) -> None:
    """Reset the tacho counts of the motors on PORTS."""
    nos = parse_motors(ports)
    with ctx.session() as brick:
        brick.output_clear_count(0, nos)


# =============================================================================
# Sensor Commands
# =============================================================================

@main.group()
def sensor() -> None:
    """Read sensors on input ports 1-4."""


@sensor.command("read")
@click.argument("port", type=click.IntRange(1, 4))
@click.option("--mode", "-m", type=click.IntRange(0, 7), default=0, show_default=True)
@click.option("--samples", "-n", type=click.IntRange(min=1), default=1, show_default=True)
@click.option("--interval", type=float, default=0.1, show_default=True,
              help="Seconds between samples")
@pass_context
def sensor_read(ctx: Context, port: int, mode: int, samples: int, interval: float) -> None:
    """
    Read the sensor on PORT in SI units.

    With --samples, prints one "seconds value" line per reading.
    """
    no = sensor_port(port)
    with ctx.session() as brick:
        if samples == 1:
            value = brick.input_read_si(0, no, mode)
            symbol = brick.input_device_symbol(0, no)
            click.echo(f"{value:g} {symbol}".rstrip())
        else:
            for elapsed, value in brick.sample_sensor(0, no, mode, samples, interval):
                click.echo(f"{elapsed:.3f} {value:g}")


@sensor.command("name")
@click.argument("port", type=click.IntRange(1, 4))
@pass_context
def sensor_name(ctx: Context, port: int) -> None:
    """Show the name of the device on PORT."""
    with ctx.session() as brick:
        name = brick.input_device_get_name(0, sensor_port(port))
    click.echo(name or "(none)")


# =============================================================================
# File Commands
# =============================================================================

@main.command()
@click.argument("local", type=click.Path(exists=True, dir_okay=False))
@click.argument("remote")
@click.option("--chunk-size", type=click.IntRange(min=1),
              help="Bytes per CONTINUE_DOWNLOAD (default: whole file)")
@pass_context
def upload(ctx: Context, local: str, remote: str, chunk_size: Optional[int]) -> None:
    """
    Copy LOCAL to REMOTE on the brick.

    REMOTE is relative to /home/root/lms2012/sys unless absolute.

    Example:
        ev3link upload tones.rbf ../prjs/tones/tones.rbf
    """
    try:
        data = Path(local).read_bytes()
    except OSError as e:
        click.echo(f"Error reading {local}: {e}", err=True)
        raise SystemExit(ExitCode.INVALID_ARGS)

    click.echo(f"Uploading {local} ({len(data)} bytes) to {remote}...")
    with ctx.session() as brick:
        brick.upload_file(data, remote, chunk_size=chunk_size, progress=progress_bar)
    click.echo("Transfer complete!")


@main.command()
@click.argument("remote")
@click.argument("local", type=click.Path(dir_okay=False), required=False)
@click.option("--max-chunk", type=click.IntRange(1, 0xFFFF),
              default=DEFAULT_MAX_CHUNK_LENGTH, show_default=True)
@pass_context
def download(ctx: Context, remote: str, local: Optional[str], max_chunk: int) -> None:
    """
    Copy REMOTE from the brick to LOCAL.

    LOCAL defaults to the file name of REMOTE.
    """
    output = Path(local) if local else Path(Path(remote).name)

    with ctx.session() as brick:
        data = brick.download_file(remote, max_chunk, progress=progress_bar)

    try:
        output.write_bytes(data)
    except OSError as e:
        click.echo(f"Error writing {output}: {e}", err=True)
        raise SystemExit(ExitCode.INVALID_ARGS)
    click.echo(f"Saved to: {output} ({len(data)} bytes)")


@main.command()
@click.argument("path", default=DEFAULT_LIST_PATH)
@pass_context
def ls(ctx: Context, path: str) -> None:
    """List the directory PATH on the brick."""
    with ctx.session() as brick:
        entries = brick.list_files(path)

    if not entries:
        click.echo("(empty)")
        return
    for entry in entries:
        click.echo(str(entry))


@main.command()
@click.argument("path")
@pass_context
def mkdir(ctx: Context, path: str) -> None:
    """Create the directory PATH on the brick."""
    with ctx.session() as brick:
        brick.create_dir(path)
    click.echo(f"Created {path}")


@main.command()
@click.argument("path")
@pass_context
def rm(ctx: Context, path: str) -> None:
    """Delete the file or empty directory PATH on the brick."""
    with ctx.session() as brick:
        brick.delete_file(path)
    click.echo(f"Deleted {path}")


# =============================================================================
# Byte-code
# =============================================================================

@main.command()
@click.argument("output", type=click.Path(dir_okay=False))
@pass_context
def bytecode(ctx: Context, output: str) -> None:
    """
    Write a three-tone .rbf program to OUTPUT.

    Upload it under ../prjs/ and start it from the brick's menu.
    """
    try:
        path = three_tone_program().write(output)
    except (EV3Error, OSError) as e:
        handle_cli_exception(e, ctx.verbose)
    click.echo(f"Wrote {path}")


if __name__ == "__main__":
    main()
