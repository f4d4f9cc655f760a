#!/usr/bin/env python3
"""
EV3 Brick Demo
==============

This script walks through the main things the SDK does with a brick:
1. Connect using EV3_* environment settings
2. Read the battery
3. Play tones
4. Turn a motor and read its tacho count
5. Sample a sensor
6. Build a program, upload it and list the project directory

Usage:
    source .venv/bin/activate
    EV3_IO_TYPE=bt EV3_SERIAL_PORT=/dev/rfcomm0 python examples/brick_demo.py

A large motor on port A and any sensor on port 1 make every step visible.
"""

import time

from ev3_sdk import Brick, BrakeMode, InputPort, Motor
from ev3_sdk.bytecode import three_tone_program

PROJECT_DIR = "../prjs/demo/"


def main():
    # ==========================================================================
    # 1. Connect
    # ==========================================================================
    # Brick.connect() reads EV3_IO_TYPE, EV3_SERIAL_PORT, EV3_WIFI_ADDRESS...
    # Pass a ConnectionConfig to choose explicitly.

    print("Connecting to EV3...")
    with Brick.connect() as brick:

        # ======================================================================
        # 2. Battery
        # ======================================================================
        print(f"  Battery: {brick.battery_voltage():.2f} V ({brick.battery_level()}%)")

        # ======================================================================
        # 3. Sound
        # ======================================================================
        # play_tone() returns at once; the brick plays in the background.
        print("\nBeeping...")
        brick.beep()
        time.sleep(0.2)
        brick.play_three_tones()

        # ======================================================================
        # 4. Motor A
        # ======================================================================
        print("\nTurning motor A one revolution...")
        brick.output_clear_count(0, Motor.A)
        brick.output_step_speed(0, Motor.A, 40, 30, 300, 30, BrakeMode.BRAKE)
        time.sleep(2.0)
        print(f"  Tacho count: {brick.output_get_count(0, Motor.A)} degrees")

        # ======================================================================
        # 5. Sensor on port 1
        # ======================================================================
        name = brick.input_device_get_name(0, InputPort.PORT_1)
        symbol = brick.input_device_symbol(0, InputPort.PORT_1)
        print(f"\nSampling {name or 'port 1'} for one second:")
        for elapsed, value in brick.sample_sensor(0, InputPort.PORT_1, 0, count=10):
            print(f"  {elapsed:5.2f}s  {value:g} {symbol}")

        # ======================================================================
        # 6. Files
        # ======================================================================
        # The same opcode builders used above produce .rbf programs.
        program = three_tone_program().build()
        print(f"\nUploading tones.rbf ({len(program)} bytes) to {PROJECT_DIR}")
        brick.upload_file(program, PROJECT_DIR + "tones.rbf")

        for entry in brick.list_files(PROJECT_DIR):
            print(f"  {entry}")

    print("\nDone.")


if __name__ == "__main__":
    main()
