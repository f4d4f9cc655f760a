"""
EV3 SDK Command-Line Interface
==============================

- **ev3link**: Talk to a brick over USB, Bluetooth or Wi-Fi

Implemented as a Click application with per-command help.
"""

__all__ = ["ev3link"]
