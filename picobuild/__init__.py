"""picobuild — toolchain and SDK bootstrap for Raspberry Pi Pico firmware builds."""

__version__ = "0.1.0"
