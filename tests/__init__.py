"""Tests for the Home Energy Emulator integration."""
