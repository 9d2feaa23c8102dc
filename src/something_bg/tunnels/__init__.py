"""Tunnel subsystem: command registry + supervised start/stop of long-lived commands."""
