"""Daemon side: event decoding, dispatch, schedules and listeners."""
