"""Cadence — recurring task scheduling and reminder planning."""
