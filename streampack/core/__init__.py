"""Streampack core — scheduler, slot buffer, feeder, and lifecycle control."""
