"""
Vision Targeting Package

This package finds pairs of retro-reflective vision targets in camera frames,
computes the robot's heading and distance to the pair closest to the center
of the view, and publishes the result to the robot controller with low
latency, while streaming an annotated view for the drivers.
"""

__version__ = '0.1.0'
