"""
LED Matrix Control Service

Manages LED-matrix display devices, stores images, and pushes rendered
frames to a device's HTTP control API.
"""

__version__ = "0.1.0"
