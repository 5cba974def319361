"""Photobooth capture sequencing and collage composition."""

__version__ = "0.1.0"
