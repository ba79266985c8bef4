"""Diagnostic session controller for Rover MEMS 1.6 engine ECUs."""

__version__ = '0.3.0'
