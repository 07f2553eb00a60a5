"""
CLI for the RCON wrapper
"""

from .main_cli import main_cli, main

__all__ = ['main_cli', 'main']
