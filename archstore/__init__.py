"""
archstore - package operation orchestrator for pacman, the AUR and Flatpak
"""

__version__ = "1.0.0"
