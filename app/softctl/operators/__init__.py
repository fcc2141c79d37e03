"""Application operators for installing and removing applications.

This module provides the abstract Operator and its install and uninstall
state machines.
"""

from softctl.operators.base import Operator
from softctl.operators.installer import InstallState, Installer
from softctl.operators.uninstaller import UninstallState, Uninstaller

__all__ = ["InstallState", "Installer", "Operator", "UninstallState", "Uninstaller"]
