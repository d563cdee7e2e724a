from .sound_manager import SoundManager
from .tray_app import TrayApp

__all__ = ["SoundManager", "TrayApp"]
