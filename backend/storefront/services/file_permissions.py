import getpass
import logging
import os
from typing import List

from ..config import AppConfig

logger = logging.getLogger(__name__)


def current_os_user() -> str:
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        return str(os.getuid()) if hasattr(os, "getuid") else "unknown"


class FilePermissionHelper:
    """Paths the running store must be able to write to after installation."""

    def __init__(self, config: AppConfig):
        self.config = config

    def get_directories_write(self) -> List[str]:
        return [
            self.config.data_dir,
            self.config.plugins_dir,
            self.config.static_dir,
            os.path.join(self.config.static_dir, "lib", "cldr"),
        ]

    def get_files_write(self) -> List[str]:
        return [
            self.config.data_settings_path,
            self.config.plugins_registry_path,
        ]

    @staticmethod
    def check_permissions(path: str, check_read: bool, check_write: bool, check_modify: bool,
                          check_delete: bool) -> bool:
        target = path
        # a directory that does not exist yet only needs a writable ancestor
        while not os.path.exists(target):
            parent = os.path.dirname(target)
            if not parent or parent == target:
                return False
            target = parent
        if check_read and not os.access(target, os.R_OK):
            return False
        if (check_write or check_modify) and not os.access(target, os.W_OK):
            return False
        if check_delete:
            parent = os.path.dirname(os.path.abspath(target))
            if not os.access(parent, os.W_OK | os.X_OK):
                return False
        return True
