import logging
import os
import signal
from datetime import datetime, timezone

logger = logging.getLogger(__name__)


class AppRestarter:
    """Tells the hosting process to reload the application.

    Touching the marker file is picked up by ``uvicorn --reload`` /
    ``--reload-include``; with ``signal_parent`` the parent process (a
    gunicorn master) gets SIGHUP.
    """

    def __init__(self, marker_path: str, signal_parent: bool = False):
        self.marker_path = marker_path
        self.signal_parent = signal_parent

    def restart(self) -> None:
        os.makedirs(os.path.dirname(self.marker_path) or ".", exist_ok=True)
        with open(self.marker_path, "w") as f:
            f.write(datetime.now(timezone.utc).isoformat() + "\n")
        logger.info("Application restart requested (marker %s)", self.marker_path)
        if self.signal_parent and hasattr(signal, "SIGHUP"):
            os.kill(os.getppid(), signal.SIGHUP)
